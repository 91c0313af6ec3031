"""
Test Suite for Preprocessing Module
=====================================

Tests for tidying, derived features, validation mapping and design matrices.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from motortrend.data_loader import load_mtcars
from motortrend.preprocessing import (
    tidy_mtcars, add_derived_features, prepare_validation_data,
    remove_observations, candidate_predictors, build_design_matrix
)

MTCARS_PATH = Path(__file__).parent.parent / "data" / "raw" / "mtcars.csv"


@pytest.fixture
def raw_mtcars():
    """The bundled Motor Trend table."""
    return load_mtcars(str(MTCARS_PATH))


@pytest.fixture
def tidy(raw_mtcars):
    """Tidy Motor Trend table."""
    return tidy_mtcars(raw_mtcars)


class TestTidyMtcars:
    """Tests for tidy_mtcars."""

    def test_shape(self, tidy):
        """Test 32 cars with the two derived columns added."""
        assert tidy.shape == (32, 13)
        assert 'gp100m' in tidy.columns
        assert 'wthp' in tidy.columns

    def test_gp100m_is_reciprocal_of_mpg(self, tidy):
        """Test gp100m equals 100 / mpg for every row."""
        assert (tidy['gp100m'] == 100 / tidy['mpg']).all()

    def test_wthp_is_weight_over_power(self, tidy):
        """Test wthp equals wt / hp for every row."""
        np.testing.assert_array_equal(tidy['wthp'].values, (tidy['wt'] / tidy['hp']).values)

    def test_transmission_labels(self, tidy):
        """Test am codes become automatic/manual."""
        assert list(tidy['am'].cat.categories) == ['automatic', 'manual']
        assert (tidy['am'] == 'manual').sum() == 13
        assert (tidy['am'] == 'automatic').sum() == 19
        assert tidy.loc['Mazda RX4', 'am'] == 'manual'
        assert tidy.loc['Hornet 4 Drive', 'am'] == 'automatic'

    def test_engine_shape_labels(self, tidy):
        """Test vs codes become V/straight."""
        assert list(tidy['vs'].cat.categories) == ['V', 'straight']
        assert tidy.loc['Datsun 710', 'vs'] == 'straight'
        assert tidy.loc['Duster 360', 'vs'] == 'V'

    def test_raw_data_untouched(self, raw_mtcars):
        """Test tidying works on a copy."""
        tidy_mtcars(raw_mtcars)
        assert 'gp100m' not in raw_mtcars.columns
        assert set(raw_mtcars['am'].unique()) == {0, 1}

    def test_unknown_code_raises(self, raw_mtcars):
        """Test an unexpected transmission code aborts."""
        bad = raw_mtcars.copy()
        bad.loc['Valiant', 'am'] = 2
        with pytest.raises(ValueError, match="Unknown codes in 'am'"):
            tidy_mtcars(bad)


class TestDerivedFeatures:
    """Tests for add_derived_features."""

    def test_zero_mpg_raises(self):
        """Test a zero fuel economy cannot be inverted."""
        df = pd.DataFrame({'mpg': [20.0, 0.0], 'wt': [2.5, 3.0], 'hp': [100, 120]})
        with pytest.raises(ValueError, match="zero mpg"):
            add_derived_features(df)

    def test_zero_hp_raises(self):
        """Test a zero horsepower cannot form a ratio."""
        df = pd.DataFrame({'mpg': [20.0, 25.0], 'wt': [2.5, 3.0], 'hp': [100, 0]})
        with pytest.raises(ValueError, match="zero hp"):
            add_derived_features(df)


class TestValidationMapping:
    """Tests for prepare_validation_data."""

    @pytest.fixture
    def raw_auto(self):
        """A few Auto MPG records, one with unknown horsepower."""
        return pd.DataFrame({
            'mpg': [18.0, 25.0, 24.0],
            'cylinders': [8, 4, 4],
            'displacement': [307.0, 98.0, 113.0],
            'horsepower': [130.0, np.nan, 95.0],
            'weight': [3504.0, 2046.0, 2372.0],
            'acceleration': [12.0, 19.0, 15.0],
            'model_year': [70, 71, 70],
            'origin': [1, 1, 3],
            'name': ['chevrolet chevelle malibu', 'ford pinto', 'toyota corona mark ii'],
        })

    def test_fields_renamed_and_rescaled(self, raw_auto):
        """Test names, units and derived fields match the fitting schema."""
        df = prepare_validation_data(raw_auto)

        assert list(df.columns) == ['mpg', 'cyl', 'disp', 'hp', 'wt', 'gp100m', 'wthp']
        assert df.index.name == 'model'
        assert df.loc['chevrolet chevelle malibu', 'wt'] == pytest.approx(3.504)
        assert df.loc['chevrolet chevelle malibu', 'gp100m'] == pytest.approx(100 / 18.0)
        assert df.loc['toyota corona mark ii', 'wthp'] == pytest.approx(2.372 / 95.0)

    def test_unknown_horsepower_dropped(self, raw_auto):
        """Test rows without horsepower are removed."""
        df = prepare_validation_data(raw_auto)
        assert len(df) == 2
        assert 'ford pinto' not in df.index


class TestRemoveObservations:
    """Tests for remove_observations."""

    def test_removes_exactly_one(self, tidy):
        """Test the trimmed set is the original minus the named car."""
        trimmed = remove_observations(tidy, ['Chrysler Imperial'])
        assert len(trimmed) == 31
        assert 'Chrysler Imperial' not in trimmed.index
        assert set(tidy.index) - set(trimmed.index) == {'Chrysler Imperial'}

    def test_unknown_label_raises(self, tidy):
        """Test removing a car that isn't there aborts."""
        with pytest.raises(ValueError, match="unknown observations"):
            remove_observations(tidy, ['DeLorean DMC-12'])


class TestDesignMatrix:
    """Tests for candidate_predictors and build_design_matrix."""

    def test_candidates_exclude_response_and_alternates(self, tidy):
        """Test the response and excluded fields are not candidates."""
        candidates = candidate_predictors(tidy, 'gp100m', exclude=['mpg', 'wthp'])
        assert candidates == ['cyl', 'disp', 'hp', 'drat', 'wt', 'qsec', 'vs', 'am', 'gear', 'carb']

    def test_categorical_dummy_coding(self, tidy):
        """Test am becomes a single manual indicator."""
        X = build_design_matrix(tidy, ['wt', 'am'])
        assert list(X.columns) == ['const', 'wt', 'am_manual']
        assert X['am_manual'].sum() == 13
        assert (X['const'] == 1.0).all()
        assert X.dtypes.eq(float).all()

    def test_reindex_to_fitted_layout(self, tidy):
        """Test a single-row frame reproduces the fitted columns."""
        X = build_design_matrix(tidy.iloc[[0]], ['wt', 'hp'], columns=['const', 'wt', 'hp'])
        assert X.shape == (1, 3)
        assert X.iloc[0]['const'] == 1.0

    def test_missing_predictor_raises(self, tidy):
        """Test a predictor absent from the data aborts."""
        with pytest.raises(ValueError, match="not found"):
            build_design_matrix(tidy, ['wt', 'turbo'])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
