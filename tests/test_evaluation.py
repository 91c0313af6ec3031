"""
Test Suite for Cross-Dataset Validation
=======================================

Tests for RMSE scoring, the candidate ranking and the bundled Auto MPG check.
"""

import pytest
import numpy as np
import pandas as pd
import tempfile
import os

import matplotlib
matplotlib.use('Agg')

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from motortrend.data_loader import load_config, load_mtcars, load_validation_data
from motortrend.preprocessing import tidy_mtcars, prepare_validation_data
from motortrend.model import LinearModel, fit_candidate_models
from motortrend.evaluation import rmse, validate_models, evaluate_on_validation

ROOT = Path(__file__).parent.parent


@pytest.fixture(scope="module")
def tidy():
    """Tidy Motor Trend table."""
    return tidy_mtcars(load_mtcars(str(ROOT / "data" / "raw" / "mtcars.csv")))


@pytest.fixture(scope="module")
def models(tidy):
    """Two nested candidates fitted on all cars."""
    return {
        'wt': LinearModel('gp100m', ['wt'], name='wt').fit(tidy),
        'wt_hp': LinearModel('gp100m', ['wt', 'hp'], name='wt_hp').fit(tidy),
    }


def test_rmse():
    """Test RMSE against a hand-computed value."""
    assert rmse(np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 5.0])) == pytest.approx(np.sqrt(4 / 3))
    assert rmse(np.array([1.5, 2.5]), np.array([1.5, 2.5])) == 0.0


class TestValidateModels:
    """Tests for validate_models."""

    def test_in_sample_rmse(self, models, tidy):
        """Test scoring on the fitting data reproduces sqrt(RSS / n)."""
        ranking = validate_models(models, tidy)

        assert ranking.loc['wt', 'rmse'] == pytest.approx(np.sqrt(17.40166 / 32), abs=1e-4)
        assert ranking.loc['wt_hp', 'rmse'] == pytest.approx(np.sqrt(12.78726 / 32), abs=1e-4)

    def test_ranking_sorted_by_rmse(self, models, tidy):
        """Test the best model comes first."""
        ranking = validate_models(models, tidy)

        assert list(ranking.index) == ['wt_hp', 'wt']
        assert ranking['rmse'].is_monotonic_increasing
        assert (ranking['n_validation'] == 32).all()
        assert (ranking['n_fit'] == 32).all()
        assert 'rmse_mpg' in ranking.columns

    def test_no_refitting(self, models):
        """Test validation leaves the fitted coefficients alone."""
        before = models['wt'].coefficient_table()['estimate'].copy()
        held_out = pd.DataFrame({
            'wt': [2.0, 3.0, 4.0],
            'gp100m': [4.0, 5.0, 9.0],
            'mpg': [25.0, 20.0, 100 / 9],
        })
        validate_models({'wt': models['wt']}, held_out)

        pd.testing.assert_series_equal(models['wt'].coefficient_table()['estimate'], before)

    def test_missing_columns_raise(self, models):
        """Test validation data lacking a predictor aborts."""
        held_out = pd.DataFrame({'wt': [2.0, 3.0], 'gp100m': [4.0, 5.0]})
        with pytest.raises(ValueError, match="absent from validation data"):
            validate_models({'wt_hp': models['wt_hp']}, held_out)

    def test_no_models_raise(self, tidy):
        """Test an empty candidate set aborts."""
        with pytest.raises(ValueError, match="No models"):
            validate_models({}, tidy)


def test_evaluate_on_validation_writes_figures(models, tidy):
    """Test the full validation step selects the best model and saves figures."""
    with tempfile.TemporaryDirectory() as tmp:
        result = evaluate_on_validation(models, tidy, fit_df=tidy, output_dir=tmp)

        assert result['selected'] == 'wt_hp'
        assert result['figures'] == ['validation_actual_vs_predicted.png', 'validation_overlay.png']
        for figure in result['figures']:
            assert os.path.exists(os.path.join(tmp, figure))


@pytest.fixture(scope="module")
def config():
    """Shipped configuration."""
    return load_config(str(ROOT / "config" / "config.yaml"))


@pytest.fixture(scope="module")
def validation_df(config):
    """Bundled Auto MPG table mapped onto the fitting schema."""
    raw = load_validation_data(str(ROOT / config['data']['validation_path']))
    return prepare_validation_data(raw)


class TestAutoMpgValidation:
    """Out-of-sample check on the bundled Auto MPG table."""

    def test_schema_mapped(self, validation_df):
        """Test the mapped table carries the fitting fields in mtcars units."""
        assert len(validation_df) == 392
        assert validation_df['hp'].notna().all()
        assert validation_df['wt'].between(1.0, 6.0).all()
        assert validation_df.loc['chevrolet chevelle malibu', 'wt'].iloc[0] == pytest.approx(3.504)

    def test_trimmed_weight_power_model_wins(self, validation_df, tidy, config):
        """Test the outlier-trimmed wt + wthp model has the lowest RMSE."""
        fitted = fit_candidate_models(
            tidy, config['models'],
            response=config['analysis']['response'],
            outliers=config['outliers']['remove']
        )
        candidates = {name: fitted[name] for name in config['validation']['models']}

        ranking = validate_models(candidates, validation_df)

        assert list(ranking.index) == ['wt_wthp_trimmed', 'wt_hp', 'wt']
        assert ranking.index[0] == config['final_model']
        assert (ranking['n_validation'] == 392).all()
        assert ranking.loc['wt_wthp_trimmed', 'rmse'] == pytest.approx(0.72881, abs=1e-4)
        assert ranking.loc['wt_hp', 'rmse'] == pytest.approx(0.77299, abs=1e-4)
        assert ranking.loc['wt', 'rmse'] == pytest.approx(0.84831, abs=1e-4)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
