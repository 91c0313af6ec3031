"""
Test Suite for Data Loading
===========================

Tests for configuration loading, the bundled Motor Trend table, schema
checks, the bundled Auto MPG table and its refresh download.
"""

import pytest
import numpy as np
import pandas as pd
import tempfile
import os

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from motortrend.data_loader import (
    load_config, load_mtcars, load_validation_data, validate_schema, get_data_summary
)
from motortrend import fetch
from motortrend.fetch import parse_auto_mpg, download_auto_mpg, AUTO_MPG_COLUMNS

ROOT = Path(__file__).parent.parent

AUTO_MPG_SAMPLE = (
    '18.0   8   307.0      130.0      3504.      12.0   70  1\t"chevrolet chevelle malibu"\n'
    '15.0   8   350.0      165.0      3693.      11.5   70  1\t"buick skylark 320"\n'
    '25.0   4   98.00      ?          2046.      19.0   71  1\t"ford pinto"\n'
    '\n'
    '24.0   4   113.0      95.00      2372.      15.0   70  3\t"toyota corona mark ii"\n'
)


class TestLoadConfig:
    """Tests for load_config."""

    def test_project_config(self):
        """Test the shipped configuration loads and names the core settings."""
        config = load_config(str(ROOT / "config" / "config.yaml"))

        assert config['analysis']['response'] == 'gp100m'
        assert config['outliers']['remove'] == ['Chrysler Imperial']
        assert config['final_model'] in config['models']
        for name in config['validation']['models']:
            assert name in config['models']

    def test_missing_config_raises(self):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config("does/not/exist.yaml")


class TestLoadMtcars:
    """Tests for load_mtcars."""

    def test_shape_and_index(self):
        """Test 32 cars × 11 fields indexed by model name."""
        df = load_mtcars(str(ROOT / "data" / "raw" / "mtcars.csv"))

        assert df.shape == (32, 11)
        assert df.index.name == 'model'
        assert df.index.is_unique
        assert df.loc['Toyota Corolla', 'mpg'] == 33.9
        assert df.loc['Lincoln Continental', 'wt'] == 5.424

    def test_missing_file_raises(self):
        """Test a missing data file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_mtcars("data/raw/nothing.csv")

    def test_schema_mismatch_raises(self):
        """Test a table without the expected fields aborts."""
        with tempfile.NamedTemporaryFile('w', suffix='.csv', delete=False) as f:
            f.write("model,mpg,cyl\nA,21.0,6\n")
            temp_path = f.name

        try:
            with pytest.raises(ValueError, match="missing columns"):
                load_mtcars(temp_path)
        finally:
            os.unlink(temp_path)


class TestValidateSchema:
    """Tests for validate_schema."""

    def test_non_numeric_raises(self):
        """Test text in a numeric field aborts."""
        df = pd.DataFrame({'mpg': ['fast', 'slow'], 'wt': [2.0, 3.0]})
        with pytest.raises(ValueError, match="non-numeric"):
            validate_schema(df, ['mpg', 'wt'])

    def test_missing_values_raise(self):
        """Test missing values in required numeric fields abort."""
        df = pd.DataFrame({'mpg': [21.0, np.nan], 'wt': [2.0, 3.0]})
        with pytest.raises(ValueError, match="missing values"):
            validate_schema(df, ['mpg', 'wt'])

    def test_valid_frame_passes(self):
        """Test a complete numeric frame passes silently."""
        df = pd.DataFrame({'mpg': [21.0, 22.8], 'wt': [2.62, 2.32]})
        validate_schema(df, ['mpg', 'wt'])


class TestAutoMpgParsing:
    """Tests for parse_auto_mpg and load_validation_data."""

    def test_parse_records(self):
        """Test numeric fields, quoted names and unknown values."""
        df = parse_auto_mpg(AUTO_MPG_SAMPLE)

        assert list(df.columns) == AUTO_MPG_COLUMNS
        assert len(df) == 4
        assert df.loc[0, 'name'] == 'chevrolet chevelle malibu'
        assert df.loc[1, 'weight'] == 3693.0
        assert df.loc[3, 'origin'] == 3
        assert np.isnan(df.loc[2, 'horsepower'])

    def test_malformed_record_raises(self):
        """Test a truncated line aborts with its line number."""
        with pytest.raises(ValueError, match="line 1"):
            parse_auto_mpg('18.0   8   307.0\t"short"\n')

    def test_load_csv(self):
        """Test a CSV in the bundled layout is read back unchanged."""
        df = parse_auto_mpg(AUTO_MPG_SAMPLE)

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "auto_mpg.csv"
            df.to_csv(path, index=False)
            loaded = load_validation_data(str(path))

        assert len(loaded) == 4
        assert loaded['name'].tolist() == df['name'].tolist()

    def test_bundled_table(self):
        """Test the shipped Auto MPG table has every record."""
        df = load_validation_data(str(ROOT / "data" / "raw" / "auto_mpg.csv"))

        assert list(df.columns) == AUTO_MPG_COLUMNS
        assert len(df) == 398
        assert df['horsepower'].isna().sum() == 6
        assert df['mpg'].mean() == pytest.approx(23.5146, abs=1e-4)

    def test_missing_file_raises(self):
        """Test a missing table raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_validation_data("data/raw/absent.csv")


class FakeResponse:
    """Stand-in for a requests response carrying the sample records."""

    text = AUTO_MPG_SAMPLE

    def raise_for_status(self):
        pass


def test_download_auto_mpg(monkeypatch):
    """Test a refresh parses the response and writes the CSV."""
    calls = []

    def fake_get(url, headers=None, timeout=None):
        calls.append(url)
        return FakeResponse()

    monkeypatch.setattr(fetch.requests, 'get', fake_get)

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "raw" / "auto_mpg.csv"
        df = download_auto_mpg("http://example.invalid/auto-mpg.data", output_path=str(path))

        assert calls == ["http://example.invalid/auto-mpg.data"]
        assert len(df) == 4
        assert len(load_validation_data(str(path))) == 4


def test_data_summary():
    """Test summary statistics cover every numeric column."""
    df = load_mtcars(str(ROOT / "data" / "raw" / "mtcars.csv"))
    summary = get_data_summary(df)

    assert summary['shape'] == (32, 11)
    assert summary['statistics']['mpg']['max'] == 33.9
    assert summary['statistics']['cyl']['min'] == 4.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
