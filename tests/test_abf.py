"""
Tests for approximate Bayes factors
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from qtlcoloc.colocalization.abf import (
    log_abf,
    pvalue_to_z,
    summarize_dataset,
    variance_from_maf,
)
from qtlcoloc.exceptions import InsufficientDataError, MissingFieldError
from qtlcoloc.harmonization.dataset import CASE_CONTROL, AssociationDataset


class TestLogABF:
    """Tests for the Wakefield log ABF."""
    
    def test_matches_closed_form(self):
        z, V, sd = 5.0, 0.01, 0.15
        r = sd ** 2 / (sd ** 2 + V)
        expected = 0.5 * np.log(1 - r) + 0.5 * r * z ** 2
        
        assert log_abf(np.array([z]), np.array([V]), sd)[0] == pytest.approx(expected)
    
    def test_null_variant_favours_null(self):
        assert log_abf(np.array([0.0]), np.array([0.01]), 0.15)[0] < 0
    
    def test_increases_with_z(self):
        labf = log_abf(np.array([1.0, 3.0, 6.0]), np.full(3, 0.01), 0.15)
        
        assert np.all(np.diff(labf) > 0)


class TestVariance:
    """Tests for variance from MAF and sample size."""
    
    def test_quantitative(self):
        v = variance_from_maf(np.array([0.2]), np.array([1000.0]), sd_y=2.0)
        
        assert v[0] == pytest.approx(4.0 / (2 * 1000 * 0.2 * 0.8))
    
    def test_case_control(self):
        v = variance_from_maf(
            np.array([0.2]), np.array([1000.0]), study_type=CASE_CONTROL, case_fraction=0.4
        )
        
        assert v[0] == pytest.approx(1.0 / (2 * 1000 * 0.2 * 0.8 * 0.4 * 0.6))
    
    def test_case_control_requires_fraction(self):
        with pytest.raises(ValueError):
            variance_from_maf(np.array([0.2]), np.array([1000.0]), study_type=CASE_CONTROL)
    
    def test_pvalue_to_z(self):
        assert pvalue_to_z(np.array([0.05]))[0] == pytest.approx(1.959964, rel=1e-5)


class TestSummarizeDataset:
    """Tests for per-dataset Bayes factor summaries."""
    
    def test_beta_se_path(self, make_dataset):
        summary = summarize_dataset(make_dataset([5.0, 1.0]))
        expected = log_abf(np.array([5.0, 1.0]), np.full(2, 0.01), 0.15)
        
        assert list(summary.log_abf.index) == ["rs1", "rs2"]
        assert summary.log_abf.to_numpy() == pytest.approx(expected)
        assert summary.dropped == ()
    
    def test_pvalue_path(self):
        df = pd.DataFrame({
            "variant_id": ["rs1"],
            "pvalue": [1e-8],
            "maf": [0.25],
            "n": [2000],
        })
        summary = summarize_dataset(AssociationDataset(df))
        
        z = stats.norm.isf(1e-8 / 2)
        V = 1.0 / (2 * 2000 * 0.25 * 0.75)
        expected = log_abf(np.array([z]), np.array([V]), 0.15)[0]
        
        assert summary.log_abf["rs1"] == pytest.approx(expected)
    
    def test_beta_preferred_over_pvalue(self):
        df = pd.DataFrame({
            "variant_id": ["rs1"],
            "beta": [0.3],
            "se": [0.1],
            "pvalue": [0.5],
            "maf": [0.25],
            "n": [2000],
        })
        summary = summarize_dataset(AssociationDataset(df))
        
        expected = log_abf(np.array([3.0]), np.array([0.01]), 0.15)[0]
        assert summary.log_abf["rs1"] == pytest.approx(expected)
    
    def test_unusable_variants_dropped(self):
        df = pd.DataFrame({
            "variant_id": ["rs1", "rs2", "rs3"],
            "beta": [0.3, np.nan, 0.1],
            "se": [0.1, 0.1, np.nan],
            "pvalue": [np.nan, np.nan, 0.01],
            "maf": [np.nan, 0.2, np.nan],
        })
        summary = summarize_dataset(AssociationDataset(df, sample_size=1000))
        
        assert list(summary.log_abf.index) == ["rs1"]
        assert summary.dropped == ("rs2", "rs3")
    
    def test_strict_mode_raises(self):
        df = pd.DataFrame({"variant_id": ["rs1", "rs2"], "beta": [0.3, 0.2], "se": [0.1, np.nan]})
        
        with pytest.raises(MissingFieldError) as excinfo:
            summarize_dataset(AssociationDataset(df), strict=True)
        
        assert excinfo.value.variant_id == "rs2"
    
    def test_case_control_pvalue_needs_case_fraction(self):
        df = pd.DataFrame({"variant_id": ["rs1"], "pvalue": [1e-5], "maf": [0.3], "n": [1000]})
        
        with pytest.raises(InsufficientDataError):
            summarize_dataset(AssociationDataset(df, study_type=CASE_CONTROL))
        
        summary = summarize_dataset(
            AssociationDataset(df, study_type=CASE_CONTROL, case_fraction=0.5)
        )
        assert summary.n_variants == 1
    
    def test_quantitative_prior_scales_with_sd_y(self, make_dataset):
        base = summarize_dataset(make_dataset([3.0]))
        scaled = summarize_dataset(make_dataset([3.0], sd_y=2.0))
        
        expected = log_abf(np.array([3.0]), np.array([0.01]), 0.3)[0]
        assert scaled.log_abf.iloc[0] == pytest.approx(expected)
        assert scaled.log_abf.iloc[0] != pytest.approx(base.log_abf.iloc[0])
