"""
Tests for association datasets
"""

import numpy as np
import pandas as pd
import pytest

from qtlcoloc.exceptions import MissingFieldError
from qtlcoloc.harmonization.dataset import (
    CASE_CONTROL,
    AssociationDataset,
    AssociationRecord,
    StudyKey,
)
from qtlcoloc.utils.genomics import GenomicRegion


class TestStudyKey:
    """Tests for StudyKey identity and ordering."""
    
    def test_ordering_is_lexicographic(self):
        keys = [
            StudyKey("GTEx", "ge", "ENSG2", "liver"),
            StudyKey("BLUEPRINT", "ge", "ENSG9", "monocyte"),
            StudyKey("GTEx", "ge", "ENSG1", "liver"),
        ]
        
        assert sorted(keys)[0].study_id == "BLUEPRINT"
        assert sorted(keys)[1].molecular_trait_id == "ENSG1"
    
    def test_label_and_dict(self):
        key = StudyKey("GTEx", "tx", "ENST1", "lung")
        
        assert key.label == "GTEx/tx/lung/ENST1"
        assert key.to_dict()["tissue"] == "lung"
    
    def test_hashable(self):
        assert len({StudyKey("a"), StudyKey("a"), StudyKey("b")}) == 2


class TestValidation:
    """Tests for dataset validation."""
    
    def test_missing_variant_column(self):
        with pytest.raises(MissingFieldError):
            AssociationDataset(pd.DataFrame({"beta": [0.1]}))
    
    def test_standard_columns_added(self):
        dataset = AssociationDataset(pd.DataFrame({"variant_id": ["rs1"], "beta": [0.1]}))
        
        assert list(dataset.df.columns[:4]) == ["variant_id", "chromosome", "position", "effect_allele"]
        assert np.isnan(dataset.df.loc[0, "se"])
    
    def test_out_of_range_values_become_missing(self):
        df = pd.DataFrame({
            "variant_id": ["rs1", "rs2", "rs3"],
            "se": [0.1, 0.0, -1.0],
            "maf": [0.2, 0.0, 1.2],
            "pvalue": [0.01, 0.0, 1.0],
        })
        dataset = AssociationDataset(df)
        
        assert dataset.df["se"].isna().tolist() == [False, True, True]
        assert dataset.df["maf"].isna().tolist() == [False, True, True]
        assert dataset.df["pvalue"].isna().tolist() == [False, True, False]
    
    def test_sample_size_fills_missing_n(self):
        df = pd.DataFrame({"variant_id": ["rs1", "rs2"], "n": [500, None]})
        dataset = AssociationDataset(df, sample_size=1000)
        
        assert dataset.df["n"].tolist() == [500, 1000]
    
    def test_rows_without_identifier_dropped(self):
        df = pd.DataFrame({"variant_id": ["rs1", None], "beta": [0.1, 0.2]})
        
        assert len(AssociationDataset(df)) == 1
    
    def test_chromosome_standardized(self):
        df = pd.DataFrame({"variant_id": ["rs1"], "chromosome": ["chr23"]})
        
        assert AssociationDataset(df).df.loc[0, "chromosome"] == "X"
    
    @pytest.mark.parametrize("kwargs", [
        {"study_type": "binary"},
        {"study_type": CASE_CONTROL, "case_fraction": 1.5},
        {"sample_size": 0},
        {"sd_y": -1},
    ])
    def test_invalid_metadata(self, kwargs):
        with pytest.raises(ValueError):
            AssociationDataset(pd.DataFrame({"variant_id": ["rs1"]}), **kwargs)


class TestDatasetOperations:
    """Tests for subsetting and duplicate handling."""
    
    def test_records_roundtrip(self):
        records = [
            AssociationRecord("rs1", chromosome="1", position=100, beta=0.2, se=0.05),
            AssociationRecord("rs2", pvalue=1e-4, maf=0.2, n=800),
        ]
        dataset = AssociationDataset.from_records(records)
        out = list(dataset.records())
        
        assert out[0].beta == pytest.approx(0.2)
        assert out[1].beta is None
        assert out[1].n == 800
    
    def test_duplicated_variants(self):
        df = pd.DataFrame({"variant_id": ["rs1", "rs2", "rs1", "rs3", "rs2"]})
        dataset = AssociationDataset(df)
        
        assert dataset.duplicated_variants() == ["rs1", "rs2"]
        assert dataset.drop_duplicate_variants().variant_ids == ["rs3"]
    
    def test_subset_preserves_requested_order(self, make_dataset):
        dataset = make_dataset([1.0, 2.0, 3.0])
        subset = dataset.subset(["rs3", "rs1"])
        
        assert subset.variant_ids == ["rs3", "rs1"]
        assert subset.df["beta"].tolist() == pytest.approx([0.3, 0.1])
    
    def test_subset_region(self):
        df = pd.DataFrame({
            "variant_id": ["rs1", "rs2", "rs3", "rs4"],
            "chromosome": ["1", "1", "2", None],
            "position": [100, 5000, 150, None],
        })
        dataset = AssociationDataset(df)
        
        subset = dataset.subset_region(GenomicRegion("1", 1, 1000))
        
        assert subset.variant_ids == ["rs1", "rs4"]
    
    def test_with_key_keeps_data(self, make_dataset):
        dataset = make_dataset([1.0, 2.0])
        keyed = dataset.with_key(StudyKey("GTEx"))
        
        assert keyed.key == StudyKey("GTEx")
        assert dataset.key is None
        assert keyed.variant_ids == dataset.variant_ids
