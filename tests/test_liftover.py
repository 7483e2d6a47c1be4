"""
Tests for coordinate liftover
"""

import pandas as pd
import pytest

from qtlcoloc.exceptions import LiftoverError
from qtlcoloc.harmonization import liftover
from qtlcoloc.harmonization.dataset import AssociationDataset
from qtlcoloc.harmonization.liftover import LiftOverPipeline, lift, normalize_assembly


class FakeLifter:
    """Shifts chr1 by +1000 and maps nothing elsewhere."""
    
    def convert_coordinate(self, chrom, pos):
        if chrom != "chr1":
            return []
        return [(chrom, pos + 1000, "+")]


@pytest.fixture(autouse=True)
def fake_lifter(monkeypatch):
    monkeypatch.setattr(liftover, "_get_lifter", lambda source, target: FakeLifter())


class TestLiftOver:
    """Tests for LiftOverPipeline."""
    
    def test_normalize_assembly(self):
        assert normalize_assembly("GRCh37") == "hg19"
        assert normalize_assembly("hg38") == "hg38"
        with pytest.raises(ValueError):
            normalize_assembly("GRCh36")
    
    def test_lift_position(self):
        assert lift("chr1", 500, "GRCh37", "GRCh38") == ("1", 1500)
    
    def test_unmapped_position(self):
        with pytest.raises(LiftoverError):
            LiftOverPipeline("hg19", "hg38").lift_position("2", 500)
    
    def test_same_build_is_identity(self):
        assert LiftOverPipeline("GRCh38", "hg38").lift_position("chr3", 42) == ("3", 42)
    
    def test_lift_dataset(self):
        df = pd.DataFrame({
            "variant_id": ["rs1", "chr1_200_A_G", "1:300", "rs4"],
            "chromosome": ["1", "1", "1", "2"],
            "position": [100, 200, 300, 400],
            "beta": [0.1, 0.2, 0.3, 0.4],
            "se": 0.1,
        })
        dataset = AssociationDataset(df)
        
        lifted = LiftOverPipeline("GRCh37", "GRCh38").lift_dataset(dataset)
        
        assert lifted.variant_ids == ["rs1", "chr1_1200_A_G", "chr1:1300"]
        assert lifted.df["position"].tolist() == [1100, 1200, 1300]
        assert lifted.df["position_original"].tolist() == [100, 200, 300]
    
    def test_keep_unmapped(self):
        df = pd.DataFrame({"variant_id": ["rs4"], "chromosome": ["2"], "position": [400]})
        
        lifted = LiftOverPipeline("GRCh37", "GRCh38").lift_dataset(
            AssociationDataset(df), drop_unmapped=False
        )
        
        assert len(lifted) == 1
        assert pd.isna(lifted.df.loc[0, "position"])
