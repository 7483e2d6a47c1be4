"""
Tests for genomic coordinate utilities
"""

import numpy as np
import pandas as pd
import pytest

from qtlcoloc.utils.genomics import (
    GenomicRegion,
    fold_allele_frequency,
    make_variant_id,
    parse_variant_id,
    se_from_confidence_interval,
    standardize_chromosome,
)


class TestChromosomes:
    
    @pytest.mark.parametrize("raw,expected", [
        ("chr1", "1"),
        (7, "7"),
        ("23", "X"),
        ("chrY", "Y"),
        ("chrM", "MT"),
    ])
    def test_standardize(self, raw, expected):
        assert standardize_chromosome(raw) == expected


class TestGenomicRegion:
    """Tests for GenomicRegion."""
    
    def test_from_string(self):
        region = GenomicRegion.from_string("chr1:109,000,000-110,000,000")
        
        assert region == GenomicRegion("1", 109_000_000, 110_000_000)
        assert str(region) == "1:109000000-110000000"
    
    def test_invalid(self):
        with pytest.raises(ValueError):
            GenomicRegion.from_string("1-100")
        with pytest.raises(ValueError):
            GenomicRegion("1", 200, 100)
    
    def test_around_clamps_start(self):
        assert GenomicRegion.around("2", 1000, 5000) == GenomicRegion("2", 1, 6000)
    
    def test_contains(self):
        region = GenomicRegion("1", 100, 200)
        
        assert region.contains("chr1", 100)
        assert not region.contains("1", 201)
        assert not region.contains("2", 150)


class TestVariantIds:
    
    def test_parse(self):
        assert parse_variant_id("chr1_123_A_G") == ("1", 123, "A", "G")
        assert parse_variant_id("1:123:A:G") == ("1", 123, "A", "G")
        assert parse_variant_id("chr1_123_A_G_b38") == ("1", 123, "A", "G")
        assert parse_variant_id("rs12740374") is None
    
    def test_make(self):
        assert make_variant_id("chr1", 123, "A", "G") == "chr1_123_A_G"


class TestAlleleStatistics:
    
    def test_fold(self):
        folded = fold_allele_frequency(pd.Series([0.1, 0.5, 0.9, np.nan]))
        
        assert folded.iloc[:3].tolist() == pytest.approx([0.1, 0.5, 0.1])
        assert np.isnan(folded.iloc[3])
    
    def test_se_from_odds_ratio_interval(self):
        se = se_from_confidence_interval(
            pd.Series([np.exp(-0.392)]), pd.Series([np.exp(0.392)])
        )
        
        assert se.iloc[0] == pytest.approx(0.2, rel=1e-3)
