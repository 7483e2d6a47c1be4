"""
Genomics utility functions.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats


_REGION_PATTERN = re.compile(r"^(?:chr)?([0-9XYMT]+):([0-9,]+)-([0-9,]+)$", re.IGNORECASE)


def standardize_chromosome(chrom: Union[str, int]) -> str:
    """
    Standardize chromosome notation.
    
    Parameters
    ----------
    chrom : str or int
        Input chromosome ("chr1", "1", 23, "chrM", ...).
        
    Returns
    -------
    str
        Standardized chromosome (e.g., "1", "X", "MT").
    """
    chrom = str(chrom).strip()
    
    if chrom.lower().startswith("chr"):
        chrom = chrom[3:]
    
    chrom_upper = chrom.upper()
    if chrom_upper in ["23", "X"]:
        return "X"
    elif chrom_upper in ["24", "Y"]:
        return "Y"
    elif chrom_upper in ["25", "MT", "M", "MITO"]:
        return "MT"
    
    return chrom


@dataclass(frozen=True)
class GenomicRegion:
    """
    A closed, 1-based interval on one chromosome.
    
    Attributes
    ----------
    chromosome : str
        Chromosome without "chr" prefix.
    start : int
        First position (inclusive).
    end : int
        Last position (inclusive).
    """
    
    chromosome: str
    start: int
    end: int
    
    def __post_init__(self):
        object.__setattr__(self, "chromosome", standardize_chromosome(self.chromosome))
        object.__setattr__(self, "start", int(self.start))
        object.__setattr__(self, "end", int(self.end))
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid region bounds: {self.start}-{self.end}")
    
    @classmethod
    def from_string(cls, region: str) -> "GenomicRegion":
        """Parse "chr1:1000-2000" or "1:1,000-2,000"."""
        match = _REGION_PATTERN.match(region.strip())
        if match is None:
            raise ValueError(f"Cannot parse region: {region!r}")
        chrom, start, end = match.groups()
        return cls(chrom, int(start.replace(",", "")), int(end.replace(",", "")))
    
    @classmethod
    def around(cls, chromosome: str, position: int, window: int) -> "GenomicRegion":
        """Region of +/- ``window`` bp centred on ``position``."""
        return cls(chromosome, max(1, int(position) - window), int(position) + window)
    
    def contains(self, chromosome: str, position: int) -> bool:
        return (
            standardize_chromosome(chromosome) == self.chromosome
            and self.start <= position <= self.end
        )
    
    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"


def parse_variant_id(variant_id: str) -> Optional[Tuple[str, int, str, str]]:
    """
    Split a positional variant ID into its parts.
    
    Accepts "chr1_123_A_G", "1:123:A:G" and the GTEx "chr1_123_A_G_b38"
    form. rsIDs and malformed IDs give None.
    """
    parts = re.split(r"[_:]", str(variant_id))
    if len(parts) < 4 or not parts[1].isdigit():
        return None
    return standardize_chromosome(parts[0]), int(parts[1]), parts[2], parts[3]


def make_variant_id(chrom: str, pos: int, ref: str, alt: str) -> str:
    """Build the eQTL Catalogue style ID ``chr{chrom}_{pos}_{ref}_{alt}``."""
    return f"chr{standardize_chromosome(chrom)}_{int(pos)}_{ref}_{alt}"


def fold_allele_frequency(freq: pd.Series) -> pd.Series:
    """
    Convert allele frequencies to minor allele frequencies.
    
    Values above 0.5 are mapped to 1 - f; missing values stay missing.
    """
    freq = pd.to_numeric(freq, errors="coerce")
    return freq.where(freq <= 0.5, 1.0 - freq)


def se_from_confidence_interval(
    lower: pd.Series,
    upper: pd.Series,
    odds_ratio: bool = True,
    level: float = 0.95,
) -> pd.Series:
    """
    Recover the standard error of an estimate from its confidence bounds.
    
    Parameters
    ----------
    lower, upper : pd.Series
        Confidence interval bounds.
    odds_ratio : bool
        Whether the bounds are on the odds-ratio scale (log-transformed
        before use).
    level : float
        Confidence level of the interval.
        
    Returns
    -------
    pd.Series
        Standard errors on the (log) effect scale.
    """
    lower = pd.to_numeric(lower, errors="coerce")
    upper = pd.to_numeric(upper, errors="coerce")
    
    if odds_ratio:
        with np.errstate(divide="ignore", invalid="ignore"):
            lower = np.log(lower.where(lower > 0))
            upper = np.log(upper.where(upper > 0))
    
    z = stats.norm.ppf(1 - (1 - level) / 2)
    return (upper - lower) / (2 * z)
