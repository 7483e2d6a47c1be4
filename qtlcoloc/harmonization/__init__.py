"""
Harmonization Module

Typed association datasets, column standardisation, shared-variant
alignment and coordinate liftover.
"""

from .dataset import (
    CASE_CONTROL,
    QUANTITATIVE,
    AssociationDataset,
    AssociationRecord,
    StudyKey,
)
from .harmonizer import SumstatsHarmonizer, align_datasets, check_unique_variants
from .liftover import LiftOverPipeline, lift

__all__ = [
    "CASE_CONTROL",
    "QUANTITATIVE",
    "AssociationDataset",
    "AssociationRecord",
    "StudyKey",
    "SumstatsHarmonizer",
    "align_datasets",
    "check_unique_variants",
    "LiftOverPipeline",
    "lift",
]
