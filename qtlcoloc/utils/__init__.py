"""
Utility functions for the colocalisation pipeline.
"""

from .config import load_config, get_config, load_run_config, merge_config
from .io import read_sumstats, write_table, write_json
from .genomics import GenomicRegion, standardize_chromosome, parse_variant_id
from .logging import setup_logger, get_logger

__all__ = [
    "load_config",
    "get_config",
    "load_run_config",
    "merge_config",
    "read_sumstats",
    "write_table",
    "write_json",
    "GenomicRegion",
    "standardize_chromosome",
    "parse_variant_id",
    "setup_logger",
    "get_logger",
]
