"""
qtlcoloc

Bayesian colocalisation (coloc.abf) of molecular QTL and GWAS summary
statistics, for single pairs and for batches of studies, tissues and
regions.
"""

__version__ = "1.0.0"

from pathlib import Path

# Package directories
PACKAGE_ROOT = Path(__file__).parent
CONFIG_DIR = PACKAGE_ROOT / "config"

# Submodule imports
from . import exceptions
from . import utils
from . import harmonization
from . import colocalization
from . import datasources

from .colocalization import (
    ColocAnalysis,
    ColocPriors,
    ColocResult,
    ColocTask,
    FailureList,
    ResultsTable,
    evaluate,
    run_batch,
)
from .harmonization import AssociationDataset, StudyKey

__all__ = [
    "exceptions",
    "utils",
    "harmonization",
    "colocalization",
    "datasources",
    "AssociationDataset",
    "StudyKey",
    "ColocAnalysis",
    "ColocPriors",
    "ColocResult",
    "ColocTask",
    "FailureList",
    "ResultsTable",
    "evaluate",
    "run_batch",
    "PACKAGE_ROOT",
    "CONFIG_DIR",
]
