"""
Colocalization Module

Implements Bayesian colocalization testing (coloc.abf) to assess whether
eQTL and GWAS signals share a common causal variant.

Key components:
- summarize_dataset: per-variant approximate Bayes factors
- ColocAnalysis / evaluate: single-pair colocalisation
- run_batch: many contexts against one GWAS, with per-task failures
"""

from .abf import BayesFactorSummary, log_abf, summarize_dataset
from .coloc import (
    ColocAnalysis,
    ColocPriors,
    ColocResult,
    combine_abf,
    evaluate,
)
from .batch import (
    ColocTask,
    FailureList,
    ResultsTable,
    TaskFailure,
    TaskOutcome,
    run_batch,
)

__all__ = [
    # Bayes factors
    "BayesFactorSummary",
    "log_abf",
    "summarize_dataset",
    # Core colocalization
    "ColocAnalysis",
    "ColocPriors",
    "ColocResult",
    "combine_abf",
    "evaluate",
    # Batch
    "ColocTask",
    "FailureList",
    "ResultsTable",
    "TaskFailure",
    "TaskOutcome",
    "run_batch",
]
