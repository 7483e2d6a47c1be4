"""
Error types raised by the colocalisation pipeline.

Per-task errors are caught by the batch runner and recorded as failures;
only BatchFailureError escapes a batch.
"""

from typing import List, Optional, Sequence


class ColocError(Exception):
    """Base class for all pipeline errors."""


class MissingFieldError(ColocError):
    """A variant lacks both (beta, se) and (pvalue, maf, n)."""

    def __init__(self, message: str, variant_id: Optional[str] = None):
        super().__init__(message)
        self.variant_id = variant_id


class DuplicateVariantError(ColocError):
    """A dataset reports the same variant identifier more than once."""

    def __init__(self, message: str, variants: Sequence[str] = ()):
        super().__init__(message)
        self.variants = list(variants)


class InsufficientDataError(ColocError):
    """No usable shared variants remain for a comparison."""


class DegenerateInputError(ColocError):
    """A log Bayes factor is NaN or infinite."""


class FetchError(ColocError):
    """A region or API fetch failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LiftoverError(ColocError):
    """A coordinate could not be lifted to the target assembly."""


class BatchFailureError(ColocError):
    """Every task in a batch failed."""

    def __init__(self, message: str, failures: Optional[List] = None):
        super().__init__(message)
        self.failures = failures or []
