"""
Approximate Bayes Factors

Wakefield approximate Bayes factors for single-dataset summary statistics,
computed in log space. Each variant uses (beta, se) when both are present,
otherwise (pvalue, maf, n).

Reference:
- Wakefield J (2009). Bayes factors for genome-wide association studies:
  comparison with P-values. Genetic Epidemiology.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..exceptions import DegenerateInputError, InsufficientDataError, MissingFieldError
from ..harmonization.dataset import CASE_CONTROL, QUANTITATIVE, AssociationDataset
from ..utils.logging import get_logger


logger = get_logger("abf")


# Prior standard deviation of the true effect (beta, or log-OR)
DEFAULT_PRIOR_SD = {
    QUANTITATIVE: 0.15,
    CASE_CONTROL: 0.2,
}


@dataclass(frozen=True)
class BayesFactorSummary:
    """
    Per-variant log approximate Bayes factors for one dataset.
    
    Attributes
    ----------
    log_abf : pd.Series
        Log ABF indexed by variant identifier, in dataset order.
    dropped : tuple
        Variants without enough fields to compute a Bayes factor.
    """
    
    log_abf: pd.Series
    dropped: Tuple[str, ...] = field(default_factory=tuple)
    
    @property
    def n_variants(self) -> int:
        return len(self.log_abf)
    
    def as_dict(self) -> Dict[str, float]:
        return self.log_abf.to_dict()


def log_abf(
    z: np.ndarray,
    variance: np.ndarray,
    prior_sd: float,
) -> np.ndarray:
    """
    Log approximate Bayes factor for association.
    
    With prior variance W = prior_sd^2 and shrinkage r = W / (W + V):
    
        lABF = 0.5 * log(1 - r) + 0.5 * r * z^2
    
    Parameters
    ----------
    z : np.ndarray
        Z-scores.
    variance : np.ndarray
        Variance of the effect estimate, V.
    prior_sd : float
        Prior standard deviation of the effect size.
        
    Returns
    -------
    np.ndarray
        Log ABFs.
    """
    prior_var = prior_sd ** 2
    r = prior_var / (prior_var + variance)
    return 0.5 * np.log1p(-r) + 0.5 * r * z ** 2


def variance_from_maf(
    maf: np.ndarray,
    n: np.ndarray,
    study_type: str = QUANTITATIVE,
    sd_y: float = 1.0,
    case_fraction: Optional[float] = None,
) -> np.ndarray:
    """
    Expected variance of the effect estimate from MAF and sample size.
    
    Quantitative: V = sd_y^2 / (2 N f (1 - f))
    Case-control: V = 1 / (2 N f (1 - f) s (1 - s))
    """
    base = 2 * n * maf * (1 - maf)
    if study_type == CASE_CONTROL:
        if case_fraction is None:
            raise ValueError("case_fraction is required for case-control p-value Bayes factors")
        return 1.0 / (base * case_fraction * (1 - case_fraction))
    return sd_y ** 2 / base


def pvalue_to_z(pvalue: np.ndarray) -> np.ndarray:
    """Unsigned z-score for a two-sided p-value."""
    return stats.norm.isf(np.asarray(pvalue, dtype=float) / 2)


def summarize_dataset(
    dataset: AssociationDataset,
    prior_sd: Optional[float] = None,
    strict: bool = False,
) -> BayesFactorSummary:
    """
    Compute per-variant log ABFs for a dataset.
    
    Parameters
    ----------
    dataset : AssociationDataset
        Validated summary statistics.
    prior_sd : float, optional
        Prior SD of the effect size. Defaults to 0.15 (x sd_y) for
        quantitative and 0.2 for case-control studies.
    strict : bool
        Raise on the first variant lacking usable fields instead of
        dropping it.
        
    Returns
    -------
    BayesFactorSummary
        Log ABFs for usable variants plus the dropped identifiers.
        
    Raises
    ------
    MissingFieldError
        In strict mode, for the first unusable variant.
    InsufficientDataError
        If no variant is usable.
    DegenerateInputError
        If a usable variant has an infinite beta, se, pvalue, maf or n.
    """
    df = dataset.df
    
    if prior_sd is None:
        prior_sd = DEFAULT_PRIOR_SD[dataset.study_type]
        if dataset.study_type == QUANTITATIVE:
            prior_sd *= dataset.sd_y
    
    has_estimate = (df["beta"].notna() & df["se"].notna()).to_numpy()
    has_pvalue = (df["pvalue"].notna() & df["maf"].notna() & df["n"].notna()).to_numpy()
    if dataset.study_type == CASE_CONTROL and dataset.case_fraction is None:
        has_pvalue = np.zeros(len(df), dtype=bool)
    
    usable = has_estimate | has_pvalue
    dropped = tuple(df.loc[~usable, "variant_id"])
    
    if dropped:
        if strict:
            raise MissingFieldError(
                f"Variant {dropped[0]} has neither (beta, se) nor (pvalue, maf, n)",
                variant_id=dropped[0],
            )
        logger.warning(
            f"Dropping {len(dropped)} variants without (beta, se) or (pvalue, maf, n)"
        )
    
    if not usable.any():
        raise InsufficientDataError(f"No usable variants in {dataset!r}")
    
    beta = df["beta"].to_numpy(dtype=float)
    se = df["se"].to_numpy(dtype=float)
    from_pvalue = has_pvalue & ~has_estimate
    
    inputs = {
        "beta": has_estimate,
        "se": has_estimate,
        "pvalue": from_pvalue,
        "maf": from_pvalue,
        "n": from_pvalue,
    }
    for col, used in inputs.items():
        bad = used & ~np.isfinite(df[col].to_numpy(dtype=float))
        if bad.any():
            variant_id = df["variant_id"].to_numpy()[bad][0]
            raise DegenerateInputError(
                f"Non-finite '{col}' for variant {variant_id} in {dataset!r}"
            )
    
    variance = np.full(len(df), np.nan)
    z = np.full(len(df), np.nan)
    
    variance[has_estimate] = se[has_estimate] ** 2
    z[has_estimate] = beta[has_estimate] / se[has_estimate]
    
    if from_pvalue.any():
        variance[from_pvalue] = variance_from_maf(
            df["maf"].to_numpy(dtype=float)[from_pvalue],
            df["n"].to_numpy(dtype=float)[from_pvalue],
            study_type=dataset.study_type,
            sd_y=dataset.sd_y,
            case_fraction=dataset.case_fraction,
        )
        z[from_pvalue] = pvalue_to_z(df["pvalue"].to_numpy(dtype=float)[from_pvalue])
    
    with np.errstate(over="ignore", invalid="ignore"):
        labf = log_abf(z[usable], variance[usable], prior_sd)
    
    return BayesFactorSummary(
        log_abf=pd.Series(labf, index=df.loc[usable, "variant_id"].to_numpy(), name="log_abf"),
        dropped=dropped,
    )
