"""
COLOC Bayesian Colocalization

Implements coloc.abf (Giambartolomei et al. 2014): given approximate Bayes
factors for two traits over a shared set of variants, and assuming at most
one causal variant per trait, compute posterior probabilities for

- H0: No association in either trait
- H1: Association with trait 1 only
- H2: Association with trait 2 only
- H3: Both traits associated, different causal variants
- H4: Both traits associated, shared causal variant (colocalization)

Reference:
- Giambartolomei C et al. (2014). Bayesian test for colocalisation between
  pairs of genetic association studies using summary statistics.
  PLOS Genetics. https://doi.org/10.1371/journal.pgen.1004383
"""

import numbers
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from ..exceptions import DegenerateInputError, InsufficientDataError
from ..harmonization.dataset import QUANTITATIVE, AssociationDataset
from ..harmonization.harmonizer import align_datasets
from ..utils.logging import get_logger
from .abf import DEFAULT_PRIOR_SD, summarize_dataset


logger = get_logger("coloc")


HYPOTHESES = ("H0", "H1", "H2", "H3", "H4")

MAF_POLICIES = ("own", "borrow")

# Colocalization interpretation thresholds on PP.H4
COLOC_THRESHOLDS = {
    "strong": 0.8,
    "moderate": 0.5,
    "weak": 0.25,
}


@dataclass(frozen=True)
class ColocPriors:
    """
    Per-variant prior probabilities.
    
    Attributes
    ----------
    p1 : float
        Prior probability a variant is causal for trait 1 only.
    p2 : float
        Prior probability a variant is causal for trait 2 only.
    p12 : float
        Prior probability a variant is causal for both traits.
    """
    
    p1: float = 1e-4
    p2: float = 1e-4
    p12: float = 1e-5
    
    def __post_init__(self):
        for name in ("p1", "p2", "p12"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not 0 < value < 1:
                raise ValueError(f"Prior {name} must lie in (0, 1), got {value!r}")
            object.__setattr__(self, name, float(value))
    
    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ColocPriors":
        defaults = cls()
        return cls(
            p1=float(config.get("p1", defaults.p1)),
            p2=float(config.get("p2", defaults.p2)),
            p12=float(config.get("p12", defaults.p12)),
        )


@dataclass(frozen=True)
class ColocResult:
    """
    Posterior probabilities of the five colocalisation hypotheses.
    
    ``log_bf`` holds the prior-weighted, unnormalised log evidence for
    H0..H4 and ``snp_pp_h4`` the per-variant posterior of being the
    shared causal variant given H4.
    """
    
    pp_h0: float
    pp_h1: float
    pp_h2: float
    pp_h3: float
    pp_h4: float
    nsnps: int
    log_bf: Tuple[float, ...] = ()
    snp_pp_h4: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    dropped_variants: Tuple[str, ...] = ()
    
    @property
    def posteriors(self) -> Tuple[float, float, float, float, float]:
        return (self.pp_h0, self.pp_h1, self.pp_h2, self.pp_h3, self.pp_h4)
    
    @property
    def interpretation(self) -> str:
        for label in ("strong", "moderate", "weak"):
            if self.pp_h4 >= COLOC_THRESHOLDS[label]:
                return label
        return "none"
    
    @property
    def lead_variant(self) -> Optional[str]:
        """Variant with the highest shared-causal posterior."""
        if not self.snp_pp_h4:
            return None
        return max(self.snp_pp_h4, key=self.snp_pp_h4.get)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "nsnps": self.nsnps,
            "pp_h0": self.pp_h0,
            "pp_h1": self.pp_h1,
            "pp_h2": self.pp_h2,
            "pp_h3": self.pp_h3,
            "pp_h4": self.pp_h4,
            "interpretation": self.interpretation,
            "lead_variant": self.lead_variant,
        }


def logdiff(a: float, b: float) -> float:
    """log(exp(a) - exp(b)) for a >= b; -inf when the difference vanishes."""
    if b >= a:
        return -np.inf
    return a + np.log1p(-np.exp(b - a))


def combine_abf(
    labf1: Sequence[float],
    labf2: Sequence[float],
    priors: Optional[ColocPriors] = None,
    variant_ids: Optional[Sequence[str]] = None,
    dropped_variants: Sequence[str] = (),
) -> ColocResult:
    """
    Combine two traits' log ABFs into hypothesis posteriors.
    
    The per-variant prior form is used: summing p1 * ABF1_i over n
    variants equals the mean ABF weighted by n * p1, and likewise for H3
    over the n(n-1) ordered pairs with weight n(n-1) * p1 * p2.
    
    Parameters
    ----------
    labf1, labf2 : sequence of float
        Log ABFs for traits 1 and 2, aligned by position.
    priors : ColocPriors, optional
        Prior probabilities. Defaults to p1=p2=1e-4, p12=1e-5.
    variant_ids : sequence of str, optional
        Identifiers for the per-variant H4 posteriors.
    dropped_variants : sequence of str
        Recorded on the result for reference.
        
    Returns
    -------
    ColocResult
        Posterior probabilities summing to 1.
        
    Raises
    ------
    InsufficientDataError
        If there are no variants.
    DegenerateInputError
        If any log ABF is NaN or infinite.
    """
    priors = priors or ColocPriors()
    
    labf1 = np.asarray(labf1, dtype=float)
    labf2 = np.asarray(labf2, dtype=float)
    
    if labf1.shape != labf2.shape:
        raise ValueError(f"Bayes factor vectors differ in length: {labf1.shape} vs {labf2.shape}")
    
    n = labf1.size
    if n < 1:
        raise InsufficientDataError("No shared variants to colocalise")
    
    if not (np.isfinite(labf1).all() and np.isfinite(labf2).all()):
        raise DegenerateInputError("Non-finite log Bayes factor in colocalisation input")
    
    lsum1 = logsumexp(labf1)
    lsum2 = logsumexp(labf2)
    labf12 = labf1 + labf2
    lsum12 = logsumexp(labf12)
    
    lh0 = 0.0
    lh1 = np.log(priors.p1) + lsum1
    lh2 = np.log(priors.p2) + lsum2
    # All ordered pairs i != j: (sum_i ABF1_i)(sum_j ABF2_j) - sum_i ABF1_i ABF2_i
    lh3 = np.log(priors.p1) + np.log(priors.p2) + logdiff(lsum1 + lsum2, lsum12)
    lh4 = np.log(priors.p12) + lsum12
    
    log_bf = np.array([lh0, lh1, lh2, lh3, lh4])
    pp = np.exp(log_bf - logsumexp(log_bf))
    
    if variant_ids is None:
        variant_ids = [str(i) for i in range(n)]
    snp_pp_h4 = MappingProxyType(dict(zip(variant_ids, np.exp(labf12 - lsum12).tolist())))
    
    return ColocResult(
        pp_h0=float(pp[0]),
        pp_h1=float(pp[1]),
        pp_h2=float(pp[2]),
        pp_h3=float(pp[3]),
        pp_h4=float(pp[4]),
        nsnps=n,
        log_bf=tuple(float(x) for x in log_bf),
        snp_pp_h4=snp_pp_h4,
        dropped_variants=tuple(dropped_variants),
    )


class ColocAnalysis:
    """
    Bayesian colocalization analysis between an eQTL and a GWAS dataset.
    
    Composes shared-variant alignment, per-dataset Bayes factors and the
    hypothesis combination. Instances hold configuration only and are
    safe to share between threads.
    """
    
    def __init__(
        self,
        priors: Optional[ColocPriors] = None,
        prior_sd: Optional[Mapping[str, float]] = None,
        maf_policy: str = "own",
        strict: bool = False,
    ):
        """
        Initialize COLOC parameters.
        
        Parameters
        ----------
        priors : ColocPriors, optional
            Per-variant prior probabilities.
        prior_sd : dict, optional
            Prior effect SD per study type; missing types use the
            defaults (0.15 quantitative, 0.2 case-control).
        maf_policy : str
            "own": each dataset uses its own MAF. "borrow": a dataset
            missing MAF for a shared variant takes the partner's MAF.
        strict : bool
            Fail on variants lacking usable fields instead of dropping.
        """
        if maf_policy not in MAF_POLICIES:
            raise ValueError(f"Invalid maf_policy: {maf_policy}. Must be one of {MAF_POLICIES}")
        
        self.priors = priors or ColocPriors()
        self.prior_sd = {**DEFAULT_PRIOR_SD, **(prior_sd or {})}
        self.maf_policy = maf_policy
        self.strict = strict
    
    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ColocAnalysis":
        """Build from the ``coloc`` section of a configuration."""
        return cls(
            priors=ColocPriors.from_config(config),
            prior_sd=config.get("prior_sd"),
            maf_policy=config.get("maf_policy", "own"),
            strict=bool(config.get("strict", False)),
        )
    
    def _prior_sd_for(self, dataset: AssociationDataset) -> float:
        sd = self.prior_sd[dataset.study_type]
        if dataset.study_type == QUANTITATIVE:
            sd *= dataset.sd_y
        return sd
    
    def _share_maf(
        self,
        first: AssociationDataset,
        second: AssociationDataset,
    ) -> Tuple[AssociationDataset, AssociationDataset]:
        """Fill each aligned dataset's missing MAF from its partner."""
        df1 = first.df.copy()
        df2 = second.df.copy()
        maf1 = df1["maf"].to_numpy()
        maf2 = df2["maf"].to_numpy()
        
        n_borrowed = int(np.isnan(maf1).sum() + np.isnan(maf2).sum())
        df1["maf"] = np.where(np.isnan(maf1), maf2, maf1)
        df2["maf"] = np.where(np.isnan(maf2), maf1, maf2)
        if n_borrowed:
            logger.debug(f"Borrowed MAF for {n_borrowed} variant entries")
        
        return first.with_frame(df1), second.with_frame(df2)
    
    def evaluate(
        self,
        eqtl_dataset: AssociationDataset,
        gwas_dataset: AssociationDataset,
    ) -> ColocResult:
        """
        Run coloc.abf between an eQTL and a GWAS dataset.
        
        Parameters
        ----------
        eqtl_dataset : AssociationDataset
            Trait 1 summary statistics.
        gwas_dataset : AssociationDataset
            Trait 2 summary statistics.
            
        Returns
        -------
        ColocResult
            Posterior probabilities over the shared variants.
            
        Raises
        ------
        DuplicateVariantError
            If either dataset repeats a variant identifier.
        InsufficientDataError
            If no usable shared variants remain.
        MissingFieldError
            In strict mode, for variants lacking usable fields.
        DegenerateInputError
            If a Bayes factor is not finite.
        """
        eqtl_aligned, gwas_aligned = align_datasets(eqtl_dataset, gwas_dataset)
        
        if len(eqtl_aligned) == 0:
            raise InsufficientDataError(
                f"No shared variants between {eqtl_dataset!r} and {gwas_dataset!r}"
            )
        
        if self.maf_policy == "borrow":
            eqtl_aligned, gwas_aligned = self._share_maf(eqtl_aligned, gwas_aligned)
        
        bf1 = summarize_dataset(eqtl_aligned, self._prior_sd_for(eqtl_aligned), strict=self.strict)
        bf2 = summarize_dataset(gwas_aligned, self._prior_sd_for(gwas_aligned), strict=self.strict)
        
        shared = bf1.log_abf.index.intersection(bf2.log_abf.index, sort=False)
        dropped = tuple(dict.fromkeys(bf1.dropped + bf2.dropped))
        
        result = combine_abf(
            bf1.log_abf.loc[shared].to_numpy(),
            bf2.log_abf.loc[shared].to_numpy(),
            priors=self.priors,
            variant_ids=list(shared),
            dropped_variants=dropped,
        )
        
        logger.debug(
            f"coloc.abf over {result.nsnps} variants: "
            f"PP.H3={result.pp_h3:.3f}, PP.H4={result.pp_h4:.3f}"
        )
        return result


def evaluate(
    eqtl_dataset: AssociationDataset,
    gwas_dataset: AssociationDataset,
    priors: Optional[ColocPriors] = None,
    **kwargs,
) -> ColocResult:
    """
    Convenience function to run COLOC on one dataset pair.
    
    Parameters
    ----------
    eqtl_dataset : AssociationDataset
        Trait 1 (eQTL) summary statistics.
    gwas_dataset : AssociationDataset
        Trait 2 (GWAS) summary statistics.
    priors : ColocPriors, optional
        Prior probabilities.
    **kwargs
        Further arguments for ColocAnalysis (prior_sd, maf_policy, strict).
        
    Returns
    -------
    ColocResult
        COLOC posterior probabilities.
    """
    analyzer = ColocAnalysis(priors=priors, **kwargs)
    return analyzer.evaluate(eqtl_dataset, gwas_dataset)
