"""
Summary Statistics Harmonizer

Standardizes column names and effect scales of raw eQTL/GWAS tables, and
aligns two association datasets on their shared variants.
"""

from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from ..exceptions import DuplicateVariantError
from ..utils.genomics import (
    fold_allele_frequency,
    se_from_confidence_interval,
    standardize_chromosome,
)
from ..utils.logging import get_logger
from .dataset import QUANTITATIVE, AssociationDataset, StudyKey


logger = get_logger("harmonization")


class SumstatsHarmonizer:
    """
    Maps heterogeneous summary statistics onto the standard dataset schema.
    
    The standard schema:
    - variant_id: rsID or positional ID used to match datasets
    - chromosome, position: coordinates (chromosome without "chr")
    - effect_allele, other_allele
    - beta: effect size (log-OR for case-control traits)
    - se: standard error of beta
    - pvalue
    - maf: minor allele frequency
    - n: sample size
    """
    
    # Column name mappings for common formats, first match wins
    COLUMN_MAPPINGS = {
        "variant_id": ["rsid", "variant_id", "snp", "SNP", "RSID", "rs_id", "MarkerName", "ID", "variant"],
        "chromosome": ["chromosome", "chr", "chrom", "#chr", "#chrom", "CHR", "CHROM"],
        "position": ["position", "pos", "bp", "BP", "POS", "base_pair_location"],
        "effect_allele": ["effect_allele", "alt", "a1", "A1", "ALT", "allele1", "ea", "EA", "tested_allele"],
        "other_allele": ["other_allele", "ref", "a2", "A2", "REF", "allele2", "oa", "OA", "non_effect_allele", "nea"],
        "beta": ["beta", "effect", "b", "BETA", "effect_size", "log_odds", "slope"],
        "se": ["se", "standard_error", "stderr", "SE", "StdErr", "slope_se"],
        "pvalue": ["pvalue", "p_value", "pval", "p", "P", "Pvalue", "pval_nominal"],
        "maf": ["maf", "eaf", "effect_allele_frequency", "freq", "af", "frequency", "Freq1"],
        "n": ["n", "sample_size", "N", "n_total", "TotalSampleSize"],
        "odds_ratio": ["odds_ratio", "or", "OR"],
        "ci_lower": ["ci_lower", "lower_ci", "or_lower", "ci_low"],
        "ci_upper": ["ci_upper", "upper_ci", "or_upper", "ci_high"],
        "molecular_trait_id": ["molecular_trait_id", "gene_id", "phenotype_id"],
    }
    
    def _map_columns(self, df: pd.DataFrame) -> Dict[str, str]:
        """
        Map input column names to standard names.
        
        Parameters
        ----------
        df : pd.DataFrame
            Input dataframe.
            
        Returns
        -------
        dict
            Mapping from standard name to actual column name.
        """
        column_map = {}
        input_cols_lower = {c.lower(): c for c in df.columns}
        claimed = set()
        
        for standard_name, variants in self.COLUMN_MAPPINGS.items():
            for variant in variants:
                actual = input_cols_lower.get(variant.lower())
                if actual is not None and actual not in claimed:
                    column_map[standard_name] = actual
                    claimed.add(actual)
                    break
        
        return column_map
    
    def standardize(
        self,
        df: pd.DataFrame,
        study_type: str = QUANTITATIVE,
        key: Optional[StudyKey] = None,
        sample_size: Optional[float] = None,
        case_fraction: Optional[float] = None,
        sd_y: float = 1.0,
    ) -> AssociationDataset:
        """
        Convert a raw summary statistics table into an AssociationDataset.
        
        Odds ratios are converted to log-odds, standard errors are
        recovered from 95% confidence bounds when absent, and allele
        frequencies are folded to minor allele frequencies.
        
        Parameters
        ----------
        df : pd.DataFrame
            Raw summary statistics.
        study_type : str
            "quantitative" or "case-control".
        key : StudyKey, optional
            Study/trait identity.
        sample_size : float, optional
            Sample size when the table has no per-variant N.
        case_fraction : float, optional
            Proportion of cases for case-control studies.
        sd_y : float
            Phenotype standard deviation for quantitative studies.
            
        Returns
        -------
        AssociationDataset
            Validated dataset.
        """
        col_map = self._map_columns(df)
        logger.debug(f"Mapped columns: {col_map}")
        
        out = pd.DataFrame(index=df.index)
        for name in ["chromosome", "position", "effect_allele", "other_allele",
                     "beta", "se", "pvalue", "maf", "n", "molecular_trait_id"]:
            out[name] = df[col_map[name]] if name in col_map else np.nan
        
        if out["chromosome"].notna().any():
            out["chromosome"] = out["chromosome"].map(
                lambda c: standardize_chromosome(c) if pd.notna(c) else c
            )
        
        for allele_col in ["effect_allele", "other_allele"]:
            out[allele_col] = out[allele_col].map(
                lambda a: str(a).strip().upper() if pd.notna(a) else a
            )
        
        out["beta"] = pd.to_numeric(out["beta"], errors="coerce")
        out["se"] = pd.to_numeric(out["se"], errors="coerce")
        
        # Rows whose effect is reported only as an odds ratio
        from_odds_ratio = pd.Series(False, index=out.index)
        if "odds_ratio" in col_map:
            odds_ratio = pd.to_numeric(df[col_map["odds_ratio"]], errors="coerce")
            with np.errstate(divide="ignore", invalid="ignore"):
                log_or = np.log(odds_ratio.where(odds_ratio > 0))
            from_odds_ratio = out["beta"].isna() & log_or.notna()
            out["beta"] = out["beta"].fillna(log_or)
        
        if "ci_lower" in col_map and "ci_upper" in col_map:
            lower, upper = df[col_map["ci_lower"]], df[col_map["ci_upper"]]
            se_ci = se_from_confidence_interval(lower, upper, odds_ratio=False).where(
                ~from_odds_ratio,
                se_from_confidence_interval(lower, upper, odds_ratio=True),
            )
            out["se"] = out["se"].fillna(se_ci)
        
        out["maf"] = fold_allele_frequency(out["maf"])
        
        if "variant_id" in col_map:
            out["variant_id"] = df[col_map["variant_id"]].astype("string")
        else:
            out["variant_id"] = pd.NA
        
        # Fall back to positional IDs where no identifier was reported
        positional = out["chromosome"].notna() & out["position"].notna()
        fill = out["variant_id"].isna() & positional
        if fill.any():
            out.loc[fill, "variant_id"] = (
                "chr" + out.loc[fill, "chromosome"].astype(str)
                + ":" + pd.to_numeric(out.loc[fill, "position"]).astype("Int64").astype(str)
            )
        
        if out["molecular_trait_id"].isna().all():
            out = out.drop(columns="molecular_trait_id")
        
        dataset = AssociationDataset(
            out.reset_index(drop=True),
            study_type=study_type,
            key=key,
            sample_size=sample_size,
            case_fraction=case_fraction,
            sd_y=sd_y,
        )
        logger.info(f"Standardized {len(dataset):,} variants ({dataset!r})")
        return dataset


def check_unique_variants(dataset: AssociationDataset, label: str = "dataset") -> None:
    """Raise DuplicateVariantError if any identifier repeats."""
    duplicated = dataset.duplicated_variants()
    if duplicated:
        preview = ", ".join(duplicated[:5])
        raise DuplicateVariantError(
            f"{label} has {len(duplicated)} duplicated variant identifiers ({preview})",
            variants=duplicated,
        )


def align_datasets(
    first: AssociationDataset,
    second: AssociationDataset,
) -> Tuple[AssociationDataset, AssociationDataset]:
    """
    Restrict two datasets to their shared variants.
    
    Both outputs list the shared variants in the order they appear in
    ``first``, with allele frequencies folded to MAF. An empty overlap
    gives two empty datasets.
    
    Parameters
    ----------
    first, second : AssociationDataset
        Datasets to align, typically eQTL then GWAS.
        
    Returns
    -------
    tuple
        (first_aligned, second_aligned)
        
    Raises
    ------
    DuplicateVariantError
        If either dataset repeats a variant identifier.
    """
    check_unique_variants(first, "first dataset")
    check_unique_variants(second, "second dataset")
    
    second_ids = set(second.variant_ids)
    shared = [v for v in first.variant_ids if v in second_ids]
    
    logger.debug(
        f"Shared variants: {len(shared):,} "
        f"(first: {len(first):,}, second: {len(second):,})"
    )
    
    aligned = []
    for dataset in (first, second):
        subset = dataset.subset(shared)
        table = subset.df.copy()
        table["maf"] = fold_allele_frequency(table["maf"])
        aligned.append(subset.with_frame(table))
    
    return aligned[0], aligned[1]
