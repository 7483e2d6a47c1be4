"""
Typed association records and datasets.

An AssociationDataset is a validated table of per-variant summary
statistics for one study/trait context. Validation happens once, here,
so the Bayes-factor code can assume clean numeric columns.
"""

import copy
from dataclasses import asdict, dataclass, fields
from typing import Iterable, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..exceptions import MissingFieldError
from ..utils.genomics import GenomicRegion, standardize_chromosome
from ..utils.logging import get_logger


logger = get_logger("dataset")


QUANTITATIVE = "quantitative"
CASE_CONTROL = "case-control"
STUDY_TYPES = (QUANTITATIVE, CASE_CONTROL)

STANDARD_COLUMNS = [
    "variant_id",
    "chromosome",
    "position",
    "effect_allele",
    "other_allele",
    "beta",
    "se",
    "pvalue",
    "maf",
    "n",
]
NUMERIC_COLUMNS = ["position", "beta", "se", "pvalue", "maf", "n"]


@dataclass(frozen=True, order=True)
class StudyKey:
    """
    Identity of one study/trait context.
    
    Field order defines the lexicographic ordering used to break ties
    when ranking results.
    """
    
    study_id: str
    quant_method: str = "ge"
    molecular_trait_id: str = ""
    tissue: str = ""
    
    @property
    def label(self) -> str:
        return "/".join(
            [self.study_id, self.quant_method, self.tissue, self.molecular_trait_id]
        )
    
    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AssociationRecord:
    """
    One variant's association with one molecular trait or phenotype.
    
    Either (beta, se) or (pvalue, maf, n) must be present for the record
    to contribute a Bayes factor.
    """
    
    variant_id: str
    chromosome: Optional[str] = None
    position: Optional[int] = None
    effect_allele: Optional[str] = None
    other_allele: Optional[str] = None
    beta: Optional[float] = None
    se: Optional[float] = None
    pvalue: Optional[float] = None
    maf: Optional[float] = None
    n: Optional[float] = None


class AssociationDataset:
    """
    Validated summary statistics for one study/trait over one region.
    
    Parameters
    ----------
    df : pd.DataFrame
        Table with at least a ``variant_id`` column; other standard
        columns are optional and filled with missing values.
    study_type : str
        "quantitative" or "case-control".
    key : StudyKey, optional
        Study/trait identity.
    sample_size : float, optional
        Sample size used where the per-variant ``n`` is missing.
    case_fraction : float, optional
        Proportion of cases (case-control studies only).
    sd_y : float
        Phenotype standard deviation (quantitative studies only).
    """
    
    def __init__(
        self,
        df: pd.DataFrame,
        study_type: str = QUANTITATIVE,
        key: Optional[StudyKey] = None,
        sample_size: Optional[float] = None,
        case_fraction: Optional[float] = None,
        sd_y: float = 1.0,
    ):
        if study_type not in STUDY_TYPES:
            raise ValueError(f"Invalid study_type: {study_type}. Must be one of {STUDY_TYPES}")
        if case_fraction is not None and not 0 < case_fraction < 1:
            raise ValueError(f"case_fraction must lie in (0, 1), got {case_fraction}")
        if sample_size is not None and sample_size <= 0:
            raise ValueError(f"sample_size must be positive, got {sample_size}")
        if sd_y <= 0:
            raise ValueError(f"sd_y must be positive, got {sd_y}")
        
        self.study_type = study_type
        self.key = key
        self.sample_size = sample_size
        self.case_fraction = case_fraction
        self.sd_y = sd_y
        self._df = self._validate(df)
    
    def _validate(self, df: pd.DataFrame) -> pd.DataFrame:
        if "variant_id" not in df.columns:
            raise MissingFieldError("Association table has no 'variant_id' column")
        
        table = df.copy()
        for col in STANDARD_COLUMNS:
            if col not in table.columns:
                table[col] = np.nan
        
        missing_id = table["variant_id"].isna()
        if missing_id.any():
            logger.warning(f"Dropping {missing_id.sum()} rows without a variant identifier")
            table = table[~missing_id]
        table["variant_id"] = table["variant_id"].astype(str)
        
        for col in NUMERIC_COLUMNS:
            table[col] = pd.to_numeric(table[col], errors="coerce")
        
        if table["chromosome"].notna().any():
            table["chromosome"] = table["chromosome"].map(
                lambda c: standardize_chromosome(c) if pd.notna(c) else c
            )
        
        if self.sample_size is not None:
            table["n"] = table["n"].fillna(self.sample_size)
        
        # Out-of-range values are treated as missing rather than fatal
        invalid = {
            "se": ~(table["se"] > 0),
            "n": ~(table["n"] > 0),
            "maf": ~((table["maf"] > 0) & (table["maf"] < 1)),
            "pvalue": ~((table["pvalue"] > 0) & (table["pvalue"] <= 1)),
        }
        for col, mask in invalid.items():
            bad = mask & table[col].notna()
            if bad.any():
                logger.warning(f"{bad.sum()} variants with out-of-range '{col}' set to missing")
            table.loc[mask, col] = np.nan
        
        columns = STANDARD_COLUMNS + [c for c in table.columns if c not in STANDARD_COLUMNS]
        return table[columns].reset_index(drop=True)
    
    @classmethod
    def from_records(
        cls,
        records: Iterable[AssociationRecord],
        **kwargs,
    ) -> "AssociationDataset":
        """Build a dataset from AssociationRecord objects."""
        rows = [asdict(r) for r in records]
        df = pd.DataFrame(rows, columns=[f.name for f in fields(AssociationRecord)])
        return cls(df, **kwargs)
    
    @property
    def df(self) -> pd.DataFrame:
        """Underlying table. Treat as read-only; use ``with_frame`` to change it."""
        return self._df
    
    @property
    def variant_ids(self) -> List[str]:
        return self._df["variant_id"].tolist()
    
    def __len__(self) -> int:
        return len(self._df)
    
    def __repr__(self) -> str:
        label = self.key.label if self.key else "unkeyed"
        return f"AssociationDataset({label}, {self.study_type}, n_variants={len(self)})"
    
    def records(self) -> Iterator[AssociationRecord]:
        names = [f.name for f in fields(AssociationRecord)]
        for row in self._df[names].itertuples(index=False):
            values = {k: (None if pd.isna(v) else v) for k, v in zip(names, row)}
            yield AssociationRecord(**values)
    
    def with_frame(self, df: pd.DataFrame) -> "AssociationDataset":
        """Copy of this dataset's metadata around a new table."""
        return AssociationDataset(
            df,
            study_type=self.study_type,
            key=self.key,
            sample_size=self.sample_size,
            case_fraction=self.case_fraction,
            sd_y=self.sd_y,
        )
    
    def with_key(self, key: StudyKey) -> "AssociationDataset":
        dataset = copy.copy(self)
        dataset.key = key
        return dataset
    
    def duplicated_variants(self) -> List[str]:
        """Identifiers that occur more than once, in first-seen order."""
        dup = self._df["variant_id"][self._df["variant_id"].duplicated()]
        return list(dict.fromkeys(dup))
    
    def drop_duplicate_variants(self) -> "AssociationDataset":
        """
        Remove every copy of a repeated variant identifier.
        
        Multi-allelic sites reported under one rsID cannot be matched
        unambiguously, so none of their rows are kept.
        """
        mask = self._df["variant_id"].duplicated(keep=False)
        if mask.any():
            logger.info(
                f"Removing {mask.sum()} rows for {len(self.duplicated_variants())} duplicated variants"
            )
        return self.with_frame(self._df[~mask])
    
    def subset(self, variant_ids: Sequence[str]) -> "AssociationDataset":
        """Rows for ``variant_ids``, in that order. IDs must be unique in the dataset."""
        indexed = self._df.set_index("variant_id", drop=False)
        return self.with_frame(indexed.loc[list(variant_ids)].reset_index(drop=True))
    
    def subset_region(self, region: GenomicRegion) -> "AssociationDataset":
        """
        Rows inside ``region``. Rows without coordinates are kept, since
        they can only be placed by matching identifiers.
        """
        table = self._df
        located = table["chromosome"].notna() & table["position"].notna()
        inside = (
            (table["chromosome"].astype(str) == region.chromosome)
            & (table["position"] >= region.start)
            & (table["position"] <= region.end)
        )
        return self.with_frame(table[~located | inside])
