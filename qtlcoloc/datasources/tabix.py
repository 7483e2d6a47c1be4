"""
Tabix Region Fetcher

Reads one region of a bgzipped, tabix-indexed summary statistics file
(local or http/ftp) with the ``tabix`` executable.
"""

import io
import subprocess
from dataclasses import dataclass
from typing import Optional, Tuple

import pandas as pd

from ..exceptions import FetchError
from ..harmonization.dataset import QUANTITATIVE, AssociationDataset
from ..harmonization.harmonizer import SumstatsHarmonizer
from ..utils.genomics import GenomicRegion
from ..utils.logging import get_logger


logger = get_logger("tabix")


# Column layout of eQTL Catalogue "*.all.tsv.gz" summary statistics
EQTL_CATALOGUE_COLUMNS = (
    "molecular_trait_id",
    "chromosome",
    "position",
    "ref",
    "alt",
    "variant",
    "ma_samples",
    "maf",
    "pvalue",
    "beta",
    "se",
    "type",
    "ac",
    "an",
    "r2",
    "molecular_trait_object_id",
    "gene_id",
    "median_tpm",
    "rsid",
)


def prepare_eqtl_catalogue_frame(
    df: pd.DataFrame,
    variant_column: str = "rsid",
) -> pd.DataFrame:
    """
    Rename eQTL Catalogue columns so the harmonizer maps them unambiguously.
    
    ``variant_column`` selects which identifier ("rsid" or the positional
    "variant") becomes ``variant_id``. Sample size is taken as half the
    allele number.
    """
    df = df.copy()
    
    if variant_column not in df.columns:
        raise FetchError(f"Column '{variant_column}' not present in eQTL Catalogue data")
    
    identifier = df[variant_column]
    df = df.drop(columns=[c for c in ("rsid", "variant", "variant_id") if c in df.columns])
    df["variant_id"] = identifier
    
    if "an" in df.columns:
        df["n"] = pd.to_numeric(df["an"], errors="coerce") / 2
        df = df.drop(columns="an")
    
    # gene_id would otherwise compete with molecular_trait_id
    if "molecular_trait_id" in df.columns and "gene_id" in df.columns:
        df = df.drop(columns="gene_id")
    
    return df.rename(columns={"ref": "other_allele", "alt": "effect_allele"})


@dataclass(frozen=True)
class TabixSource:
    """
    Locator for one study/tissue summary statistics file.
    
    Attributes
    ----------
    path : str
        Local path or http/ftp URL of the bgzipped file.
    molecular_trait_id : str, optional
        Keep only rows for this molecular trait (gene, transcript, ...).
    study_type : str
        "quantitative" or "case-control".
    sample_size : float, optional
        Sample size when rows carry none.
    columns : tuple
        Column names of the headerless tabix output.
    variant_column : str
        Column used as the variant identifier.
    chrom_prefix : str
        Contig prefix used by the file ("chr" or "").
    """
    
    path: str
    molecular_trait_id: Optional[str] = None
    study_type: str = QUANTITATIVE
    sample_size: Optional[float] = None
    columns: Tuple[str, ...] = EQTL_CATALOGUE_COLUMNS
    variant_column: str = "rsid"
    chrom_prefix: str = ""


class TabixFetcher:
    """
    Fetches regions from tabix-indexed files into AssociationDatasets.
    """
    
    def __init__(
        self,
        tabix_bin: str = "tabix",
        timeout: float = 300,
        remove_duplicates: bool = True,
    ):
        """
        Initialize the fetcher.
        
        Parameters
        ----------
        tabix_bin : str
            Name or path of the tabix executable.
        timeout : float
            Seconds before a fetch is abandoned.
        remove_duplicates : bool
            Drop variants reported more than once (multi-allelic sites).
        """
        self.tabix_bin = tabix_bin
        self.timeout = timeout
        self.remove_duplicates = remove_duplicates
        self.harmonizer = SumstatsHarmonizer()
    
    def _run_tabix(self, path: str, region: str) -> str:
        cmd = [self.tabix_bin, path, region]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise FetchError(f"tabix executable not found: {self.tabix_bin}") from e
        except subprocess.TimeoutExpired as e:
            raise FetchError(f"tabix timed out after {self.timeout}s on {path}:{region}") from e
        except subprocess.CalledProcessError as e:
            raise FetchError(f"tabix failed on {path}:{region}: {e.stderr.strip()}") from e
        return result.stdout
    
    def read_region(self, source: TabixSource, region: GenomicRegion) -> pd.DataFrame:
        """Raw rows of ``source`` inside ``region``."""
        query = f"{source.chrom_prefix}{region}"
        logger.debug(f"tabix {source.path} {query}")
        output = self._run_tabix(source.path, query)
        
        if not output.strip():
            return pd.DataFrame(columns=list(source.columns))
        
        df = pd.read_csv(
            io.StringIO(output),
            sep="\t",
            header=None,
            names=list(source.columns),
            dtype=str,
        )
        
        if source.molecular_trait_id is not None and "molecular_trait_id" in df.columns:
            df = df[df["molecular_trait_id"] == source.molecular_trait_id]
        
        return df
    
    def fetch(self, source: TabixSource, region: GenomicRegion) -> AssociationDataset:
        """
        Fetch one region of one source as an AssociationDataset.
        
        Parameters
        ----------
        source : TabixSource
            File locator and parsing options.
        region : GenomicRegion
            Region to read.
            
        Returns
        -------
        AssociationDataset
            Standardized dataset (possibly empty).
            
        Raises
        ------
        FetchError
            If tabix cannot be run or fails.
        """
        df = prepare_eqtl_catalogue_frame(
            self.read_region(source, region), variant_column=source.variant_column
        )
        dataset = self.harmonizer.standardize(
            df,
            study_type=source.study_type,
            sample_size=source.sample_size,
        )
        
        if self.remove_duplicates:
            dataset = dataset.drop_duplicate_variants()
        
        logger.info(f"Fetched {len(dataset):,} variants from {source.path} ({region})")
        return dataset
