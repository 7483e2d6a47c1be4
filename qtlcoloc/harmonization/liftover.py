"""
LiftOver for Genomic Coordinates

Converts GWAS coordinates between genome assemblies so they can be matched
against eQTL data on the same build. Backed by the ``liftover`` package.
"""

from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ..exceptions import LiftoverError
from ..utils.genomics import make_variant_id, parse_variant_id, standardize_chromosome
from ..utils.logging import get_logger
from .dataset import AssociationDataset


logger = get_logger("liftover")


ASSEMBLY_ALIASES = {
    "grch37": "hg19",
    "hg19": "hg19",
    "grch38": "hg38",
    "hg38": "hg38",
}


def normalize_assembly(assembly: str) -> str:
    """Map GRCh37/GRCh38 style names onto the UCSC names used by chain files."""
    try:
        return ASSEMBLY_ALIASES[assembly.lower()]
    except KeyError:
        raise ValueError(f"Unsupported assembly: {assembly}") from None


@lru_cache(maxsize=4)
def _get_lifter(source_build: str, target_build: str):
    from liftover import get_lifter
    
    return get_lifter(source_build, target_build)


def lift(
    chrom: str,
    pos: int,
    source_assembly: str,
    target_assembly: str,
) -> Tuple[str, int]:
    """
    Lift a single position between assemblies.
    
    Parameters
    ----------
    chrom : str
        Chromosome ("chr1" or "1").
    pos : int
        Position (1-based).
    source_assembly, target_assembly : str
        Assembly names, e.g. "GRCh37" and "GRCh38".
        
    Returns
    -------
    tuple
        (chromosome, position) in the target assembly.
        
    Raises
    ------
    LiftoverError
        If the position has no mapping.
    """
    return LiftOverPipeline(source_assembly, target_assembly).lift_position(chrom, pos)


class LiftOverPipeline:
    """
    Lifts dataset coordinates between genome builds.
    """
    
    def __init__(
        self,
        source_build: str = "hg19",
        target_build: str = "hg38",
    ):
        """
        Initialize the liftover pipeline.
        
        Parameters
        ----------
        source_build : str
            Source genome build ("hg19"/"GRCh37" or "hg38"/"GRCh38").
        target_build : str
            Target genome build.
        """
        self.source_build = normalize_assembly(source_build)
        self.target_build = normalize_assembly(target_build)
    
    @property
    def lifter(self):
        """Chain-file converter, loaded on first use and shared per build pair."""
        return _get_lifter(self.source_build, self.target_build)
    
    def lift_position(
        self,
        chrom: str,
        pos: int,
    ) -> Tuple[str, int]:
        """
        Lift a single position to the target build.
        
        Parameters
        ----------
        chrom : str
            Chromosome (e.g., "chr1" or "1").
        pos : int
            Position (1-based).
            
        Returns
        -------
        tuple
            (chromosome, position) in target build.
            
        Raises
        ------
        LiftoverError
            If the position does not map.
        """
        if self.source_build == self.target_build:
            return standardize_chromosome(chrom), int(pos)
        
        query = f"chr{standardize_chromosome(chrom)}"
        
        try:
            result = self.lifter.convert_coordinate(query, int(pos))
        except (KeyError, ValueError) as e:
            raise LiftoverError(f"Cannot lift {query}:{pos}: {e}") from e
        
        if not result:
            raise LiftoverError(
                f"No {self.target_build} mapping for {query}:{pos} ({self.source_build})"
            )
        
        new_chrom, new_pos = result[0][0], result[0][1]
        return standardize_chromosome(new_chrom), int(new_pos)
    
    def _try_lift(self, chrom, pos) -> Optional[Tuple[str, int]]:
        if pd.isna(chrom) or pd.isna(pos):
            return None
        try:
            return self.lift_position(chrom, int(pos))
        except LiftoverError:
            return None
    
    def lift_dataset(
        self,
        dataset: AssociationDataset,
        drop_unmapped: bool = True,
    ) -> AssociationDataset:
        """
        Lift the coordinates of every variant in a dataset.
        
        Positional variant IDs ("chr1_123_A_G", "chr1:123") are rebuilt on
        the new coordinates; rsIDs are kept as they are.
        
        Parameters
        ----------
        dataset : AssociationDataset
            Dataset with chromosome and position columns.
        drop_unmapped : bool
            Whether to drop variants that fail liftover. Otherwise their
            position becomes missing.
            
        Returns
        -------
        AssociationDataset
            Dataset on the target build.
        """
        df = dataset.df.copy()
        logger.info(f"Lifting {len(df):,} variants from {self.source_build} to {self.target_build}")
        
        lifted = [self._try_lift(c, p) for c, p in zip(df["chromosome"], df["position"])]
        mapped = np.array([r is not None for r in lifted], dtype=bool)
        
        df["chromosome_original"] = df["chromosome"]
        df["position_original"] = df["position"]
        df["chromosome"] = [r[0] if r else np.nan for r in lifted]
        df["position"] = [r[1] if r else np.nan for r in lifted]
        df["variant_id"] = [
            self._rebuild_id(vid, r) for vid, r in zip(df["variant_id"], lifted)
        ]
        
        n_success = int(mapped.sum())
        logger.info(f"LiftOver: {n_success:,} success, {len(df) - n_success:,} failed")
        
        if drop_unmapped:
            df = df[mapped]
        
        return dataset.with_frame(df)
    
    @staticmethod
    def _rebuild_id(variant_id: str, lifted: Optional[Tuple[str, int]]) -> str:
        if lifted is None:
            return variant_id
        parts = parse_variant_id(variant_id)
        if parts is not None:
            return make_variant_id(lifted[0], lifted[1], parts[2], parts[3])
        if ":" in variant_id and variant_id.split(":")[-1].isdigit():
            return f"chr{lifted[0]}:{lifted[1]}"
        return variant_id
