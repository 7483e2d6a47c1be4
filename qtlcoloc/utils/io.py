"""
Reading summary statistics and writing result tables.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
import numpy as np


# Identifiers that pandas would otherwise parse as numbers (chromosome 1,
# numeric gene ids) or mangle (leading zeros)
IDENTIFIER_COLUMNS = [
    "chr", "chromosome", "CHR", "rsid", "SNP", "variant", "variant_id",
    "molecular_trait_id", "gene_id",
]


def read_sumstats(
    filepath: str | Path,
    sep: str = "\t",
    columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Read a (optionally gzipped) summary statistics table.

    Parameters
    ----------
    filepath : str or Path
        Table to read; compression is inferred from the suffix.
    sep : str
        Column separator.
    columns : list, optional
        Restrict to these columns.

    Returns
    -------
    pd.DataFrame
        Raw table, identifier columns kept as strings.
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Summary statistics not found: {filepath}")

    return pd.read_csv(
        filepath,
        sep=sep,
        usecols=columns,
        dtype={c: str for c in IDENTIFIER_COLUMNS},
        low_memory=False,
    )


def write_table(
    df: pd.DataFrame,
    filepath: str | Path,
    sep: str = "\t",
    compress: bool = False,
    index: bool = False,
) -> Path:
    """
    Write a result table, creating parent directories.

    With ``compress`` the output is gzipped and ".gz" appended to the
    name. Returns the path written.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if compress and filepath.suffix != ".gz":
        filepath = filepath.with_name(filepath.name + ".gz")

    df.to_csv(filepath, sep=sep, index=index, compression="gzip" if compress else None)
    return filepath


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that understands numpy scalars and arrays."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def write_json(data: Union[Dict, List], filepath: str | Path, indent: int = 2) -> Path:
    """Write ``data`` as JSON (numpy values converted) and return the path."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w") as f:
        json.dump(data, f, indent=indent, cls=NumpyEncoder)

    return filepath
