"""
Shared fixtures: small synthetic association datasets.
"""

import numpy as np
import pandas as pd
import pytest

from qtlcoloc.harmonization.dataset import QUANTITATIVE, AssociationDataset, StudyKey


def dataset_from_z(z, variant_ids=None, se=0.1, study_type=QUANTITATIVE, **kwargs):
    """Dataset whose betas give the requested z-scores at a fixed SE."""
    z = np.asarray(z, dtype=float)
    if variant_ids is None:
        variant_ids = [f"rs{i + 1}" for i in range(len(z))]
    df = pd.DataFrame({
        "variant_id": variant_ids,
        "chromosome": "1",
        "position": [1000 + 100 * i for i in range(len(z))],
        "beta": z * se,
        "se": se,
        "maf": 0.3,
    })
    return AssociationDataset(df, study_type=study_type, **kwargs)


@pytest.fixture
def make_dataset():
    return dataset_from_z


@pytest.fixture
def shared_signal():
    """eQTL and GWAS driven by the same lead variant (rs1)."""
    eqtl = dataset_from_z([5.0, 0.5, 0.2], key=StudyKey("GTEx", tissue="liver"))
    gwas = dataset_from_z([5.0, 0.5, 0.2], key=StudyKey("GCST000001", quant_method="gwas"))
    return eqtl, gwas


@pytest.fixture
def distinct_signals():
    """eQTL led by rs1, GWAS led by rs3."""
    eqtl = dataset_from_z([6.0, 0.5, 0.5])
    gwas = dataset_from_z([0.5, 0.5, 6.0])
    return eqtl, gwas
