"""
Data sources

External collaborators that hand the colocalisation core clean
AssociationDatasets: tabix region reads, paginated REST APIs, the eQTL
Catalogue and the GWAS Catalog.
"""

from .api import APIClient, fetch_all_pages
from .tabix import EQTL_CATALOGUE_COLUMNS, TabixFetcher, TabixSource
from .eqtl_catalogue import CatalogueSource, EQTLCatalogueClient
from .gwas_catalog import GWASCatalogClient, GWASCatalogSource

__all__ = [
    "APIClient",
    "fetch_all_pages",
    "EQTL_CATALOGUE_COLUMNS",
    "TabixFetcher",
    "TabixSource",
    "CatalogueSource",
    "EQTLCatalogueClient",
    "GWASCatalogClient",
    "GWASCatalogSource",
]
