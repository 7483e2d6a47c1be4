"""
eQTL Catalogue Integration

Dataset discovery through the eQTL Catalogue REST API (v2) and task
construction against the tabix-indexed summary statistics on the EBI FTP.

References:
- Kerimov et al. (2021) Nature Genetics: eQTL Catalogue
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..colocalization.batch import ColocTask
from ..exceptions import FetchError
from ..harmonization.dataset import QUANTITATIVE, AssociationDataset, StudyKey
from ..harmonization.harmonizer import SumstatsHarmonizer
from ..utils.genomics import GenomicRegion
from ..utils.logging import get_logger
from .api import APIClient
from .tabix import TabixSource, prepare_eqtl_catalogue_frame


logger = get_logger("eqtl_catalogue")


API_URL = "https://www.ebi.ac.uk/eqtl/api/v2"
FTP_URL = "https://ftp.ebi.ac.uk/pub/databases/spot/eQTL/sumstats"


@dataclass(frozen=True)
class CatalogueSource:
    """Locator for associations served by the eQTL Catalogue API."""
    
    dataset_id: str
    molecular_trait_id: Optional[str] = None
    sample_size: Optional[float] = None


class EQTLCatalogueClient:
    """
    Client for the eQTL Catalogue.
    
    Example
    -------
    >>> client = EQTLCatalogueClient()
    >>> datasets = client.list_datasets(quant_method="ge", tissue_label="liver")
    >>> tasks = client.build_tasks(
    ...     datasets,
    ...     molecular_trait_ids=["ENSG00000134243"],
    ...     region=GenomicRegion("1", 109_000_000, 110_000_000),
    ... )
    """
    
    def __init__(
        self,
        api_url: str = API_URL,
        ftp_url: str = FTP_URL,
        timeout: float = 60,
        page_size: int = 1000,
        api: Optional[APIClient] = None,
    ):
        """
        Initialize the client.
        
        Parameters
        ----------
        api_url : str
            REST API root.
        ftp_url : str
            Root of the tabix-indexed summary statistics.
        timeout : float
            Request timeout in seconds.
        page_size : int
            Records requested per page.
        api : APIClient, optional
            Pre-built API client.
        """
        self.api = api or APIClient(api_url, timeout=timeout)
        self.ftp_url = ftp_url.rstrip("/")
        self.page_size = page_size
        self.harmonizer = SumstatsHarmonizer()
    
    def _paged(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Collect an offset-paginated listing (``start``/``size``)."""
        records: List[Dict[str, Any]] = []
        start = 0
        
        while True:
            query = {**params, "start": start, "size": self.page_size}
            try:
                page = self.api.get_json(path, params=query)
            except FetchError as e:
                # Requests past the last record are answered with 400/404
                if start > 0 and e.status_code in (400, 404):
                    break
                raise
            
            if not page:
                break
            records.extend(page)
            if len(page) < self.page_size:
                break
            start += self.page_size
        
        return records
    
    def list_datasets(self, **filters: Any) -> List[Dict[str, Any]]:
        """
        List datasets, optionally filtered.
        
        Parameters
        ----------
        **filters
            API filters such as study_label, quant_method, tissue_label,
            sample_group.
            
        Returns
        -------
        list
            Dataset metadata records.
        """
        filters = {k: v for k, v in filters.items() if v is not None}
        datasets = self._paged("datasets", filters)
        logger.info(f"Found {len(datasets)} eQTL Catalogue datasets matching {filters}")
        return datasets
    
    def tabix_url(self, dataset: Dict[str, Any]) -> str:
        """URL of a dataset's full summary statistics file."""
        return f"{self.ftp_url}/{dataset['study_id']}/{dataset['dataset_id']}/{dataset['dataset_id']}.all.tsv.gz"
    
    @staticmethod
    def study_key(dataset: Dict[str, Any], molecular_trait_id: str) -> StudyKey:
        tissue = dataset.get("tissue_label") or dataset.get("sample_group") or ""
        condition = dataset.get("condition_label")
        if condition and condition != "naive":
            tissue = f"{tissue} ({condition})"
        return StudyKey(
            study_id=dataset.get("study_label") or dataset["study_id"],
            quant_method=dataset.get("quant_method", "ge"),
            molecular_trait_id=molecular_trait_id,
            tissue=tissue,
        )
    
    def build_tasks(
        self,
        datasets: Iterable[Dict[str, Any]],
        molecular_trait_ids: Sequence[str],
        region: GenomicRegion,
    ) -> List[ColocTask]:
        """
        One tabix-backed task per (dataset, molecular trait).
        
        Parameters
        ----------
        datasets : iterable of dict
            Dataset metadata from ``list_datasets``.
        molecular_trait_ids : sequence of str
            Genes/transcripts to test.
        region : GenomicRegion
            Candidate region.
            
        Returns
        -------
        list
            ColocTask objects.
        """
        tasks = []
        for dataset in datasets:
            for trait_id in molecular_trait_ids:
                source = TabixSource(
                    path=self.tabix_url(dataset),
                    molecular_trait_id=trait_id,
                    study_type=QUANTITATIVE,
                    sample_size=dataset.get("sample_size"),
                )
                tasks.append(ColocTask(self.study_key(dataset, trait_id), region, source))
        return tasks
    
    def fetch_associations(
        self,
        dataset_id: str,
        region: GenomicRegion,
        molecular_trait_id: Optional[str] = None,
    ) -> pd.DataFrame:
        """
        Associations of one dataset in a region, via the REST API.
        
        Parameters
        ----------
        dataset_id : str
            eQTL Catalogue dataset ID (QTD...).
        region : GenomicRegion
            Region to query.
        molecular_trait_id : str, optional
            Restrict to one molecular trait.
            
        Returns
        -------
        pd.DataFrame
            Raw association records.
        """
        params = {"pos": f"{region.chromosome}:{region.start}-{region.end}"}
        if molecular_trait_id:
            params["molecular_trait_id"] = molecular_trait_id
        
        records = self._paged(f"datasets/{dataset_id}/associations", params)
        return pd.DataFrame.from_records(records)
    
    def fetch(self, source: CatalogueSource, region: GenomicRegion) -> AssociationDataset:
        """
        Region fetcher backed by the REST API rather than tabix.
        
        Duplicated variants are removed before the dataset is returned.
        """
        df = self.fetch_associations(source.dataset_id, region, source.molecular_trait_id)
        if df.empty:
            df = pd.DataFrame(columns=["rsid"])
        
        dataset = self.harmonizer.standardize(
            prepare_eqtl_catalogue_frame(df),
            study_type=QUANTITATIVE,
            sample_size=source.sample_size,
        )
        return dataset.drop_duplicate_variants()
