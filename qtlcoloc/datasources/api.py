"""
REST API access

Thin requests-based client shared by the eQTL Catalogue and GWAS Catalog
sources. HTTP and network failures surface as FetchError.
"""

from typing import Any, Dict, List, Optional

import requests

from ..exceptions import FetchError
from ..utils.logging import get_logger


logger = get_logger("api")


class APIClient:
    """
    JSON REST client with a base URL, a shared session and a timeout.
    
    Parameters
    ----------
    base_url : str
        API root; relative paths are joined onto it.
    timeout : float
        Per-request timeout in seconds.
    session : requests.Session, optional
        Session to reuse (one is created otherwise).
    """
    
    def __init__(
        self,
        base_url: str,
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
    
    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"
    
    def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        GET a JSON document.
        
        Raises
        ------
        FetchError
            On connection errors, timeouts, non-2xx status or invalid JSON.
            The HTTP status (if any) is kept on ``status_code``.
        """
        url = self.url_for(path)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status = getattr(e.response, "status_code", None)
            raise FetchError(f"HTTP {status} from {url}", status_code=status) from e
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}") from e
    
    def fetch_all_pages(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        embedded_key: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Collect records from a HAL-paginated endpoint.
        
        Follows ``_links.next.href`` until no further page is offered and
        concatenates the records under ``_embedded``. Records are returned
        as served, without de-duplication.
        
        Parameters
        ----------
        path : str
            First page, relative to the base URL or absolute.
        params : dict, optional
            Query parameters for the first page; later pages use the
            ``next`` link as given.
        embedded_key : str, optional
            Key under ``_embedded`` holding the records. Defaults to the
            first key present.
        max_pages : int, optional
            Stop after this many pages.
            
        Returns
        -------
        list
            All records.
        """
        records: List[Dict[str, Any]] = []
        url: Optional[str] = self.url_for(path)
        seen = set()
        n_pages = 0
        
        while url and url not in seen:
            seen.add(url)
            payload = self.get_json(url, params=params if n_pages == 0 else None)
            n_pages += 1
            
            embedded = payload.get("_embedded") or {}
            key = embedded_key or next(iter(embedded), None)
            page = embedded.get(key, []) if key else []
            
            # Some endpoints index records by position instead of listing them
            if isinstance(page, dict):
                page = list(page.values())
            records.extend(page)
            
            if max_pages is not None and n_pages >= max_pages:
                break
            url = ((payload.get("_links") or {}).get("next") or {}).get("href")
        
        logger.debug(f"Fetched {len(records)} records over {n_pages} page(s) from {path}")
        return records


def fetch_all_pages(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    embedded_key: Optional[str] = None,
    timeout: float = 60,
    session: Optional[requests.Session] = None,
) -> List[Dict[str, Any]]:
    """
    Convenience function: collect all records from a paginated URL.
    
    See APIClient.fetch_all_pages.
    """
    client = APIClient(url, timeout=timeout, session=session)
    return client.fetch_all_pages(url, params=params, embedded_key=embedded_key)
