"""Base provider abstract class.

A provider is the only place that knows a market-data API: which requests
make up one universe fetch, how rows sit in a response payload, and how a
raw row maps onto the canonical AssetRecord.
"""
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Optional

import requests

from common.errors import TransportError
from common.logger import get_logger
from common.models import AssetRecord, ScanConfiguration
from config.settings import HTTP_TIMEOUT
from ingest.fetch import gather_bounded


class BaseProvider(ABC):
    name: str = ""
    BASE_URL: str = ""
    # Multiplier turning the provider's percentage fields into percent points
    PCT_SCALE: float = 1.0

    def __init__(self, base_url: Optional[str] = None,
                 session: Optional[requests.Session] = None,
                 timeout: float = HTTP_TIMEOUT):
        self.logger = get_logger(self.__class__.__name__)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def headers(self) -> dict:
        return {"Accept": "application/json"}

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, params=params, headers=self.headers(),
                                    timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"{self.name} request failed: {e}") from e
        if not resp.ok:
            raise TransportError(f"{self.name} HTTP {resp.status_code} for {path}",
                                 status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{self.name} returned invalid JSON for {path}") from e

    @abstractmethod
    def page_requests(self, config: ScanConfiguration) -> list[tuple[str, dict]]:
        """(path, params) of every request making up one universe fetch."""
        pass

    @abstractmethod
    def shape(self, raw: dict) -> AssetRecord:
        """Map one raw row to an AssetRecord. Raises MalformedDataError."""
        pass

    def rows_from_payload(self, payload: Any) -> list[dict]:
        """Rows of one response. A body that is not a row list (an error object) fails the unit."""
        if not isinstance(payload, list):
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise TransportError(f"{self.name} returned {type(payload).__name__} instead of rows"
                                 + (f": {detail}" if detail else ""))
        return [r for r in payload if isinstance(r, dict)]

    def _fetch_unit(self, path: str, params: dict) -> list[dict]:
        return self.rows_from_payload(self._get(path, params))

    async def fetch_rows(self, config: ScanConfiguration) -> tuple[list[dict], list[str]]:
        """Fetch every page concurrently; return the rows plus per-unit warnings.

        Raises TransportError when no unit succeeded or no rows came back.
        """
        requests_ = self.page_requests(config)
        jobs = [partial(self._fetch_unit, path, params) for path, params in requests_]
        self.logger.info(f"Fetching {len(jobs)} unit(s) from {self.name} "
                         f"(max {config.max_concurrent_requests} in flight)...")
        pages, errors = await gather_bounded(jobs, config.max_concurrent_requests)

        if errors and len(errors) == len(jobs):
            first = errors[0][1]
            raise TransportError(str(first), status_code=first.status_code,
                                 failed_units=len(errors))

        rows: list[dict] = []
        seen: set[str] = set()
        for page in pages:
            if page is None:
                continue
            for row in page:
                key = str(row.get("id", ""))
                if key and key in seen:
                    continue
                seen.add(key)
                rows.append(row)

        if not rows:
            raise TransportError(f"{self.name} returned no rows", failed_units=len(jobs))

        warnings = [f"{self.name} unit {idx + 1}/{len(jobs)} failed: {e}" for idx, e in errors]
        self.logger.info(f"Got {len(rows)} rows from {self.name}")
        return rows, warnings
