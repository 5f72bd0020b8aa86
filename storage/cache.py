"""In-memory universe cache with a scan-generation guard.

Holds one reference to the current Universe. Scans write a fresh Universe
and swap the reference; nothing is mutated in place. Each scan takes a
generation token from ``begin()``. A commit whose token is not newer than
the one already applied is discarded, so a slow old scan can never
overwrite a newer completed one.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from common.errors import ErrorKind
from common.logger import get_logger
from common.models import ScanQuery, ScanStatus, ScoredAsset, Universe
from scoring.filters import filter_and_sort

logger = get_logger("cache")


class UniverseCache:

    def __init__(self):
        self._universe: Optional[Universe] = None
        self._issued = 0
        self._applied = 0
        self._in_flight: set[int] = set()
        self._status = ScanStatus()

    @property
    def current(self) -> Optional[Universe]:
        return self._universe

    @property
    def status(self) -> ScanStatus:
        return self._status.model_copy(update={"scanning": bool(self._in_flight)})

    def hydrate(self, universe: Universe) -> bool:
        """Seed an empty cache from a persisted snapshot."""
        if self._universe is not None:
            return False
        self._universe = universe
        self._status = ScanStatus(
            state="stale",
            message=f"Showing snapshot from {universe.built_at.isoformat()}",
            generation=self._applied,
            updated_at=universe.built_at,
            asset_count=universe.size,
        )
        logger.info(f"Hydrated cache from snapshot: {universe.size} assets")
        return True

    def begin(self) -> int:
        self._issued += 1
        self._in_flight.add(self._issued)
        return self._issued

    def commit(self, token: int, universe: Universe, warnings: Iterable[str] = ()) -> bool:
        self._in_flight.discard(token)
        if token <= self._applied:
            logger.warning(f"Discarding scan #{token}: scan #{self._applied} already applied")
            return False
        self._universe = universe
        self._applied = token
        self._status = ScanStatus(
            state="fresh",
            warnings=list(warnings),
            generation=token,
            updated_at=datetime.now(timezone.utc),
            asset_count=universe.size,
        )
        return True

    def fail(self, token: int, error: Exception, warnings: Iterable[str] = ()) -> bool:
        """Record a scan-level failure. The current universe is kept as-is."""
        self._in_flight.discard(token)
        if token < self._applied:
            logger.warning(f"Ignoring failure of scan #{token}: superseded by scan #{self._applied}")
            return False
        kind = getattr(error, "kind", ErrorKind.INTERNAL)
        self._status = ScanStatus(
            state="stale" if self._universe is not None else "error",
            error_kind=kind.value if isinstance(kind, ErrorKind) else str(kind),
            message=str(error),
            warnings=list(warnings),
            generation=self._applied,
            updated_at=self._status.updated_at,
            asset_count=self._universe.size if self._universe is not None else 0,
        )
        return True

    def get(self, asset_id: str) -> Optional[ScoredAsset]:
        if self._universe is None:
            return None
        return self._universe.assets.get(asset_id)

    def view(self, query: ScanQuery) -> list[ScoredAsset]:
        return filter_and_sort(self._universe, query)
