"""
Scan cycle orchestration.

  narratives (soft) → provider fetch → build universe (synchronous, no
  awaits) → commit to cache (generation-guarded) → persist

Any failure aborts only this cycle: the cached universe stays in place
and the failure is reported through the cache status.
"""
import asyncio
from typing import Awaitable, Callable, Optional

from common.errors import NarrativeUnavailable, TransportError
from common.logger import get_logger, new_scan_id
from common.models import NarrativeLookup, ScanConfiguration, ScanStatus, Universe
from ingest.base import BaseProvider
from ingest.narratives import NarrativeSource
from scoring.universe import build_universe
from storage.cache import UniverseCache

logger = get_logger("scanner")

Persist = Callable[[Universe], Awaitable[None]]


class Scanner:

    def __init__(self, provider: BaseProvider, config: ScanConfiguration,
                 cache: UniverseCache,
                 narratives: Optional[NarrativeSource] = None,
                 persist: Optional[Persist] = None):
        self.provider = provider
        self.config = config
        self.cache = cache
        self.narratives = narratives
        self.persist = persist

    async def _load_narratives(self, warnings: list[str]) -> Optional[NarrativeLookup]:
        if self.narratives is None:
            return None
        try:
            return await asyncio.to_thread(self.narratives.load)
        except NarrativeUnavailable as e:
            logger.warning(f"{e}; using {'cached' if self.narratives.last_good else 'no'} narratives")
            warnings.append(str(e))
            return self.narratives.last_good

    async def scan(self) -> ScanStatus:
        new_scan_id()
        token = self.cache.begin()
        warnings: list[str] = []
        logger.info(f"🔄 Scan #{token} started ({self.provider.name})")

        try:
            lookup = await self._load_narratives(warnings)
            rows, fetch_warnings = await self.provider.fetch_rows(self.config)
            warnings.extend(fetch_warnings)
            universe = build_universe(rows, self.provider, self.config, lookup)
        except TransportError as e:
            logger.error(f"❌ Scan #{token} failed: {e}")
            self.cache.fail(token, e, warnings)
            return self.cache.status
        except Exception as e:
            # Token must leave the in-flight set, or status reports scanning forever
            logger.exception(f"❌ Scan #{token} crashed: {e}")
            self.cache.fail(token, e, warnings)
            return self.cache.status

        if not self.cache.commit(token, universe, warnings):
            return self.cache.status

        if self.persist is not None:
            try:
                await self.persist(universe)
            except Exception as e:
                logger.warning(f"Snapshot not persisted: {e}")

        logger.info(f"🏁 Scan #{token} done: {universe.size} assets scored")
        return self.cache.status
