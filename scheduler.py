#!/usr/bin/env python3
"""
Standalone scheduler: run one scan cycle and persist the snapshot.
Run: python scheduler.py
Or add to cron: */10 * * * * cd /opt/cryptoscore && ./venv/bin/python scheduler.py
"""
import asyncio
import sys

from common.errors import ConfigurationError
from common.logger import get_logger
from common.models import ScanQuery
from config.settings import NARRATIVES_URL, load_scan_config
from ingest.narratives import NarrativeSource
from ingest.registry import get_provider
from scoring.scanner import Scanner
from storage.cache import UniverseCache
from storage.database import init_db, load_snapshot, save_snapshot

logger = get_logger("scheduler")

TOP_ROWS = 15


async def run_once() -> int:
    try:
        config = load_scan_config()
        provider = get_provider(config.provider)
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return 2

    await init_db()
    cache = UniverseCache()
    snapshot = await load_snapshot()
    if snapshot is not None:
        cache.hydrate(snapshot)

    narratives = NarrativeSource(NARRATIVES_URL) if NARRATIVES_URL else None
    status = await Scanner(provider, config, cache, narratives=narratives,
                           persist=save_snapshot).scan()
    for warning in status.warnings:
        logger.warning(warning)
    if status.state != "fresh":
        logger.error(f"❌ Scan failed ({status.error_kind}): {status.message}")
        return 1

    view = cache.view(ScanQuery.from_config(config))
    for i, a in enumerate(view[:TOP_ROWS], 1):
        logger.info(f"{i:>3}. {a.record.symbol:<10} score={a.final_score:>5.1f} "
                    f"asym={a.scores.asymmetry:>5.1f} liq={a.scores.liquidity:>5.1f} "
                    f"setup={a.scores.setup:>5.1f} risk={a.scores.risk:>5.1f} "
                    f"boost={a.narrative_boost:>4.1f}")
    logger.info(f"✅ Done: {len(view)}/{status.asset_count} assets pass the default filters")
    return 0


def main():
    sys.exit(asyncio.run(run_once()))


if __name__ == "__main__":
    main()
