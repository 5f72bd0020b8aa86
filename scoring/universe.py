"""
Universe Builder.

provider rows → shape → drop rows without a positive market cap → sort by
market cap (descending) → keep top N → score → Universe keyed by id.

The insertion order of the result is the canonical universe order, which
is independent of any later display sort.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from common.errors import MalformedDataError
from common.logger import get_logger
from common.models import NarrativeLookup, ScanConfiguration, Universe
from ingest.base import BaseProvider
from ingest.shaper import shape_row
from scoring.aggregator import score_asset
from scoring.base import is_num
from scoring.narrative import NarrativeScorer

logger = get_logger("universe")


def build_universe(rows: Iterable[dict], provider: BaseProvider,
                   config: ScanConfiguration,
                   narratives: Optional[NarrativeLookup] = None,
                   built_at: Optional[datetime] = None) -> Universe:
    shaped = []
    malformed = 0
    no_market_cap = 0
    for raw in rows:
        try:
            record, metrics = shape_row(provider, raw)
        except (MalformedDataError, ValueError) as e:
            logger.debug(f"Dropping row: {e}")
            malformed += 1
            continue
        if not (is_num(record.market_cap) and record.market_cap > 0):
            no_market_cap += 1
            continue
        shaped.append((record, metrics))

    shaped.sort(key=lambda pair: pair[0].market_cap, reverse=True)
    truncated = max(0, len(shaped) - config.universe_top_n)
    shaped = shaped[:config.universe_top_n]

    scorer = NarrativeScorer(narratives) if narratives is not None else None
    assets = {}
    for record, metrics in shaped:
        if record.id in assets:
            continue
        assets[record.id] = score_asset(record, metrics, config, scorer)

    logger.info(f"Universe built: {len(assets)} assets "
                f"(malformed={malformed}, no_market_cap={no_market_cap}, truncated={truncated})")
    return Universe(
        assets=assets,
        built_at=built_at or datetime.now(timezone.utc),
        provider=provider.name,
        narrative_available=narratives is not None,
        dropped_malformed=malformed,
        dropped_no_market_cap=no_market_cap,
        truncated=truncated,
    )
