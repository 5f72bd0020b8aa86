"""
Filter/Sort Engine.

A pure ``filter_and_sort(universe, query) -> view``. Every predicate is an
independent conjunction. The sort is stable, so equal keys keep universe
order, and assets missing the sort field go last in either direction.
"""
from typing import Callable, Optional

from common.logger import get_logger
from common.models import ScanQuery, ScoredAsset, Universe
from scoring.base import is_num

logger = get_logger("filters")

# key -> (getter, descending by default)
SORT_KEYS: dict[str, tuple[Callable[[ScoredAsset], Optional[float]], bool]] = {
    "score":                (lambda a: a.final_score, True),
    "market_cap":           (lambda a: a.record.market_cap, False),
    "volume_24h":           (lambda a: a.record.volume_24h, True),
    "volume_to_market_cap": (lambda a: a.metrics.volume_to_market_cap, True),
    "pct_change_7d":        (lambda a: a.record.pct_change_7d, True),
    "pct_change_30d":       (lambda a: a.record.pct_change_30d, True),
    "narrative_heat":       (lambda a: a.scores.narrative_heat, True),
    "boost":                (lambda a: a.narrative_boost, True),
    "quality":              (lambda a: a.scores.quality, True),
    "asymmetry":            (lambda a: a.scores.asymmetry, True),
    "liquidity":            (lambda a: a.scores.liquidity, True),
    "setup":                (lambda a: a.scores.setup, True),
    "risk":                 (lambda a: a.scores.risk, False),
    "rank":                 (lambda a: a.record.rank, False),
}
DEFAULT_SORT = "score"


def matches(asset: ScoredAsset, query: ScanQuery) -> bool:
    r = asset.record
    if not is_num(r.market_cap) or not query.market_cap_min <= r.market_cap <= query.market_cap_max:
        return False
    if not is_num(r.volume_24h) or r.volume_24h < query.volume_24h_min:
        return False
    if not is_num(asset.final_score) or asset.final_score < query.min_score:
        return False
    if query.rank_max is not None and is_num(r.rank) and r.rank > query.rank_max:
        return False
    if query.fdv_to_market_cap_max is not None:
        ratio = asset.metrics.fdv_to_market_cap
        if is_num(ratio) and ratio > query.fdv_to_market_cap_max:
            return False
    if query.require_supply_clarity and not r.has_supply_clarity:
        return False

    q = query.search.strip().lower()
    if not q:
        return True
    return q in r.name.lower() or q in r.symbol.lower() or q in r.id.lower()


def sort_assets(assets: list[ScoredAsset], sort: str,
                order: Optional[str] = None) -> list[ScoredAsset]:
    if sort not in SORT_KEYS:
        logger.warning(f"Unknown sort key {sort!r}, falling back to {DEFAULT_SORT!r}")
        sort = DEFAULT_SORT
    getter, descending = SORT_KEYS[sort]
    if order is not None:
        descending = order == "desc"

    present = [a for a in assets if is_num(getter(a))]
    missing = [a for a in assets if not is_num(getter(a))]
    # sorted(reverse=True) keeps equal elements in their incoming order
    return sorted(present, key=getter, reverse=descending) + missing


def filter_and_sort(universe: Optional[Universe], query: ScanQuery) -> list[ScoredAsset]:
    """Filtered, sorted view of the universe. Never mutates it."""
    if universe is None:
        return []
    kept = [a for a in universe.ordered() if matches(a, query)]
    return sort_assets(kept, query.sort, query.order)
