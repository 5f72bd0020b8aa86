"""
Narrative heat scorer.

Heat is the hottest of a coin's first N tags (N = tags_per_coin_max). It is
not blended into the weighted axes; it becomes a bounded additive boost:

  boost = heat / 100 * boost_max_points

Unlike the axis scorers this works from the asset id alone, so it is not a
BaseScorer.
"""
from typing import Optional

from common.models import NarrativeLookup, ScanConfiguration
from scoring.base import clamp, is_num


class NarrativeScorer:

    def __init__(self, lookup: Optional[NarrativeLookup] = None):
        self.lookup = lookup

    def tags_for(self, asset_id: str, config: ScanConfiguration) -> list[str]:
        if self.lookup is None:
            return []
        tags = self.lookup.coins.get(asset_id) or []
        return list(tags[:config.narrative.tags_per_coin_max])

    def heat_for_tags(self, tags: list[str]) -> float:
        if self.lookup is None or not tags:
            return 0.0
        best = 0.0
        for tag in tags:
            h = self.lookup.heat.get(tag)
            if is_num(h):
                best = max(best, clamp(h, 0, 100))
        return best

    @staticmethod
    def boost_points(heat: float, config: ScanConfiguration) -> float:
        h = clamp(heat, 0, 100) if is_num(heat) else 0.0
        return h / 100 * config.narrative.boost_max_points
