"""Liquidity scorer: volume density (vol/mc) + absolute volume, both log-scaled."""
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration
from scoring.base import BaseScorer


class LiquidityScorer(BaseScorer):
    VOLUME_TO_MC_WEIGHT = 0.70
    VOLUME_WEIGHT = 0.30

    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        return self.blend([
            (self.volume_to_mc_score(metrics, config), self.VOLUME_TO_MC_WEIGHT),
            (self.volume_score(record, config), self.VOLUME_WEIGHT),
        ])
