"""
Setup / timing scorer.

A quiet 30-day base (bell around the neutral baseline, so extreme pumps and
dumps both score low), a mild positive 7-day turn, and volume confirmation.
"""
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration
from scoring.base import BaseScorer, bell_peak, clamped_linear


class SetupScorer(BaseScorer):
    BASE_WEIGHT = 0.45
    TURN_WEIGHT = 0.35
    CONFIRMATION_WEIGHT = 0.20

    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        base_30d = bell_peak(record.pct_change_30d, config.base_30d_center,
                             config.base_30d_width)
        turn_7d = clamped_linear(record.pct_change_7d, config.turn_7d_lo, config.turn_7d_hi)
        return self.blend([
            (base_30d, self.BASE_WEIGHT),
            (turn_7d, self.TURN_WEIGHT),
            (self.volume_to_mc_score(metrics, config), self.CONFIRMATION_WEIGHT),
        ])
