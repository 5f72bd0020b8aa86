"""Quality scorer: established rank + healthy absolute volume."""
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration
from scoring.base import BaseScorer, clamped_linear


class QualityScorer(BaseScorer):
    RANK_WEIGHT = 0.70
    VOLUME_WEIGHT = 0.30

    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        # Lower rank is better. A missing rank ramps to 0, so it keeps full rank credit
        rank_score = 1.0 - clamped_linear(record.rank, config.quality_rank_floor,
                                          config.quality_rank_max)
        return self.blend([
            (rank_score, self.RANK_WEIGHT),
            (self.volume_score(record, config), self.VOLUME_WEIGHT),
        ])
