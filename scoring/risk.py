"""
Risk scorer (penalty, higher = worse).

  pump_7d   ramps 0→100 once the 7d change passes the pump threshold
  pump_30d  same shape on the 30d change, wider span
  dump_30d  ramps 0→100 as the 30d change falls below the dump threshold
  supply    flat addend when no max supply is defined

Each term is clamped to [0, 100] before the weighted sum, and the sum is
clamped again.
"""
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration
from scoring.base import BaseScorer, clamp, clamped_linear, is_num


class RiskScorer(BaseScorer):
    PUMP_7D_WEIGHT = 0.45
    PUMP_30D_WEIGHT = 0.35
    DUMP_30D_WEIGHT = 0.20

    def terms(self, record: AssetRecord, config: ScanConfiguration) -> dict[str, float]:
        p = config.penalty
        pct7 = record.pct_change_7d
        pct30 = record.pct_change_30d

        pump_7d = clamped_linear(pct7, p.pump_7d, p.pump_7d + p.pump_7d_span) * 100
        pump_30d = clamped_linear(pct30, p.pump_30d, p.pump_30d + p.pump_30d_span) * 100
        if is_num(pct30):
            dump_30d = clamped_linear(p.dump_30d - pct30, 0.0, p.dump_30d_span) * 100
        else:
            dump_30d = 0.0
        supply = 0.0 if record.has_max_supply else p.missing_supply

        return {
            "pump_7d": clamp(pump_7d, 0, 100),
            "pump_30d": clamp(pump_30d, 0, 100),
            "dump_30d": clamp(dump_30d, 0, 100),
            "supply": clamp(supply, 0, 100),
        }

    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        t = self.terms(record, config)
        raw = (self.PUMP_7D_WEIGHT * t["pump_7d"]
               + self.PUMP_30D_WEIGHT * t["pump_30d"]
               + self.DUMP_30D_WEIGHT * t["dump_30d"]
               + t["supply"])
        return clamp(raw, 0.0, 100.0)
