"""
Asymmetry scorer: upside relative to size.

Terms:
  - small market cap inside the configured range (inverted ramp)
  - supply clarity bonus: 1 when a max supply is defined, else 0
  - circulating fraction in the moderate-to-high band
  - FDV / market cap, lower is better (only when defined; its weight is
    taken from the market-cap term so the blend still sums to 1.0)
"""
from common.models import AssetRecord, DerivedMetrics, ScanConfiguration
from scoring.base import BaseScorer, clamped_linear, is_num


class AsymmetryScorer(BaseScorer):
    MARKET_CAP_WEIGHT = 0.55
    SUPPLY_WEIGHT = 0.25
    CIRCULATING_WEIGHT = 0.20
    FDV_WEIGHT = 0.15

    def score(self, record: AssetRecord, metrics: DerivedMetrics,
              config: ScanConfiguration) -> float:
        if is_num(record.market_cap):
            mc_score = 1.0 - clamped_linear(record.market_cap, config.market_cap_min,
                                            config.market_cap_max)
        else:
            mc_score = 0.0
        supply_bonus = 1.0 if record.has_max_supply else 0.0
        circ_score = clamped_linear(metrics.circulating_fraction,
                                    config.circulating_lo, config.circulating_hi)

        terms = [
            (supply_bonus, self.SUPPLY_WEIGHT),
            (circ_score, self.CIRCULATING_WEIGHT),
        ]
        if is_num(metrics.fdv_to_market_cap):
            fdv_score = 1.0 - clamped_linear(metrics.fdv_to_market_cap, 1.0,
                                             config.fdv_to_market_cap_max)
            terms.append((mc_score, self.MARKET_CAP_WEIGHT - self.FDV_WEIGHT))
            terms.append((fdv_score, self.FDV_WEIGHT))
        else:
            terms.append((mc_score, self.MARKET_CAP_WEIGHT))
        return self.blend(terms)
