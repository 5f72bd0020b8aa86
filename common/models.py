"""Core Pydantic models for the CryptoScore scanner."""
import math
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Input side ────────────────────────────────────────────────────────────────

class AssetRecord(_Frozen):
    """One provider row in canonical shape. Missing numerics are None."""
    id: str
    symbol: str
    name: str = ""
    rank: Optional[int] = None
    price: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    fully_diluted_valuation: Optional[float] = None
    all_time_high: Optional[float] = None
    pct_change_7d: Optional[float] = None    # percent points: 12.5 == +12.5%
    pct_change_30d: Optional[float] = None

    @property
    def has_max_supply(self) -> bool:
        return self.max_supply is not None and self.max_supply > 0

    @property
    def has_supply_clarity(self) -> bool:
        circ = self.circulating_supply
        return self.has_max_supply or (circ is not None and circ > 0)


class DerivedMetrics(_Frozen):
    volume_to_market_cap: Optional[float] = None
    circulating_fraction: Optional[float] = None
    ath_delta_pct: Optional[float] = None
    fdv_to_market_cap: Optional[float] = None


class NarrativeLookup(_Frozen):
    heat: dict[str, float] = Field(default_factory=dict)
    coins: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, data: Any) -> "NarrativeLookup":
        """Sanitize an arbitrary ``{heat, coins}`` payload; bad entries are dropped."""
        if not isinstance(data, dict):
            return cls()
        raw_heat = data.get("heat") if isinstance(data.get("heat"), dict) else {}
        raw_coins = data.get("coins") if isinstance(data.get("coins"), dict) else {}

        heat = {}
        for tag, value in raw_heat.items():
            try:
                h = float(value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(h):
                heat[str(tag).strip()] = min(max(h, 0.0), 100.0)

        coins = {}
        for coin_id, tags in raw_coins.items():
            if not isinstance(tags, list):
                coins[str(coin_id)] = []
                continue
            coins[str(coin_id)] = [str(t).strip() for t in tags
                                   if t is not None and str(t).strip()]
        return cls(heat=heat, coins=coins)


# ── Configuration ─────────────────────────────────────────────────────────────

class AxisWeights(_Frozen):
    quality: float = Field(ge=0)
    asymmetry: float = Field(ge=0)
    liquidity: float = Field(ge=0)
    setup: float = Field(ge=0)
    risk: float = Field(ge=0)
    narrative: float = Field(ge=0)


class PenaltyConfig(_Frozen):
    pump_7d: float
    pump_7d_span: float = Field(gt=0)
    pump_30d: float
    pump_30d_span: float = Field(gt=0)
    dump_30d: float
    dump_30d_span: float = Field(gt=0)
    missing_supply: float = Field(ge=0, le=100)


class NarrativeConfig(_Frozen):
    boost_max_points: float = Field(ge=0)
    tags_per_coin_max: int = Field(ge=0)


class ScanConfiguration(_Frozen):
    """Every threshold, breakpoint and weight of one scan. Never mutated mid-scan."""
    provider: str
    market_cap_min: float = Field(ge=0)
    market_cap_max: float = Field(gt=0)
    volume_24h_min: float = Field(ge=0)
    min_score: float = Field(ge=0, le=100)
    quality_rank_floor: float
    quality_rank_max: float
    fdv_to_market_cap_max: float = Field(gt=1)
    require_supply_clarity: bool
    universe_top_n: int = Field(gt=0)
    max_concurrent_requests: int = Field(gt=0)

    volume_log_lo: float
    volume_log_hi: float
    volume_to_mc_log_lo: float
    volume_to_mc_log_hi: float
    circulating_lo: float
    circulating_hi: float
    base_30d_center: float
    base_30d_width: float = Field(gt=0)
    turn_7d_lo: float
    turn_7d_hi: float

    weights: AxisWeights
    penalty: PenaltyConfig
    narrative: NarrativeConfig

    @model_validator(mode="after")
    def _check_ranges(self) -> "ScanConfiguration":
        pairs = {
            "market_cap": (self.market_cap_min, self.market_cap_max),
            "quality_rank": (self.quality_rank_floor, self.quality_rank_max),
            "volume_log": (self.volume_log_lo, self.volume_log_hi),
            "volume_to_mc_log": (self.volume_to_mc_log_lo, self.volume_to_mc_log_hi),
            "circulating": (self.circulating_lo, self.circulating_hi),
            "turn_7d": (self.turn_7d_lo, self.turn_7d_hi),
        }
        for name, (lo, hi) in pairs.items():
            if not lo < hi:
                raise ValueError(f"{name}: lower bound {lo} must be below upper bound {hi}")
        return self


class ScanQuery(_Frozen):
    """Per-request filter and sort over a scored universe."""
    market_cap_min: float = 0.0
    market_cap_max: float = math.inf
    volume_24h_min: float = 0.0
    min_score: float = 0.0
    rank_max: Optional[float] = None
    fdv_to_market_cap_max: Optional[float] = None
    require_supply_clarity: bool = False
    search: str = ""
    sort: str = "score"
    order: Optional[Literal["asc", "desc"]] = None

    @classmethod
    def from_config(cls, config: ScanConfiguration, **overrides) -> "ScanQuery":
        base = dict(
            market_cap_min=config.market_cap_min,
            market_cap_max=config.market_cap_max,
            volume_24h_min=config.volume_24h_min,
            min_score=config.min_score,
            rank_max=config.quality_rank_max,
            require_supply_clarity=config.require_supply_clarity,
        )
        base.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**base)


# ── Output side ───────────────────────────────────────────────────────────────

class SubScores(_Frozen):
    quality: float = 0.0
    asymmetry: float = 0.0
    liquidity: float = 0.0
    setup: float = 0.0
    risk: float = 0.0          # penalty, higher = worse
    narrative_heat: float = 0.0


class ScoredAsset(_Frozen):
    record: AssetRecord
    metrics: DerivedMetrics
    scores: SubScores
    final_score: float
    narrative_tags: list[str] = Field(default_factory=list)
    narrative_boost: float = 0.0
    narrative_term: float = 0.0

    @property
    def id(self) -> str:
        return self.record.id

    def to_row(self) -> dict:
        """Flat display row."""
        row = self.record.model_dump()
        row.update(self.metrics.model_dump())
        row.update(self.scores.model_dump())
        row.update(
            score=self.final_score,
            boost=self.narrative_boost,
            narrative_term=self.narrative_term,
            tags=list(self.narrative_tags),
        )
        return row


class Universe(_Frozen):
    """Scored assets of one scan, keyed by id, in market-cap-descending order."""
    assets: dict[str, ScoredAsset] = Field(default_factory=dict)
    built_at: datetime
    provider: str = ""
    narrative_available: bool = False
    dropped_malformed: int = 0
    dropped_no_market_cap: int = 0
    truncated: int = 0

    @property
    def size(self) -> int:
        return len(self.assets)

    def ordered(self) -> list[ScoredAsset]:
        return list(self.assets.values())


class ScanStatus(_Frozen):
    state: Literal["empty", "fresh", "stale", "error"] = "empty"
    error_kind: Optional[str] = None
    message: str = ""
    warnings: list[str] = Field(default_factory=list)
    generation: int = 0
    scanning: bool = False
    updated_at: Optional[datetime] = None
    asset_count: int = 0
