"""Row shaper helpers: defensive extraction and derived ratios.

Nothing here filters or scores. Absent or non-numeric fields become None,
never 0 and never NaN.
"""
import math
from typing import Any, Optional, TYPE_CHECKING

from common.errors import MalformedDataError
from common.models import AssetRecord, DerivedMetrics

if TYPE_CHECKING:
    from ingest.base import BaseProvider


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def to_positive(value: Any) -> Optional[float]:
    n = to_number(value)
    return n if n is not None and n > 0 else None


def to_non_negative(value: Any) -> Optional[float]:
    n = to_number(value)
    return n if n is not None and n >= 0 else None


def to_rank(value: Any) -> Optional[int]:
    n = to_number(value)
    return int(n) if n is not None and n >= 1 else None


def percent_points(value: Any, scale: float = 1.0) -> Optional[float]:
    """Signed percentage in percent points. ``scale=100`` converts fractions."""
    n = to_number(value)
    return n * scale if n is not None else None


def to_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def require_identity(raw: dict, id_key: str = "id", symbol_key: str = "symbol") -> tuple[str, str]:
    asset_id = to_text(raw.get(id_key))
    symbol = to_text(raw.get(symbol_key))
    if not asset_id or not symbol:
        raise MalformedDataError(f"row missing identity (id={asset_id!r}, symbol={symbol!r})")
    return asset_id, symbol


def implied_fdv(price: Optional[float], max_supply: Optional[float],
                total_supply: Optional[float]) -> Optional[float]:
    """price × (max supply, else total supply)."""
    supply = max_supply if max_supply is not None else total_supply
    if price is None or supply is None:
        return None
    fdv = price * supply
    return fdv if math.isfinite(fdv) else None


def _ratio(num: Optional[float], den: Optional[float]) -> Optional[float]:
    if num is None or den is None or not math.isfinite(num) or not math.isfinite(den) or den <= 0:
        return None
    ratio = num / den
    return ratio if math.isfinite(ratio) else None


def derive_metrics(record: AssetRecord) -> DerivedMetrics:
    denom = record.max_supply if record.has_max_supply else record.total_supply
    ath_ratio = _ratio(record.price, record.all_time_high)
    return DerivedMetrics(
        volume_to_market_cap=_ratio(record.volume_24h, record.market_cap),
        circulating_fraction=_ratio(record.circulating_supply, denom),
        ath_delta_pct=(ath_ratio - 1) * 100 if ath_ratio is not None else None,
        fdv_to_market_cap=_ratio(record.fully_diluted_valuation, record.market_cap),
    )


def shape_row(provider: "BaseProvider", raw: dict) -> tuple[AssetRecord, DerivedMetrics]:
    if not isinstance(raw, dict):
        raise MalformedDataError(f"row is not a mapping: {type(raw).__name__}")
    record = provider.shape(raw)
    return record, derive_metrics(record)
