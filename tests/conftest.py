"""Pytest configuration and shared builders."""
import sys
from pathlib import Path

import pytest

# Ensure project root is importable regardless of where pytest is invoked
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from common.models import AssetRecord  # noqa: E402
from config.settings import load_scan_config  # noqa: E402


@pytest.fixture
def config():
    return load_scan_config(path=None)


def make_record(**overrides) -> AssetRecord:
    """A healthy microcap used as the baseline in scoring tests."""
    fields = dict(
        id="test-coin",
        symbol="TST",
        name="Test Coin",
        rank=300,
        price=0.025,
        market_cap=10_000_000,
        volume_24h=2_000_000,
        circulating_supply=400_000_000,
        max_supply=1_000_000_000,
        pct_change_7d=5.0,
        pct_change_30d=10.0,
    )
    fields.update(overrides)
    return AssetRecord(**fields)


def paprika_row(coin_id: str, symbol: str, market_cap, **extra) -> dict:
    quote = {
        "price": extra.pop("price", 0.5),
        "market_cap": market_cap,
        "volume_24h": extra.pop("volume_24h", 1_500_000),
        "percent_change_7d": extra.pop("pct7", 3.0),
        "percent_change_30d": extra.pop("pct30", 8.0),
        "ath_price": extra.pop("ath_price", 2.0),
    }
    row = {
        "id": coin_id,
        "symbol": symbol,
        "name": extra.pop("name", symbol.title()),
        "rank": extra.pop("rank", 400),
        "circulating_supply": extra.pop("circulating_supply", 50_000_000),
        "total_supply": extra.pop("total_supply", 80_000_000),
        "max_supply": extra.pop("max_supply", 100_000_000),
        "quotes": {"USD": quote},
    }
    row.update(extra)
    return row
