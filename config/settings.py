"""Configuration loader."""
import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from common.errors import ConfigurationError
from common.models import ScanConfiguration

load_dotenv(Path(__file__).parent.parent / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SCAN_PROVIDER = os.getenv("SCAN_PROVIDER", "coinpaprika")
COINPAPRIKA_BASE_URL = os.getenv("COINPAPRIKA_BASE_URL", "https://api.coinpaprika.com/v1")
COINGECKO_BASE_URL = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
COINGECKO_API_KEY = os.getenv("COINGECKO_API_KEY", "").strip()
NARRATIVES_URL = os.getenv("NARRATIVES_URL", "").strip()
SCAN_CONFIG_PATH = os.getenv("SCAN_CONFIG_PATH", "").strip()

AUTO_REFRESH_MINUTES = float(os.getenv("AUTO_REFRESH_MINUTES", "10"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))

DEFAULT_SCAN_CONFIG: dict[str, Any] = {
    "provider": SCAN_PROVIDER,
    "market_cap_min": 5_000_000,
    "market_cap_max": 120_000_000,
    "volume_24h_min": 250_000,
    "min_score": 0,
    "quality_rank_floor": 50,
    "quality_rank_max": 800,
    "fdv_to_market_cap_max": 5.0,
    "require_supply_clarity": True,
    "universe_top_n": 1500,
    "max_concurrent_requests": int(os.getenv("MAX_CONCURRENT_REQUESTS", "4")),

    # log10 breakpoints: ~1M..100M daily volume, 0.01%..10% vol/mc
    "volume_log_lo": 6.0,
    "volume_log_hi": 8.0,
    "volume_to_mc_log_lo": -4.0,
    "volume_to_mc_log_hi": -1.0,
    "circulating_lo": 0.30,
    "circulating_hi": 0.85,
    "base_30d_center": 0.0,
    "base_30d_width": 35.0,
    "turn_7d_lo": -5.0,
    "turn_7d_hi": 25.0,

    # Positive axes sum to 0.88, leaving headroom for the narrative boost
    "weights": {
        "quality": 0.20,
        "asymmetry": 0.30,
        "liquidity": 0.18,
        "setup": 0.20,
        "risk": 0.35,
        "narrative": 0.12,
    },
    "penalty": {
        "pump_7d": 40.0,
        "pump_7d_span": 60.0,
        "pump_30d": 80.0,
        "pump_30d_span": 200.0,
        "dump_30d": -40.0,
        "dump_30d_span": 60.0,
        "missing_supply": 15.0,
    },
    "narrative": {
        "boost_max_points": 12.0,
        "tags_per_coin_max": 2,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_scan_config(overrides: Optional[dict] = None,
                     path: Optional[str] = SCAN_CONFIG_PATH) -> ScanConfiguration:
    """Build the scan configuration: defaults < JSON file < explicit overrides.

    Raises ConfigurationError when the file is missing or unreadable, or the
    merged result fails validation. Callers treat this as fatal.
    """
    raw = copy.deepcopy(DEFAULT_SCAN_CONFIG)
    if path:
        file_path = Path(path)
        if not file_path.is_file():
            raise ConfigurationError(f"Scan config file not found: {file_path}")
        try:
            from_file = json.loads(file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Scan config file unreadable: {e}") from e
        if not isinstance(from_file, dict):
            raise ConfigurationError("Scan config file must hold a JSON object")
        raw = _deep_merge(raw, from_file)
    if overrides:
        raw = _deep_merge(raw, overrides)
    try:
        return ScanConfiguration(**raw)
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid scan configuration: {e}") from e
