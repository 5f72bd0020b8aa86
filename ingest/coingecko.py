"""CoinGecko /coins/markets provider, fetched page by page."""
import math

from common.models import AssetRecord, ScanConfiguration
from config.settings import COINGECKO_API_KEY, COINGECKO_BASE_URL
from ingest.base import BaseProvider
from ingest.shaper import (implied_fdv, percent_points, require_identity,
                           to_non_negative, to_positive, to_rank, to_text)


class CoinGeckoProvider(BaseProvider):
    name = "coingecko"
    BASE_URL = COINGECKO_BASE_URL
    PER_PAGE = 250
    VS_CURRENCY = "usd"

    def __init__(self, *args, api_key: str = COINGECKO_API_KEY, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key

    def headers(self) -> dict:
        headers = super().headers()
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    def page_requests(self, config: ScanConfiguration) -> list[tuple[str, dict]]:
        pages = max(1, math.ceil(config.universe_top_n / self.PER_PAGE))
        return [
            ("/coins/markets", {
                "vs_currency": self.VS_CURRENCY,
                "order": "market_cap_desc",
                "per_page": self.PER_PAGE,
                "page": page,
                "sparkline": "false",
                "price_change_percentage": "7d,30d",
            })
            for page in range(1, pages + 1)
        ]

    def shape(self, raw: dict) -> AssetRecord:
        asset_id, symbol = require_identity(raw)
        price = to_positive(raw.get("current_price"))
        max_supply = to_positive(raw.get("max_supply"))
        total_supply = to_positive(raw.get("total_supply"))
        fdv = to_positive(raw.get("fully_diluted_valuation"))
        return AssetRecord(
            id=asset_id,
            symbol=symbol.upper(),
            name=to_text(raw.get("name")),
            rank=to_rank(raw.get("market_cap_rank")),
            price=price,
            market_cap=to_non_negative(raw.get("market_cap")),
            volume_24h=to_non_negative(raw.get("total_volume")),
            circulating_supply=to_positive(raw.get("circulating_supply")),
            total_supply=total_supply,
            max_supply=max_supply,
            fully_diluted_valuation=fdv if fdv is not None else implied_fdv(price, max_supply, total_supply),
            all_time_high=to_positive(raw.get("ath")),
            pct_change_7d=percent_points(
                raw.get("price_change_percentage_7d_in_currency"), self.PCT_SCALE),
            pct_change_30d=percent_points(
                raw.get("price_change_percentage_30d_in_currency"), self.PCT_SCALE),
        )
