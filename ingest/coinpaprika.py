"""CoinPaprika public API provider (no API key required)."""
from common.models import AssetRecord, ScanConfiguration
from config.settings import COINPAPRIKA_BASE_URL
from ingest.base import BaseProvider
from ingest.shaper import (implied_fdv, percent_points, require_identity,
                           to_non_negative, to_positive, to_rank, to_text)


class CoinPaprikaProvider(BaseProvider):
    name = "coinpaprika"
    BASE_URL = COINPAPRIKA_BASE_URL
    QUOTE = "USD"

    def page_requests(self, config: ScanConfiguration) -> list[tuple[str, dict]]:
        # One call returns the whole ticker universe
        return [("/tickers", {"quotes": self.QUOTE})]

    def shape(self, raw: dict) -> AssetRecord:
        asset_id, symbol = require_identity(raw)
        quotes = raw.get("quotes") if isinstance(raw.get("quotes"), dict) else {}
        q = quotes.get(self.QUOTE) if isinstance(quotes.get(self.QUOTE), dict) else {}

        price = to_positive(q.get("price"))
        max_supply = to_positive(raw.get("max_supply"))
        total_supply = to_positive(raw.get("total_supply"))
        return AssetRecord(
            id=asset_id,
            symbol=symbol.upper(),
            name=to_text(raw.get("name")),
            rank=to_rank(raw.get("rank")),
            price=price,
            market_cap=to_non_negative(q.get("market_cap")),
            volume_24h=to_non_negative(q.get("volume_24h")),
            circulating_supply=to_positive(raw.get("circulating_supply")),
            total_supply=total_supply,
            max_supply=max_supply,
            fully_diluted_valuation=implied_fdv(price, max_supply, total_supply),
            all_time_high=to_positive(q.get("ath_price")),
            pct_change_7d=percent_points(q.get("percent_change_7d"), self.PCT_SCALE),
            pct_change_30d=percent_points(q.get("percent_change_30d"), self.PCT_SCALE),
        )
