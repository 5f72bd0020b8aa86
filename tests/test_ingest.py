"""Tests for ingest modules."""
import json
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from common.errors import ConfigurationError, MalformedDataError, NarrativeUnavailable, TransportError
from conftest import paprika_row
from ingest.coingecko import CoinGeckoProvider
from ingest.coinpaprika import CoinPaprikaProvider
from ingest.fetch import gather_bounded
from ingest.narratives import NarrativeSource
from ingest.registry import get_provider
from ingest.shaper import (implied_fdv, percent_points, require_identity, shape_row,
                           to_number, to_positive, to_rank)


def fake_response(payload=None, status=200, bad_json=False):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    if bad_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class TestShaperHelpers:
    def test_to_number(self):
        assert to_number("12.5") == 12.5
        assert to_number(3) == 3.0
        for bad in (None, "", "abc", True, float("nan"), float("inf"), [1]):
            assert to_number(bad) is None

    def test_to_positive_and_rank(self):
        assert to_positive(0) is None
        assert to_positive(-1) is None
        assert to_positive("7") == 7.0
        assert to_rank(0) is None
        assert to_rank("42") == 42

    def test_percent_points(self):
        assert percent_points(12.5) == 12.5
        assert percent_points(0.125, scale=100) == pytest.approx(12.5)
        assert percent_points(None) is None

    def test_require_identity(self):
        assert require_identity({"id": " abc ", "symbol": "ABC"}) == ("abc", "ABC")
        with pytest.raises(MalformedDataError):
            require_identity({"id": "abc"})
        with pytest.raises(MalformedDataError):
            require_identity({"symbol": "ABC", "id": None})

    def test_implied_fdv(self):
        assert implied_fdv(2.0, 100.0, 500.0) == 200.0
        assert implied_fdv(2.0, None, 500.0) == 1000.0
        assert implied_fdv(None, 100.0, 500.0) is None
        assert implied_fdv(2.0, None, None) is None

    def test_shape_row_rejects_non_mapping(self):
        with pytest.raises(MalformedDataError):
            shape_row(CoinPaprikaProvider(), ["not", "a", "dict"])


class TestCoinPaprika:
    def setup_method(self):
        self.provider = CoinPaprikaProvider()

    def test_shape(self):
        record = self.provider.shape(paprika_row("abc-token", "abc", 12_000_000,
                                                 price=0.25, pct7=-4.5, pct30=22.0))
        assert record.id == "abc-token"
        assert record.symbol == "ABC"
        assert record.market_cap == 12_000_000
        assert record.pct_change_7d == -4.5
        assert record.pct_change_30d == 22.0
        assert record.fully_diluted_valuation == pytest.approx(0.25 * 100_000_000)
        assert record.rank == 400

    def test_shape_missing_quotes(self):
        record = self.provider.shape({"id": "bare", "symbol": "BR"})
        assert record.market_cap is None
        assert record.price is None
        assert record.pct_change_7d is None

    def test_single_request(self, config):
        assert self.provider.page_requests(config) == [("/tickers", {"quotes": "USD"})]

    def test_shape_row_derives_metrics(self):
        record, metrics = shape_row(self.provider, paprika_row("abc", "ABC", 10_000_000))
        assert metrics.circulating_fraction == pytest.approx(0.5)
        assert metrics.volume_to_market_cap == pytest.approx(0.15)


class TestCoinGecko:
    def setup_method(self):
        self.provider = CoinGeckoProvider(api_key="")

    def test_page_count_covers_top_n(self, config):
        pages = self.provider.page_requests(config)
        assert len(pages) == 6
        assert [p["page"] for _, p in pages] == [1, 2, 3, 4, 5, 6]
        assert all(path == "/coins/markets" for path, _ in pages)
        assert pages[0][1]["price_change_percentage"] == "7d,30d"

    def test_api_key_header(self):
        assert "x-cg-demo-api-key" not in self.provider.headers()
        keyed = CoinGeckoProvider(api_key="secret")
        assert keyed.headers()["x-cg-demo-api-key"] == "secret"

    def test_shape(self):
        record = self.provider.shape({
            "id": "gecko-coin",
            "symbol": "gko",
            "name": "Gecko Coin",
            "market_cap_rank": 321,
            "current_price": 1.5,
            "market_cap": 30_000_000,
            "total_volume": 900_000,
            "circulating_supply": 20_000_000,
            "total_supply": 50_000_000,
            "max_supply": None,
            "fully_diluted_valuation": 75_000_000,
            "ath": 6.0,
            "price_change_percentage_7d_in_currency": 8.25,
            "price_change_percentage_30d_in_currency": -12.0,
        })
        assert record.symbol == "GKO"
        assert record.rank == 321
        assert record.volume_24h == 900_000
        assert record.fully_diluted_valuation == 75_000_000
        assert record.max_supply is None
        assert record.pct_change_7d == 8.25
        assert record.pct_change_30d == -12.0

    def test_shape_implies_fdv_when_absent(self):
        record = self.provider.shape({"id": "x", "symbol": "X", "current_price": 2.0,
                                      "max_supply": 1_000})
        assert record.fully_diluted_valuation == 2_000.0


class TestRegistry:
    def test_known_providers(self):
        assert isinstance(get_provider("coinpaprika"), CoinPaprikaProvider)
        assert isinstance(get_provider(" CoinGecko ", api_key=""), CoinGeckoProvider)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            get_provider("nowhere")


class TestProviderGet:
    def setup_method(self):
        self.session = MagicMock()
        self.provider = CoinPaprikaProvider(base_url="http://test/v1/", session=self.session)

    def test_ok(self):
        self.session.get.return_value = fake_response([{"id": "a"}])
        assert self.provider._get("/tickers") == [{"id": "a"}]
        url = self.session.get.call_args.args[0]
        assert url == "http://test/v1/tickers"

    def test_http_error(self):
        self.session.get.return_value = fake_response(status=429)
        with pytest.raises(TransportError) as exc:
            self.provider._get("/tickers")
        assert exc.value.status_code == 429

    def test_connection_error(self):
        self.session.get.side_effect = requests.ConnectionError("down")
        with pytest.raises(TransportError):
            self.provider._get("/tickers")

    def test_invalid_json(self):
        self.session.get.return_value = fake_response(bad_json=True)
        with pytest.raises(TransportError):
            self.provider._get("/tickers")


class TestFetchRows:
    def setup_method(self):
        self.provider = CoinGeckoProvider(api_key="")

    @pytest.mark.asyncio
    async def test_partial_failure_yields_warnings(self, config, monkeypatch):
        def fake_get(path, params):
            if params["page"] == 3:
                raise TransportError("boom", status_code=500)
            return [{"id": f"coin-{params['page']}", "symbol": "C"}]
        monkeypatch.setattr(self.provider, "_get", fake_get)

        rows, warnings = await self.provider.fetch_rows(config)
        assert [r["id"] for r in rows] == ["coin-1", "coin-2", "coin-4", "coin-5", "coin-6"]
        assert warnings == ["coingecko unit 3/6 failed: boom"]

    @pytest.mark.asyncio
    async def test_all_units_failing_raises(self, config, monkeypatch):
        def fake_get(path, params):
            raise TransportError("rate limited", status_code=429)
        monkeypatch.setattr(self.provider, "_get", fake_get)

        with pytest.raises(TransportError) as exc:
            await self.provider.fetch_rows(config)
        assert exc.value.failed_units == 6
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_duplicate_ids_across_pages(self, config, monkeypatch):
        def fake_get(path, params):
            return [{"id": "same", "symbol": "S"}, {"id": f"p{params['page']}", "symbol": "P"}]
        monkeypatch.setattr(self.provider, "_get", fake_get)

        rows, warnings = await self.provider.fetch_rows(config)
        assert [r["id"] for r in rows].count("same") == 1
        assert len(rows) == 7
        assert warnings == []

    @pytest.mark.asyncio
    async def test_error_object_fails_its_unit(self, config, monkeypatch):
        def fake_get(path, params):
            if params["page"] == 2:
                return {"error": "rate limited"}
            return [{"id": f"coin-{params['page']}", "symbol": "C"}]
        monkeypatch.setattr(self.provider, "_get", fake_get)

        rows, warnings = await self.provider.fetch_rows(config)
        assert "coin-2" not in [r["id"] for r in rows]
        assert len(rows) == 5
        assert warnings == ["coingecko unit 2/6 failed: coingecko returned dict instead of rows: rate limited"]

    @pytest.mark.asyncio
    async def test_error_objects_everywhere_raise(self, config, monkeypatch):
        monkeypatch.setattr(self.provider, "_get", lambda path, params: {"error": "rate limited"})
        with pytest.raises(TransportError) as exc:
            await self.provider.fetch_rows(config)
        assert "rate limited" in str(exc.value)
        assert exc.value.failed_units == 6

    @pytest.mark.asyncio
    async def test_no_rows_at_all_raises(self, config, monkeypatch):
        monkeypatch.setattr(self.provider, "_get", lambda path, params: [])
        with pytest.raises(TransportError, match="no rows"):
            await self.provider.fetch_rows(config)


class TestGatherBounded:
    @pytest.mark.asyncio
    async def test_limit_respected_and_order_kept(self):
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        def make_job(i):
            def job():
                with lock:
                    state["active"] += 1
                    state["peak"] = max(state["peak"], state["active"])
                time.sleep(0.02)
                with lock:
                    state["active"] -= 1
                return i * 10
            return job

        results, errors = await gather_bounded([make_job(i) for i in range(10)], limit=3)
        assert results == [i * 10 for i in range(10)]
        assert errors == []
        assert 1 <= state["peak"] <= 3

    @pytest.mark.asyncio
    async def test_transport_errors_collected(self):
        def bad():
            raise TransportError("nope")
        results, errors = await gather_bounded([lambda: 1, bad, lambda: 3], limit=2)
        assert results == [1, None, 3]
        assert [idx for idx, _ in errors] == [1]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        def broken():
            raise KeyError("bug")
        with pytest.raises(KeyError):
            await gather_bounded([broken], limit=1)

    @pytest.mark.asyncio
    async def test_no_jobs(self):
        assert await gather_bounded([], limit=4) == ([], [])


class TestNarrativeSource:
    def test_local_file(self, tmp_path):
        path = tmp_path / "narratives.json"
        path.write_text(json.dumps({
            "heat": {"ai": 140, "rwa": "55", "bad": "hot"},
            "coins": {"abc": ["ai", " ", None, "rwa"], "xyz": "ai"},
        }))
        source = NarrativeSource(str(path))
        lookup = source.load()
        assert lookup.heat == {"ai": 100.0, "rwa": 55.0}
        assert lookup.coins == {"abc": ["ai", "rwa"], "xyz": []}
        assert source.last_good == lookup

    def test_missing_file(self, tmp_path):
        source = NarrativeSource(str(tmp_path / "absent.json"))
        with pytest.raises(NarrativeUnavailable):
            source.load()
        assert source.last_good is None

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "narratives.json"
        path.write_text("{not json")
        with pytest.raises(NarrativeUnavailable):
            NarrativeSource(str(path)).load()

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "narratives.json"
        path.write_bytes(b'{"heat": {"ai": 90\xff}}')
        with pytest.raises(NarrativeUnavailable):
            NarrativeSource(str(path)).load()

    def test_remote(self):
        session = MagicMock()
        session.get.return_value = fake_response({"heat": {"ai": 70}, "coins": {"abc": ["ai"]}})
        source = NarrativeSource("https://example.test/narratives.json", session=session)
        assert source.is_remote
        assert source.load().heat == {"ai": 70.0}

    def test_remote_failure_keeps_last_good(self):
        session = MagicMock()
        session.get.return_value = fake_response({"heat": {"ai": 70}, "coins": {}})
        source = NarrativeSource("https://example.test/narratives.json", session=session)
        first = source.load()

        session.get.return_value = fake_response(status=503)
        with pytest.raises(NarrativeUnavailable):
            source.load()
        assert source.last_good == first

    def test_non_mapping_payload_is_empty(self):
        session = MagicMock()
        session.get.return_value = fake_response(["unexpected"])
        lookup = NarrativeSource("http://example.test/n.json", session=session).load()
        assert lookup.heat == {} and lookup.coins == {}
