"""
Unit tests for TdxClient.

The pytdx API object is replaced with a Mock returning rows shaped like
pytdx's own dictionaries.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from market_api.core.config import Settings
from market_api.core.exceptions import ConfigurationError, UpstreamFetchError
from market_api.services.market_data.aggregator import ExchangeAggregator
from market_api.services.tdx.tdx_client import MINUTE_LABELS, TdxClient, parse_hosts
from market_api.services.tdx.types import Exchange, KlineType


def bar_row(day: int, close: float, hour: int = 15, minute: int = 0) -> dict:
    return {
        "open": close - 0.1,
        "close": close,
        "high": close + 0.2,
        "low": close - 0.3,
        "vol": 1000.0,
        "amount": 10000.0,
        "year": 2024,
        "month": 1,
        "day": day,
        "hour": hour,
        "minute": minute,
        "datetime": f"2024-01-{day:02d} {hour:02d}:{minute:02d}",
    }


def quote_row(market: int, code: str) -> dict:
    row = {
        "market": market,
        "code": code,
        "price": 10.5,
        "last_close": 10.0,
        "open": 10.1,
        "high": 10.8,
        "low": 9.9,
        "servertime": "14:59:58.123",
        "vol": 12345,
        "amount": 1.2e7,
    }
    for i in range(1, 6):
        row[f"bid{i}"] = 10.5 - i * 0.01
        row[f"bid_vol{i}"] = 100 * i
        row[f"ask{i}"] = 10.5 + i * 0.01
        row[f"ask_vol{i}"] = 200 * i
    return row


@pytest.fixture
def api():
    return Mock()


@pytest.fixture
def client(api):
    return TdxClient(Settings(tdx_page_size=2), api=api)


class TestParseHosts:
    """Test host list configuration"""

    def test_valid(self):
        assert parse_hosts(["1.2.3.4:7709", " host.example:80 "]) == [
            ("1.2.3.4", 7709),
            ("host.example", 80),
        ]

    @pytest.mark.parametrize("hosts", [[], ["1.2.3.4"], ["1.2.3.4:port"], [":7709"]])
    def test_invalid(self, hosts):
        with pytest.raises(ConfigurationError):
            parse_hosts(hosts)


class TestConnection:
    """Test connecting over the host list"""

    @pytest.mark.asyncio
    async def test_first_accepting_host_wins(self, api):
        api.connect.side_effect = [False, api]
        client = TdxClient(Settings(tdx_hosts=["10.0.0.1:7709", "10.0.0.2:7709"]), api=api)

        await client.connect()

        assert client.is_connected
        assert client.server == "10.0.0.2:7709"
        assert api.connect.call_count == 2

    @pytest.mark.asyncio
    async def test_no_host_accepts(self, api):
        api.connect.side_effect = OSError("refused")
        client = TdxClient(Settings(tdx_hosts=["10.0.0.1:7709"]), api=api)

        with pytest.raises(UpstreamFetchError, match="failed to connect"):
            await client.connect()

    @pytest.mark.asyncio
    async def test_close_disconnects(self, client, api):
        await client.close()

        api.disconnect.assert_called_once()
        assert not client.is_connected


class TestKline:
    """Test kline mapping and paging"""

    @pytest.mark.asyncio
    async def test_get_kline(self, client, api):
        api.get_security_bars.return_value = [bar_row(2, 10.0), bar_row(3, 10.5)]

        series = await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 2)

        api.get_security_bars.assert_called_once_with(9, 1, "600000", 0, 2)
        assert series.count == 2
        assert series.bars[0].time == datetime(2024, 1, 2, 15, 0)
        assert series.bars[0].prior_close == 0.0
        assert series.bars[1].prior_close == 10.0
        assert series.bars[1].volume == 1000.0

    @pytest.mark.asyncio
    async def test_get_kline_all_pages_in_order(self, client, api):
        """Newest page first from the server, oldest-first in the result"""
        pages = {
            0: [bar_row(4, 14.0), bar_row(5, 15.0)],
            2: [bar_row(2, 12.0), bar_row(3, 13.0)],
            4: [bar_row(1, 11.0)],
        }
        api.get_security_bars.side_effect = lambda cat, market, code, start, count: pages[start]

        series = await client.get_kline_all(KlineType.DAY, Exchange.SZ, "000001")

        assert [b.close for b in series.bars] == [11.0, 12.0, 13.0, 14.0, 15.0]
        assert series.count == 5
        assert series.bars[3].prior_close == 13.0

    @pytest.mark.asyncio
    async def test_get_index_kline_all_stops_on_empty_page(self, client, api):
        pages = {0: [bar_row(4, 14.0), bar_row(5, 15.0)], 2: []}
        api.get_index_bars.side_effect = lambda cat, market, code, start, count: pages[start]

        series = await client.get_index_kline_all(KlineType.WEEK, Exchange.SH, "000001")

        assert series.count == 2
        assert api.get_index_bars.call_count == 2
        assert api.get_index_bars.call_args_list[0].args[0] == 5

    @pytest.mark.asyncio
    async def test_none_response_is_upstream_error(self, client, api):
        api.get_security_bars.return_value = None

        with pytest.raises(UpstreamFetchError) as exc_info:
            await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        assert exc_info.value.source == "tdx"

    @pytest.mark.asyncio
    async def test_exception_is_upstream_error(self, client, api):
        api.get_index_bars.side_effect = ConnectionResetError("reset by peer")

        with pytest.raises(UpstreamFetchError, match="reset by peer"):
            await client.get_index_kline(KlineType.DAY, Exchange.SH, "000001", 0, 10)


class TestQuotesAndTicks:
    """Test quote, minute and trade mapping"""

    @pytest.mark.asyncio
    async def test_get_quotes(self, client, api):
        api.get_security_quotes.return_value = [quote_row(1, "600000"), quote_row(0, "000001")]

        quotes = await client.get_quotes([(Exchange.SH, "600000"), (Exchange.SZ, "000001")])

        api.get_security_quotes.assert_called_once_with([(1, "600000"), (0, "000001")])
        assert quotes[0].exchange is Exchange.SH
        assert quotes[1].exchange is Exchange.SZ
        assert len(quotes[0].bids) == 5
        assert quotes[0].asks[4].volume == 1000

    @pytest.mark.asyncio
    async def test_history_minute_labels(self, client, api):
        api.get_history_minute_time_data.return_value = [
            {"price": 10.0 + i * 0.01, "vol": 100} for i in range(240)
        ]

        points = await client.get_history_minute("20240102", Exchange.SZ, "000001")

        api.get_history_minute_time_data.assert_called_once_with(0, "000001", 20240102)
        assert len(points) == 240
        assert points[0].time == "09:31"
        assert points[119].time == "11:30"
        assert points[120].time == "13:01"
        assert points[-1].time == "15:00"
        assert len(MINUTE_LABELS) == 240

    @pytest.mark.asyncio
    async def test_minute_trade(self, client, api):
        api.get_transaction_data.return_value = [
            {"time": "14:56", "price": 10.5, "vol": 30, "num": 4, "buyorsell": 1}
        ]

        trades = await client.get_minute_trade(Exchange.SH, "600000", 0, 1800)

        api.get_transaction_data.assert_called_once_with(1, "600000", 0, 1800)
        assert trades[0].to_dict() == {
            "time": "14:56",
            "price": 10.5,
            "volume": 30.0,
            "order_count": 4,
            "side": 1,
        }

    @pytest.mark.asyncio
    async def test_history_trade_day_single_page(self, client, api):
        api.get_history_transaction_data.return_value = [
            {"time": "09:25", "price": 10.0, "vol": 10, "buyorsell": 2},
            {"time": "09:30", "price": 10.1, "vol": 20, "buyorsell": 0},
        ]

        trades = await client.get_history_trade_day("20240102", Exchange.SH, "600000")

        assert [t.time for t in trades] == ["09:25", "09:30"]
        api.get_history_transaction_data.assert_called_once_with(1, "600000", 0, 2000, 20240102)


class TestCodeListing:
    """Test paged security list"""

    @pytest.mark.asyncio
    async def test_get_code_all_pages(self, client, api):
        api.get_security_count.return_value = 1500
        api.get_security_list.side_effect = [
            [{"code": "600000", "name": "PFYH  ", "pre_close": 1.2}],
            [{"code": "000001", "name": "SZZS", "pre_close": -0.5}],
        ]

        listings = await client.get_code_all(Exchange.SH)

        assert [c.args for c in api.get_security_list.call_args_list] == [(1, 0), (1, 1000)]
        assert listings[0].name == "PFYH"
        assert listings[0].exchange is Exchange.SH
        assert listings[0].direction == 1
        assert listings[1].direction == -1


class TestMalformedResponses:
    """Test that unusable rows surface as upstream errors"""

    @pytest.mark.asyncio
    async def test_listing_row_without_name(self, client, api):
        api.get_security_count.return_value = 1
        api.get_security_list.return_value = [{"code": "430047", "pre_close": 0.0}]

        with pytest.raises(UpstreamFetchError, match="malformed response") as exc_info:
            await client.get_code_all(Exchange.BJ)

        assert exc_info.value.source == "tdx"

    @pytest.mark.asyncio
    async def test_quote_with_unknown_market(self, client, api):
        api.get_security_quotes.return_value = [quote_row(9, "600000")]

        with pytest.raises(UpstreamFetchError, match="get_security_quotes"):
            await client.get_quotes([(Exchange.SH, "600000")])

    @pytest.mark.asyncio
    async def test_market_stats_skips_malformed_partition(self, api):
        listings = {
            0: [{"code": "000001", "name": "PAYH", "pre_close": 0.5}],
            1: [{"code": "600000", "name": "PFYH", "pre_close": -0.5}],
            2: [{"code": "430047", "pre_close": 0.0}],
        }
        api.get_security_count.return_value = 1
        api.get_security_list.side_effect = lambda market, start: listings[market]
        aggregator = ExchangeAggregator(TdxClient(Settings(), api=api))

        data = (await aggregator.market_stats()).to_dict()

        assert data["sh"]["total"] == 1
        assert data["sz"]["total"] == 1
        assert data["bj"]["total"] == 0


class TestReconnect:
    """Test connection state after failed calls"""

    @pytest.mark.asyncio
    async def test_socket_error_marks_disconnected(self, client, api):
        api.get_security_bars.side_effect = ConnectionResetError("reset by peer")

        with pytest.raises(UpstreamFetchError):
            await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_wrapped_socket_error_marks_disconnected(self, client, api):
        error = RuntimeError("call failed")
        error.original_exception = BrokenPipeError("broken pipe")
        api.get_security_bars.side_effect = error

        with pytest.raises(UpstreamFetchError):
            await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_next_call_reconnects(self, client, api):
        api.get_security_bars.side_effect = ConnectionResetError("reset by peer")
        with pytest.raises(UpstreamFetchError):
            await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        api.get_security_bars.side_effect = None
        api.get_security_bars.return_value = [bar_row(2, 10.0)]
        api.connect.return_value = api

        series = await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        assert series.count == 1
        api.connect.assert_called_once()
        assert client.is_connected
        assert client.server == Settings().tdx_hosts[0]

    @pytest.mark.asyncio
    async def test_other_errors_keep_connection(self, client, api):
        api.get_security_bars.side_effect = ValueError("bad category")

        with pytest.raises(UpstreamFetchError):
            await client.get_kline(KlineType.DAY, Exchange.SH, "600000", 0, 10)

        assert client.is_connected
        api.connect.assert_not_called()
