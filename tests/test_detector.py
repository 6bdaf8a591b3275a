import asyncio
from datetime import datetime, timedelta, timezone

import httpx

from timing_tracker.clients.kalshi import KalshiClient
from timing_tracker.config import DetectionConfig, KalshiConfig
from timing_tracker.detection.alerts import AlertDispatcher
from timing_tracker.detection.detector import TimingDetector
from timing_tracker.detection.ledger import MonitorState
from timing_tracker.models import Market, MarketStatus, RiskTier, Side, Trade

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
EPOCH = NOW - timedelta(hours=1)


class DummyNotifier:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.alerts = []

    async def send_alert(self, alert) -> bool:
        self.alerts.append(alert)
        return self.ok


class DummyClient:
    def __init__(self, markets, trades=None) -> None:
        self.markets = markets
        self.trades = trades or {}
        self.trade_requests = []

    async def list_open_markets(self):
        return self.markets

    async def list_recent_trades(self, ticker: str, limit: int = 50):
        self.trade_requests.append((ticker, limit))
        return self.trades.get(ticker, [])


class Sleeper:
    def __init__(self) -> None:
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _market(ticker: str = "FED-26MAR", minutes_out: int = 40, status=MarketStatus.OPEN) -> Market:
    return Market(
        ticker=ticker,
        title="Fed rate decision",
        category="Economics",
        status=status,
        event_time=NOW + timedelta(minutes=minutes_out),
    )


def _trade(
    minutes_before_event: int = 40,
    amount: int = 15000,
    trader: str = "abc",
    side: Side = Side.YES,
    event_minutes_out: int = 40,
    created_time=...,
) -> Trade:
    if created_time is ...:
        created_time = NOW + timedelta(minutes=event_minutes_out - minutes_before_event)
    # 50 cent contracts: count = amount * 2
    return Trade(
        trade_id=f"{trader}-{amount}",
        ticker="FED-26MAR",
        created_time=created_time,
        side=side,
        count=amount * 2,
        yes_price=50 if side == Side.YES else 0,
        no_price=50 if side == Side.NO else 0,
        trader_id=trader,
    )


def _detector(client, notifier=None, config=None, state=None):
    notifier = notifier if notifier is not None else DummyNotifier()
    state = state or MonitorState(capacity=100, epoch=EPOCH)
    sleeper = Sleeper()
    detector = TimingDetector(
        client,
        AlertDispatcher(notifier),
        state,
        config or DetectionConfig(),
        clock=lambda: NOW,
        sleep=sleeper,
    )
    return detector, notifier, sleeper


def test_scenario_single_medium_alert() -> None:
    client = DummyClient([_market()], {"FED-26MAR": [_trade(minutes_before_event=40)]})
    detector, notifier, sleeper = _detector(client)

    result = asyncio.run(detector.run_cycle())

    assert result.alerts_sent == 1
    assert len(notifier.alerts) == 1
    alert = notifier.alerts[0]
    assert alert.risk == RiskTier.MEDIUM
    assert alert.timing.minutes_before == 40
    assert alert.amount == 15000
    assert alert.market_url == "https://kalshi.com/markets/FED-26MAR"
    assert len(detector.state.ledger) == 1
    assert sleeper.calls == [2.0, 0.1]


def test_replay_in_next_cycle_is_deduplicated() -> None:
    client = DummyClient([_market()], {"FED-26MAR": [_trade()]})
    detector, notifier, _ = _detector(client)

    asyncio.run(detector.run_cycle())
    second = asyncio.run(detector.run_cycle())

    assert second.alerts_sent == 0
    assert len(notifier.alerts) == 1
    assert len(detector.state.ledger) == 1
    assert detector.state.stats.scans_completed == 2


def test_same_bucket_trades_alert_once() -> None:
    trades = [_trade(amount=15000), _trade(amount=15050, minutes_before_event=35)]
    client = DummyClient([_market()], {"FED-26MAR": trades})
    detector, notifier, _ = _detector(client)

    asyncio.run(detector.run_cycle())

    assert len(notifier.alerts) == 1


def test_risk_tiers() -> None:
    trades = [
        _trade(minutes_before_event=m, trader=trader, event_minutes_out=50)
        for m, trader in ((10, "a"), (25, "b"), (45, "c"))
    ]
    client = DummyClient([_market(minutes_out=50)], {"FED-26MAR": trades})
    detector, notifier, _ = _detector(client)

    asyncio.run(detector.run_cycle())

    assert [a.risk for a in notifier.alerts] == [RiskTier.CRITICAL, RiskTier.HIGH, RiskTier.MEDIUM]


def test_timing_window_bounds() -> None:
    market = _market(minutes_out=50)
    trades = [
        _trade(minutes_before_event=0, trader="at-event", event_minutes_out=50),
        _trade(minutes_before_event=-5, trader="after-event", event_minutes_out=50),
        _trade(minutes_before_event=61, trader="too-early", event_minutes_out=50),
        _trade(minutes_before_event=60, trader="edge", event_minutes_out=50),
    ]
    detector, notifier, _ = _detector(DummyClient([market]))

    qualifying = [t.trader_id for t in trades if detector.evaluate_trade(market, t) is not None]

    assert qualifying == ["edge"]


def test_historical_trades_never_alert() -> None:
    market = _market()
    trade = _trade(minutes_before_event=40)

    at_epoch = MonitorState(capacity=10, epoch=trade.created_time)
    detector, notifier, _ = _detector(DummyClient([market], {market.ticker: [trade]}), state=at_epoch)
    result = asyncio.run(detector.run_cycle())

    assert result.alerts_sent == 0
    assert notifier.alerts == []

    just_before = MonitorState(capacity=10, epoch=trade.created_time - timedelta(seconds=1))
    detector, notifier, _ = _detector(DummyClient([market], {market.ticker: [trade]}), state=just_before)
    assert detector.evaluate_trade(market, trade) is not None


def test_below_threshold_never_alerts() -> None:
    market = _market()
    small = _trade(amount=9999, trader="small")
    detector, notifier, _ = _detector(DummyClient([market], {market.ticker: [small]}))

    assert detector.evaluate_trade(market, small) is None
    assert detector.evaluate_trade(market, _trade(amount=10000)) is not None


def test_trades_without_timestamp_are_skipped() -> None:
    market = _market()
    detector, _, _ = _detector(DummyClient([market]))
    assert detector.evaluate_trade(market, _trade(created_time=None)) is None


def test_market_filters() -> None:
    markets = [
        _market("CLOSED", status=MarketStatus.CLOSED),
        Market("NOTIME", "No event", "", MarketStatus.OPEN, event_time=None),
        _market("PAST", minutes_out=-1),
        _market("FAR", minutes_out=24 * 60 + 1),
        _market("LATER", minutes_out=121),
        _market("SOON", minutes_out=120),
    ]
    client = DummyClient(markets)
    detector, _, sleeper = _detector(client)

    result = asyncio.run(detector.run_cycle())

    assert result.markets_found == 6
    assert result.markets_checked == 2
    assert client.trade_requests == [("SOON", 20)]
    assert sleeper.calls == [0.1]


def test_failed_delivery_still_records_fingerprint() -> None:
    client = DummyClient([_market()], {"FED-26MAR": [_trade()]})
    detector, notifier, _ = _detector(client, notifier=DummyNotifier(ok=False))

    first = asyncio.run(detector.run_cycle())
    asyncio.run(detector.run_cycle())

    assert first.alerts_failed == 1
    assert len(notifier.alerts) == 1
    assert len(detector.state.ledger) == 1


def test_no_sink_configured_still_records() -> None:
    client = DummyClient([_market()], {"FED-26MAR": [_trade()]})
    state = MonitorState(capacity=100, epoch=EPOCH)
    detector = TimingDetector(
        client, AlertDispatcher(None), state, DetectionConfig(), clock=lambda: NOW, sleep=Sleeper()
    )

    result = asyncio.run(detector.run_cycle())

    assert result.alerts_sent == 1
    assert len(state.ledger) == 1


def test_bad_trade_does_not_abort_market() -> None:
    broken = _trade(trader="broken")
    broken.count = "not-a-number"
    client = DummyClient([_market()], {"FED-26MAR": [broken, _trade(trader="good")]})
    detector, notifier, _ = _detector(client)

    asyncio.run(detector.run_cycle())

    assert [a.trader_id for a in notifier.alerts] == ["good"]


def test_market_listing_failure_ends_cycle_quietly() -> None:
    class ExplodingClient(DummyClient):
        async def list_open_markets(self):
            raise RuntimeError("venue down")

    detector, notifier, _ = _detector(ExplodingClient([]))

    result = asyncio.run(detector.run_cycle())

    assert result.completed is False
    assert notifier.alerts == []
    assert detector.state.stats.scans_completed == 1


def test_trade_fetch_network_error_continues_to_next_market() -> None:
    trade_json = {
        "trade_id": "t1",
        "created_time": NOW.isoformat(),
        "side": "yes",
        "count": 30000,
        "yes_price": 50,
        "taker_id": "abc",
    }
    event_time = (NOW + timedelta(minutes=40)).isoformat()

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/markets"):
            return httpx.Response(200, json={"markets": [
                {"ticker": "DOWN", "status": "open", "close_time": event_time},
                {"ticker": "UP", "status": "open", "close_time": event_time},
            ]})
        if "/DOWN/" in path:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json={"trades": [trade_json]})

    async def run():
        config = KalshiConfig(api_url="https://kalshi.test/trade-api/v2", requests_per_second=1000)
        async with KalshiClient(config, transport=httpx.MockTransport(handler)) as client:
            detector, notifier, _ = _detector(client)
            result = await detector.run_cycle()
            return result, notifier

    result, notifier = asyncio.run(run())

    assert result.completed is True
    assert result.markets_checked == 2
    assert [a.market_ticker for a in notifier.alerts] == ["UP"]


def test_nan_threshold_from_env_still_alerts(monkeypatch) -> None:
    from timing_tracker.config import Config

    monkeypatch.setenv("MIN_BET_AMOUNT", "nan")
    config = Config.from_env().detection
    client = DummyClient([_market()], {"FED-26MAR": [_trade(amount=15000)]})
    detector, notifier, _ = _detector(client, config=config)

    result = asyncio.run(detector.run_cycle())

    assert result.alerts_sent == 1
    assert len(notifier.alerts) == 1
