from datetime import datetime, timedelta, timezone

from timing_tracker.detection.timing import (
    check_account_age,
    classify_risk,
    is_high_risk_category,
    minutes_before,
    minutes_until,
    minutes_until_close,
)
from timing_tracker.models import Market, MarketStatus, RiskTier

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _market(title: str = "", category: str = "") -> Market:
    return Market(
        ticker="FED-26MAR",
        title=title,
        category=category,
        status=MarketStatus.OPEN,
        event_time=NOW + timedelta(hours=1),
    )


def test_minutes_until_floors() -> None:
    assert minutes_until(NOW + timedelta(minutes=40, seconds=59), now=NOW) == 40
    assert minutes_until(NOW, now=NOW) == 0


def test_minutes_until_negative_when_passed() -> None:
    assert minutes_until(NOW - timedelta(seconds=30), now=NOW) == -1
    assert minutes_until_close(NOW - timedelta(minutes=5), now=NOW) == -5


def test_minutes_before() -> None:
    event = NOW + timedelta(minutes=60)
    assert minutes_before(event, NOW) == 60
    assert minutes_before(event, NOW + timedelta(minutes=59, seconds=30)) == 0
    assert minutes_before(event, event + timedelta(minutes=3)) == -3


def test_classify_risk_thresholds() -> None:
    assert classify_risk(10) == RiskTier.CRITICAL
    assert classify_risk(15) == RiskTier.CRITICAL
    assert classify_risk(16) == RiskTier.HIGH
    assert classify_risk(25) == RiskTier.HIGH
    assert classify_risk(30) == RiskTier.HIGH
    assert classify_risk(45) == RiskTier.MEDIUM


def test_classify_risk_custom_thresholds() -> None:
    assert classify_risk(20, critical_minutes=20, high_minutes=40) == RiskTier.CRITICAL
    assert classify_risk(41, critical_minutes=20, high_minutes=40) == RiskTier.MEDIUM


def test_high_risk_category_matches_category_or_title() -> None:
    keywords = ["economics", "fed"]
    assert is_high_risk_category(_market(category="Economics"), keywords)
    assert is_high_risk_category(_market(title="Will the Fed cut rates?"), keywords)
    assert not is_high_risk_category(_market(title="Super Bowl winner", category="Sports"), keywords)


def test_account_age_is_always_possibly_new() -> None:
    age = check_account_age("abc")
    assert age.is_new is True
    assert age.days_since_creation == 0
