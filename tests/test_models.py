from datetime import datetime, timedelta, timezone

import pytest

from announcement_monitor.core.models import Announcement, Exchange, MonitorConfig, compute_fingerprint
from announcement_monitor.core.models.exceptions import HttpStatusError, NetworkError, ParseError, ParseStage

PUBLISHED = datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)


def _ann(**overrides):
    fields = dict(source=Exchange.OKX, id="42", title="OKX to list ABC (ABC)", body="", published_at=PUBLISHED)
    fields.update(overrides)
    return Announcement(**fields)


def test_fingerprint_is_stable_for_equal_fields():
    assert _ann().fingerprint == _ann().fingerprint
    assert _ann() == _ann()
    assert len({_ann(), _ann()}) == 1


def test_fingerprint_ignores_body_url_and_minutes_within_the_hour():
    other = _ann(body="Details", url="https://www.okx.com/help/x", published_at=PUBLISHED + timedelta(minutes=20))
    assert other.fingerprint == _ann().fingerprint


def test_fingerprint_changes_with_source_id_and_hour():
    assert _ann(id="43").fingerprint != _ann().fingerprint
    assert _ann(source=Exchange.BYBIT).fingerprint != _ann().fingerprint
    assert _ann(published_at=PUBLISHED + timedelta(hours=1)).fingerprint != _ann().fingerprint


def test_fingerprint_falls_back_to_normalized_title_without_id():
    a = _ann(id=None, title="Binance  Will List   ABC")
    b = _ann(id=None, title="binance will list abc")
    assert a.fingerprint == b.fingerprint


def test_approximate_timestamps_do_not_affect_the_fingerprint():
    a = _ann(id=None, published_at=PUBLISHED, published_at_approximate=True)
    b = _ann(id=None, published_at=PUBLISHED + timedelta(days=1), published_at_approximate=True)
    assert a == b
    assert a.fingerprint == compute_fingerprint(Exchange.OKX, None, a.title, PUBLISHED, True)


def test_naive_datetime_is_taken_as_utc():
    ann = _ann(published_at=datetime(2024, 1, 5, 10, 30))
    assert ann.published_at.tzinfo is timezone.utc
    assert ann == _ann()


def test_exchange_parse_accepts_ids_and_display_names():
    assert Exchange.parse("GATEIO") is Exchange.GATEIO
    assert Exchange.parse("Gate.io") is Exchange.GATEIO
    assert Exchange.parse(" kucoin ") is Exchange.KUCOIN
    assert Exchange.KUCOIN.display_name == "KuCoin"
    with pytest.raises(ValueError):
        Exchange.parse("binanceus")


def test_monitor_config_rejects_invalid_values():
    assert MonitorConfig(Exchange.BINANCE).poll_interval == 300
    with pytest.raises(ValueError):
        MonitorConfig(Exchange.BINANCE, poll_interval=0)
    with pytest.raises(ValueError):
        MonitorConfig(Exchange.BINANCE, max_pages=0)


def test_error_kinds():
    assert NetworkError("reset").kind == "network"
    assert NetworkError("slow", timeout=True).kind == "timeout"
    assert HttpStatusError(429).retryable
    assert not HttpStatusError(500).retryable
    assert HttpStatusError(500).kind == "http_status"
    error = ParseError("bad entry", ParseStage.ENTRY_NORMALIZE)
    assert error.kind == "parse"
    assert str(error).startswith("[entry-normalize]")
