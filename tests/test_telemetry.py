import threading

from fastapi.testclient import TestClient

from conftest import ClosingTelemetry
from toolrouter.main import create_app
from toolrouter.services import telemetry as telemetry_module
from toolrouter.services.telemetry import TelemetryClient, emit


def _blocking_post(monkeypatch):
    gate = threading.Event()
    started = threading.Event()
    sent = []

    def fake_post_json(url, payload, **kwargs):
        sent.append(payload["event_type"])
        started.set()
        gate.wait(5)

    monkeypatch.setattr(telemetry_module, "post_json", fake_post_json)
    return gate, started, sent


def test_backlog_is_capped_while_sink_is_slow(monkeypatch) -> None:
    gate, started, sent = _blocking_post(monkeypatch)
    client = TelemetryClient("http://analytics.test", max_pending=2)

    client.track("first", "unit-converter", {})
    assert started.wait(5)
    client.track("second", "unit-converter", {})
    client.track("third", "unit-converter", {})
    assert client.pending == 2

    gate.set()
    client.close(wait=True)

    assert sent == ["first", "second"]
    assert client.pending == 0


def test_events_after_close_are_only_logged(monkeypatch) -> None:
    _, _, sent = _blocking_post(monkeypatch)
    client = TelemetryClient("http://analytics.test")
    client.close()

    client.track("late", "unit-converter", {"x": 1})

    assert sent == []
    assert client.pending == 0


def test_without_analytics_url_nothing_is_posted(monkeypatch) -> None:
    _, _, sent = _blocking_post(monkeypatch)

    TelemetryClient(None).track("currency_conversion", "unit-converter", {})

    assert sent == []


def test_emit_swallows_sink_errors() -> None:
    class Broken:
        def track(self, *args):
            raise RuntimeError("analytics down")

    emit(Broken(), "forex_api_call", "unit-converter", {})


def test_app_shutdown_closes_telemetry(settings, provider) -> None:
    sink = ClosingTelemetry()

    with TestClient(create_app(settings, provider=provider, telemetry=sink)) as client:
        assert client.get("/health").status_code == 200
        assert sink.closed_with == []

    assert sink.closed_with == [False]
