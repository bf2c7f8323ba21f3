"""
Pytest tests for the condition agent HTTP surface.

get_prometheus_condition is replaced with a stub so no Prometheus is needed.
"""

from __future__ import annotations

import pytest

from condition_agent import main
from condition_agent.prometheus_client import PrometheusQueryError, PrometheusResultTypeError


def _stub(monkeypatch, result=None, error=None):
    calls = []

    async def fake(prometheus_url, condition, headers=None, transport=None):
        calls.append({"url": prometheus_url, "query": condition, "headers": headers})
        if error is not None:
            raise error
        return result

    monkeypatch.setattr(main, "get_prometheus_condition", fake)
    return calls


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_condition_met(client, monkeypatch):
    calls = _stub(monkeypatch, result=True)
    r = client.post("/condition", json={"query": "up == 1", "prometheus_url": "http://prom.test:9090"})
    assert r.status_code == 200
    assert r.json() == {"query": "up == 1", "condition_met": True, "error": None}
    assert calls[0]["url"] == "http://prom.test:9090"


def test_condition_not_met_uses_default_url(client, monkeypatch):
    calls = _stub(monkeypatch, result=False)
    r = client.post("/condition", json={"query": "up == 0"})
    assert r.json()["condition_met"] is False
    assert calls[0]["url"] == main.PROMETHEUS_URL


def test_condition_forwards_env_headers(client, monkeypatch):
    monkeypatch.setenv("PROMETHEUS_HEADER_X_API_KEY", "secret123")
    calls = _stub(monkeypatch, result=True)
    client.post("/condition", json={"query": "up"})
    assert calls[0]["headers"] == {"X-API-KEY": "secret123"}


@pytest.mark.parametrize(
    "error",
    [
        PrometheusQueryError("failed to query Prometheus: bad_data: parse error"),
        PrometheusResultTypeError("unexpected result type from Prometheus: scalar"),
    ],
)
def test_condition_failure_is_reported_in_body(client, monkeypatch, error):
    _stub(monkeypatch, error=error)
    r = client.post("/condition", json={"query": "scalar(1)"})
    assert r.status_code == 200
    body = r.json()
    assert body["condition_met"] is False
    assert body["error"] == str(error)


def test_empty_query_rejected(client, monkeypatch):
    calls = _stub(monkeypatch, result=True)
    r = client.post("/condition", json={"query": "   "})
    assert r.status_code == 400
    assert calls == []


def test_events_feed_newest_first(client, monkeypatch):
    _stub(monkeypatch, result=True)
    client.post("/condition", json={"query": "up"})
    events = client.get("/events").json()["events"]
    assert "Condition met: up" in events[0]
    assert "Evaluating condition: up" in events[1]


def test_events_feed_is_bounded(monkeypatch):
    monkeypatch.setattr(main, "EVENT_LOG_SIZE", 3)
    main.EVENT_LOG.clear()
    for i in range(5):
        main.add_event(f"event {i}")
    assert len(main.EVENT_LOG) == 3
    assert "event 4" in main.EVENT_LOG[0]
