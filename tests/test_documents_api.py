import threading
import time

import httpx
import respx
from fastapi.testclient import TestClient

from crpt_document_service.core.config import get_settings
from crpt_document_service.main import app
from crpt_document_service.services import crpt_gateway

CREATE_URL = "https://crpt.test/api/v3/lk/documents/create"


def _document() -> dict:
    return {
        "doc_id": "doc-1",
        "owner_inn": "7700000000",
        "producer_inn": "7700000000",
        "production_date": "2026-01-26",
        "importRequest": False,
        "products": [
            {"tnved_code": "6401100000", "uit_code": "010460043993125621JgXJ5.T"},
        ],
    }


def _tight_limit(monkeypatch) -> None:
    # Allow only 1 upstream call per 60s and give up waiting quickly
    monkeypatch.setenv("CRPT_RL_LIMIT", "1")
    monkeypatch.setenv("CRPT_RL_PERIOD_S", "60")
    monkeypatch.setenv("CRPT_RL_MAX_WAIT_S", "0.2")
    get_settings.cache_clear()
    crpt_gateway.reset_limiter()


@respx.mock
def test_introduce_goods_submits_document() -> None:
    route = respx.post(CREATE_URL).mock(return_value=httpx.Response(200, json={"value": "doc-uuid"}))

    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json=_document())

    assert resp.status_code == 200
    assert resp.json() == {"status": "submitted", "upstream_status": 200, "upstream_body": {"value": "doc-uuid"}}

    sent = route.calls[0].request
    assert b'"importRequest":false' in sent.content
    assert b'"doc_type":"LP_INTRODUCE_GOODS"' in sent.content


@respx.mock
def test_rate_limit_returns_429_when_wait_exceeds_max(monkeypatch) -> None:
    _tight_limit(monkeypatch)
    route = respx.post(CREATE_URL).mock(return_value=httpx.Response(200, json={}))

    client = TestClient(app)

    r1 = client.post("/v1/documents/introduce-goods", json=_document())
    assert r1.status_code == 200

    r2 = client.post("/v1/documents/introduce-goods", json=_document())
    assert r2.status_code == 429
    assert r2.json()["detail"] == "Too many requests"

    assert len(route.calls) == 1


@respx.mock
def test_failed_upstream_call_still_consumes_slot(monkeypatch) -> None:
    _tight_limit(monkeypatch)
    req = httpx.Request("POST", CREATE_URL)
    route = respx.post(CREATE_URL).mock(side_effect=httpx.ConnectError("boom", request=req))

    client = TestClient(app)

    r1 = client.post("/v1/documents/introduce-goods", json=_document())
    assert r1.status_code == 502
    assert r1.json()["detail"] == "CRPT upstream error"

    r2 = client.post("/v1/documents/introduce-goods", json=_document())
    assert r2.status_code == 429

    assert len(route.calls) == 1


@respx.mock
def test_upstream_error_status_returns_502() -> None:
    respx.post(CREATE_URL).mock(return_value=httpx.Response(403, json={"error_message": "forbidden"}))

    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json=_document())

    assert resp.status_code == 502
    assert resp.json()["detail"] == "CRPT upstream error"


def test_invalid_limiter_settings_return_500(monkeypatch) -> None:
    monkeypatch.setenv("CRPT_RL_LIMIT", "-3")
    get_settings.cache_clear()

    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json=_document())

    assert resp.status_code == 500


def test_invalid_body_returns_422() -> None:
    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json={"products": "not-a-list"})
    assert resp.status_code == 422


def test_unparsable_limiter_setting_returns_500(monkeypatch) -> None:
    monkeypatch.setenv("CRPT_RL_PERIOD_S", "abc")
    get_settings.cache_clear()

    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json=_document())

    assert resp.status_code == 500


@respx.mock
def test_invalid_upstream_json_returns_502() -> None:
    respx.post(CREATE_URL).mock(
        return_value=httpx.Response(
            200,
            content=b"not-json",
            headers={"Content-Type": "application/json"},
        )
    )

    client = TestClient(app)
    resp = client.post("/v1/documents/introduce-goods", json=_document())

    assert resp.status_code == 502
    assert resp.json()["detail"] == "CRPT upstream error"


@respx.mock
def test_health_answers_while_submission_waits_for_slot(monkeypatch) -> None:
    _tight_limit(monkeypatch)
    monkeypatch.setenv("CRPT_RL_MAX_WAIT_S", "1.5")
    get_settings.cache_clear()

    respx.post(CREATE_URL).mock(return_value=httpx.Response(200, json={}))

    statuses: list[int] = []

    with TestClient(app) as client:
        assert client.post("/v1/documents/introduce-goods", json=_document()).status_code == 200

        def submit() -> None:
            statuses.append(client.post("/v1/documents/introduce-goods", json=_document()).status_code)

        waiting = threading.Thread(target=submit)
        waiting.start()
        time.sleep(0.2)

        start = time.monotonic()
        health = client.get("/health")
        limiter = client.get("/health/limiter")
        elapsed = time.monotonic() - start

        assert waiting.is_alive()
        waiting.join(timeout=5)

    assert health.status_code == 200
    assert limiter.json()["available"] == 0
    assert elapsed < 0.5
    assert statuses == [429]
