"""Testes da rota POST /webhook/sellsy."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request

from api.connectors.sellsy.signature import SIGNATURE_HEADER, sign_sellsy_payload
from api.routes.sellsy import webhook
from app.infra.queue import MemoryJobQueue
from app.protocols.job_queue import JOB_NAME_SELLSY_EVENT

SECRET = "sign-key"
BODY = b'{"eventType":"docslog","relatedtype":"estimate","relatedid":"42"}'


def _build_request(
    *,
    body: bytes,
    headers: dict[str, str] | None = None,
    job_queue: object | None = None,
) -> Request:
    header_items = headers or {}
    raw_headers = [(k.lower().encode("utf-8"), v.encode("utf-8")) for k, v in header_items.items()]
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "path": "/webhook/sellsy",
        "raw_path": b"/webhook/sellsy",
        "query_string": b"",
        "headers": raw_headers,
        "app": SimpleNamespace(state=SimpleNamespace(job_queue=job_queue)),
    }
    sent = False

    async def _receive() -> dict[str, object]:
        nonlocal sent
        if sent:
            return {"type": "http.request", "body": b"", "more_body": False}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, _receive)


@pytest.fixture(autouse=True)
def _settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(webhook, "get_sellsy_settings", lambda: SimpleNamespace(sign_key=SECRET))
    monkeypatch.setattr(
        webhook,
        "get_queue_settings",
        lambda: SimpleNamespace(enqueue_timeout_seconds=0.05),
    )


def _signed(body: bytes = BODY) -> dict[str, str]:
    return {SIGNATURE_HEADER: sign_sellsy_payload(body, SECRET), "x-correlation-id": "corr-1"}


@pytest.mark.asyncio
async def test_valid_signature_enqueues_one_job() -> None:
    queue = MemoryJobQueue()
    request = _build_request(body=BODY, headers=_signed(), job_queue=queue)

    response = await webhook.receive_webhook(request)

    assert response.status_code == 200
    assert json.loads(response.body) == {"ok": True}
    job = await queue.dequeue(timeout_seconds=0.1)
    assert job is not None
    assert job.name == JOB_NAME_SELLSY_EVENT
    assert job.payload == json.loads(BODY)
    assert job.correlation_id == "corr-1"
    assert queue.waiting_count == 0


@pytest.mark.asyncio
async def test_invalid_signature_returns_401_without_enqueue() -> None:
    queue = MemoryJobQueue()
    request = _build_request(
        body=BODY,
        headers={SIGNATURE_HEADER: sign_sellsy_payload(BODY, "wrong")},
        job_queue=queue,
    )

    response = await webhook.receive_webhook(request)

    assert response.status_code == 401
    assert json.loads(response.body) == {"ok": False}
    assert queue.waiting_count == 0


@pytest.mark.asyncio
async def test_missing_signature_returns_401() -> None:
    queue = MemoryJobQueue()
    response = await webhook.receive_webhook(_build_request(body=BODY, job_queue=queue))

    assert response.status_code == 401
    assert queue.waiting_count == 0


@pytest.mark.asyncio
async def test_queue_failure_still_returns_200() -> None:
    queue = AsyncMock()
    queue.enqueue = AsyncMock(side_effect=ConnectionError("redis down"))
    request = _build_request(body=BODY, headers=_signed(), job_queue=queue)

    response = await webhook.receive_webhook(request)

    assert response.status_code == 200
    assert json.loads(response.body) == {"ok": True}
    queue.enqueue.assert_awaited_once()


@pytest.mark.asyncio
async def test_slow_queue_times_out_and_returns_200() -> None:
    async def _slow_enqueue(*args: object, **kwargs: object) -> str:
        await asyncio.sleep(1)
        return "never"

    queue = SimpleNamespace(enqueue=_slow_enqueue)
    request = _build_request(body=BODY, headers=_signed(), job_queue=queue)

    response = await webhook.receive_webhook(request)

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_invalid_json_with_valid_signature_returns_200() -> None:
    body = b"{not-json"
    queue = MemoryJobQueue()
    request = _build_request(body=body, headers=_signed(body), job_queue=queue)

    response = await webhook.receive_webhook(request)

    assert response.status_code == 200
    assert queue.waiting_count == 0


@pytest.mark.asyncio
async def test_missing_queue_returns_200() -> None:
    request = _build_request(body=BODY, headers=_signed(), job_queue=None)

    response = await webhook.receive_webhook(request)

    assert response.status_code == 200
