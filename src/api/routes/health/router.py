"""Endpoints de health check.

- GET /health: liveness, sem tocar dependências
- GET /ready: a fila precisa responder; sem fila o ingress perderia eventos
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings import get_base_settings

router = APIRouter()

READINESS_TIMEOUT_SECONDS = 2.0


class HealthResponse(BaseModel):
    status: str
    service: str
    environment: str
    timestamp: str


class QueueCheck(BaseModel):
    """Resultado do ping da fila."""

    status: str
    latency_ms: float | None = None
    error: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    settings = get_base_settings()
    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        environment=settings.environment,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe: 503 enquanto a fila não responder ao ping."""
    state = request.app.state
    queue_check = await ping_queue(getattr(state, "job_queue", None))
    checks: dict[str, Any] = {"queue": queue_check.model_dump()}

    worker = getattr(state, "embedded_worker", None)
    if worker is not None:
        checks["embedded_worker"] = {"running": worker.running}

    ready = queue_check.status == "ok"
    return JSONResponse(
        content={
            "status": "ready" if ready else "not_ready",
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(),
        },
        status_code=200 if ready else 503,
    )


async def ping_queue(queue: Any | None) -> QueueCheck:
    if queue is None:
        return QueueCheck(status="failed", error="not_configured")
    started_at = time.perf_counter()
    try:
        await asyncio.wait_for(queue.ping(), timeout=READINESS_TIMEOUT_SECONDS)
    except TimeoutError:
        return QueueCheck(status="failed", error="timeout")
    except Exception as exc:
        return QueueCheck(status="failed", error=type(exc).__name__)
    return QueueCheck(status="ok", latency_ms=round((time.perf_counter() - started_at) * 1000, 2))
