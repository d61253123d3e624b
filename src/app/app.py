"""Entrypoint HTTP do serviço (ingress de webhooks Sellsy).

Uso (produção):
    uvicorn app.app:app --host 0.0.0.0 --port 8080

Uso (desenvolvimento):
    uvicorn app.app:app --reload --host 0.0.0.0 --port 8080

Com QUEUE_BACKEND=redis o ingress só enfileira; o processamento roda em
`python -m app.worker`. Com QUEUE_BACKEND=memory (desenvolvimento) a fila
só existe neste processo, então o worker é iniciado aqui mesmo.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from api.routes import create_api_router
from app.bootstrap import initialize_app, validate_runtime_settings
from app.bootstrap.clients import close_async_redis_client
from app.bootstrap.dependencies import (
    create_job_queue,
    create_process_webhook_event_use_case,
    create_sellsy_client,
)
from app.coordinators.sellsy.event_job import build_sellsy_event_handler
from app.infra.queue import JobWorker, MemoryJobQueue
from config.logging import get_logger
from config.settings import get_queue_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# Inicializar logging ANTES de qualquer import que use logger
initialize_app()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gerencia ciclo de vida da aplicação.

    Startup:
    - Valida configurações
    - Cria a fila (app.state.job_queue)
    - Em modo memória, inicia o worker no próprio processo

    Shutdown:
    - Para o worker embutido aguardando jobs em andamento
    - Fecha conexões
    """
    logger.info("app_starting")
    validate_runtime_settings()
    app.state.job_queue = None
    app.state.embedded_worker = None
    sellsy_client = None

    try:
        app.state.job_queue = create_job_queue()
    except Exception as exc:
        # Webhooks continuam respondendo 200; cada perda vira métrica
        logger.error("job_queue_not_ready", extra={"error_type": type(exc).__name__})

    if isinstance(app.state.job_queue, MemoryJobQueue):
        settings = get_queue_settings()
        sellsy_client = create_sellsy_client()
        worker = JobWorker(
            app.state.job_queue,
            build_sellsy_event_handler(create_process_webhook_event_use_case(sellsy_client)),
            concurrency=settings.concurrency,
            job_timeout_seconds=settings.job_timeout_seconds,
            retry_delay_seconds=settings.retry_delay_seconds,
        )
        await worker.start()
        app.state.embedded_worker = worker

    yield

    logger.info("app_shutting_down")
    if app.state.embedded_worker is not None:
        await app.state.embedded_worker.stop(timeout_seconds=30.0)
    if sellsy_client is not None:
        await sellsy_client.aclose()
    await close_async_redis_client()


def create_app() -> FastAPI:
    """Cria e configura a aplicação FastAPI."""
    fastapi_app = FastAPI(
        title="Sellsy Invoicer",
        description="Gera faturas Sellsy a partir de devis aceitos",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    fastapi_app.include_router(create_api_router())

    logger.info("app_configured")

    return fastapi_app


# Aplicação ASGI exposta para uvicorn
app = create_app()


def main() -> None:
    """Entrypoint para execução direta (desenvolvimento)."""
    import uvicorn

    logger.info("app_dev_server_starting")
    uvicorn.run(
        "app.app:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
    )


if __name__ == "__main__":
    main()
