"""Cliente HTTP autenticado para a API Sellsy v2.

Toda chamada passa por um único loop de retry parametrizado por RetryPolicy:
- injeta o bearer token do TokenManager;
- 401 força renovação do token na próxima tentativa (sem backoff);
- AuthError não-retentável (ex.: credenciais ausentes) sobe na hora;
- qualquer outro status não-2xx, timeout ou erro de transporte espera
  `policy.delay_for(attempt)` e tenta de novo;
- esgotadas as tentativas, levanta SellsyApiError com o último status/body.

Cada requisição tem timeout próprio: uma chamada travada não pode ocupar
um slot do worker indefinidamente.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from app.observability import record_latency
from utils.errors import AuthError, SellsyApiError

from .http_base import HttpClientConfig, RetryPolicy, truncate_body
from .token_manager import ClientCredentialsExchange, TokenManager

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from config.settings import SellsySettings

logger: logging.Logger = logging.getLogger(__name__)


class SellsyHttpClient:
    """Cliente resiliente para a API Sellsy.

    Args:
        token_manager: Fonte única de bearer tokens (compartilhada entre jobs)
        config: Base URL, timeout e política de retry
        http_client: httpx.AsyncClient opcional (testes usam MockTransport)
        sleep: Função de espera do backoff (injetável em testes)
        owns_http_client: Fecha o AsyncClient em aclose() (padrão: se criado aqui)
    """

    def __init__(
        self,
        token_manager: TokenManager,
        config: HttpClientConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        owns_http_client: bool | None = None,
    ) -> None:
        self._tokens = token_manager
        self._config = config
        self._owns_http = http_client is None if owns_http_client is None else owns_http_client
        self._http = http_client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            verify=config.verify_ssl,
        )
        self._sleep = sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._config.retry

    @property
    def token_manager(self) -> TokenManager:
        return self._tokens

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Executa chamada autenticada com retry e backoff.

        Args:
            method: Verbo HTTP
            path: Caminho relativo à base_url (ex: "/estimates/42")
            json: Corpo JSON opcional
            params: Query string opcional

        Returns:
            Body JSON parseado ({} para respostas vazias)

        Raises:
            SellsyApiError: Tentativas esgotadas ou resposta de sucesso ilegível
            AuthError: Credenciais inutilizáveis (não-retentável), sem backoff
        """
        url = self._url(path)
        policy = self._config.retry
        force_refresh = False
        rejected_token: str | None = None
        last_status: int | None = None
        last_body = ""

        for attempt in range(1, policy.max_attempts + 1):
            started_at = time.perf_counter()
            try:
                token = await self._tokens.get_token(
                    force_refresh=force_refresh,
                    rejected_token=rejected_token,
                )
                force_refresh = False
                response = await self._http.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers(token),
                    timeout=self._config.timeout_seconds,
                )
            except AuthError as exc:
                if not exc.is_retryable:
                    logger.error(
                        "sellsy_auth_not_retryable",
                        extra={"method": method, "path": path, "attempt": attempt},
                    )
                    raise
                last_status, last_body = exc.status_code, exc.body or str(exc)
                logger.warning(
                    "sellsy_auth_unavailable",
                    extra={"method": method, "path": path, "attempt": attempt},
                )
            except httpx.HTTPError as exc:
                last_status, last_body = None, type(exc).__name__
                logger.warning(
                    "sellsy_request_transport_error",
                    extra={
                        "method": method,
                        "path": path,
                        "attempt": attempt,
                        "error_type": type(exc).__name__,
                    },
                )
            else:
                record_latency(
                    "sellsy_api",
                    f"{method.upper()} {path}",
                    (time.perf_counter() - started_at) * 1000,
                )
                if response.status_code == 401:
                    force_refresh = True
                    rejected_token = token
                    last_status, last_body = 401, truncate_body(response.text)
                    logger.warning(
                        "sellsy_unauthorized_forcing_refresh",
                        extra={"method": method, "path": path, "attempt": attempt},
                    )
                    continue
                if response.is_success:
                    return self._parse(response, method, path)

                last_status, last_body = response.status_code, truncate_body(response.text)
                logger.warning(
                    "sellsy_request_failed",
                    extra={
                        "method": method,
                        "path": path,
                        "attempt": attempt,
                        "status_code": response.status_code,
                    },
                )

            if policy.has_attempts_left(attempt):
                delay = policy.delay_for(attempt)
                logger.info("sellsy_backoff", extra={"backoff_seconds": delay, "attempt": attempt})
                await self._sleep(delay)

        logger.error(
            "sellsy_request_exhausted",
            extra={
                "method": method,
                "path": path,
                "attempts": policy.max_attempts,
                "status_code": last_status,
            },
        )
        raise SellsyApiError(
            f"Sellsy API call failed after {policy.max_attempts} attempts: {method} {path}",
            status_code=last_status,
            body=last_body,
            attempts=policy.max_attempts,
        )

    async def get_estimate(self, estimate_id: int | str) -> dict[str, Any]:
        """Lê o devis completo (sempre fresco, sem cache entre jobs)."""
        return await self.request("GET", f"/estimates/{estimate_id}")

    async def create_invoice(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/invoices", json=payload)

    async def link_invoice_to_estimate(
        self,
        estimate_id: int | str,
        invoice_id: int | str,
    ) -> dict[str, Any]:
        """Grava a referência da fatura gerada no devis de origem."""
        return await self.request(
            "PATCH",
            f"/estimates/{estimate_id}",
            json={"custom_fields": {"generated_invoice": invoice_id}},
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self, token: str) -> dict[str, str]:
        return {
            **self._config.default_headers,
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
        }

    @staticmethod
    def _parse(response: httpx.Response, method: str, path: str) -> Any:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "sellsy_response_invalid_json",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise SellsyApiError(
                "Sellsy API returned invalid JSON",
                status_code=response.status_code,
                body=truncate_body(response.text),
                attempts=1,
                is_retryable=False,
            ) from exc


def create_sellsy_http_client(
    settings: SellsySettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> SellsyHttpClient:
    """Factory com TokenManager e RetryPolicy configurados a partir das settings.

    Args:
        settings: SellsySettings opcional. Se None, carrega do ambiente.
        http_client: AsyncClient compartilhado entre troca de token e chamadas.
    """
    # Import local para evitar dependência circular
    from config.settings import get_sellsy_settings

    sellsy = settings or get_sellsy_settings()
    shared_http = http_client or httpx.AsyncClient(timeout=sellsy.request_timeout_seconds)
    exchange = ClientCredentialsExchange(
        token_url=sellsy.token_url,
        client_id=sellsy.client_id,
        client_secret=sellsy.client_secret,
        http_client=shared_http,
        timeout_seconds=sellsy.request_timeout_seconds,
    )
    token_manager = TokenManager(
        exchange,
        safety_margin_seconds=sellsy.token_safety_margin_seconds,
    )
    config = HttpClientConfig(
        base_url=sellsy.api_base_url,
        timeout_seconds=sellsy.request_timeout_seconds,
        retry=RetryPolicy(
            max_attempts=sellsy.max_retries,
            base_delay_seconds=sellsy.backoff_base_seconds,
        ),
    )
    # AsyncClient criado aqui é encerrado junto com o SellsyHttpClient
    return SellsyHttpClient(
        token_manager,
        config,
        http_client=shared_http,
        owns_http_client=http_client is None,
    )
