"""Gerenciamento do access token OAuth2 (client-credentials) da Sellsy.

O TokenManager é o único estado mutável compartilhado entre jobs
concorrentes do worker. Leituras de token válido não disputam nada;
renovações são single-flight: no máximo uma troca em andamento por
instância, e todos os chamadores concorrentes aguardam o mesmo resultado.

Estados:
    NO_TOKEN   -> nenhum token em cache (início ou após falha)
    VALID      -> token válido além da margem de segurança
    EXPIRING   -> token dentro da margem; próxima leitura renova
    REFRESHING -> troca client-credentials em andamento
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from app.observability import record_token_refresh
from utils.errors import AuthError

from .http_base import truncate_body

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN_SECONDS = 60.0


class TokenState(Enum):
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRING = "expiring"
    REFRESHING = "refreshing"


@dataclass(frozen=True, slots=True)
class AccessToken:
    """Bearer token em cache. Nunca persistido."""

    value: str
    expires_at: float

    def is_valid(self, now: float, margin_seconds: float) -> bool:
        return now < self.expires_at - margin_seconds


class ClientCredentialsExchange:
    """Troca client_id/client_secret por bearer token no endpoint OAuth2."""

    def __init__(
        self,
        *,
        token_url: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._http = http_client
        self._timeout_seconds = timeout_seconds

    async def __call__(self) -> tuple[str, float]:
        if not self._client_id or not self._client_secret:
            raise AuthError("sellsy_credentials_missing", is_retryable=False)

        try:
            response = await self._http.post(
                self._token_url,
                json={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                timeout=self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise AuthError(f"token_exchange_transport_error: {type(exc).__name__}") from exc

        if not response.is_success:
            raise AuthError(
                "token_exchange_failed",
                status_code=response.status_code,
                body=truncate_body(response.text),
            )

        return _parse_token_response(response)


def _parse_token_response(response: httpx.Response) -> tuple[str, float]:
    try:
        data: Any = response.json()
    except ValueError as exc:
        raise AuthError("token_response_invalid_json", status_code=response.status_code) from exc

    if not isinstance(data, dict):
        raise AuthError("token_response_not_object", status_code=response.status_code)

    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise AuthError("token_response_missing_access_token", status_code=response.status_code)

    try:
        expires_in = float(data.get("expires_in"))
    except (TypeError, ValueError) as exc:
        raise AuthError("token_response_invalid_expires_in") from exc
    if expires_in <= 0:
        raise AuthError("token_response_invalid_expires_in")

    return access_token, expires_in


class TokenManager:
    """Cache de bearer token com renovação single-flight.

    Args:
        exchange: Callable async que executa a troca client-credentials
        clock: Relógio monotônico (injetável em testes)
        safety_margin_seconds: Token só é entregue se válido além desta margem
    """

    def __init__(
        self,
        exchange: Callable[[], Awaitable[tuple[str, float]]],
        *,
        clock: Callable[[], float] = time.monotonic,
        safety_margin_seconds: float = DEFAULT_SAFETY_MARGIN_SECONDS,
    ) -> None:
        self._exchange = exchange
        self._clock = clock
        self._margin = safety_margin_seconds
        self._token: AccessToken | None = None
        self._refresh_task: asyncio.Task[AccessToken] | None = None
        self.refresh_count = 0

    @property
    def state(self) -> TokenState:
        if self._refresh_task is not None and not self._refresh_task.done():
            return TokenState.REFRESHING
        if self._token is None:
            return TokenState.NO_TOKEN
        if not self._token.is_valid(self._clock(), self._margin):
            return TokenState.EXPIRING
        return TokenState.VALID

    async def get_token(
        self,
        force_refresh: bool = False,
        *,
        rejected_token: str | None = None,
    ) -> str:
        """Retorna um bearer token válido, renovando quando necessário.

        Args:
            force_refresh: Renova mesmo com token em cache (após 401)
            rejected_token: Token que recebeu 401. Se o cache já contém outro
                token, outro job já renovou e ele é reutilizado sem nova troca.

        Raises:
            AuthError: Se a troca de credenciais falhar
        """
        token = self._token
        if token is not None and token.is_valid(self._clock(), self._margin):
            already_rotated = rejected_token is not None and token.value != rejected_token
            if not force_refresh or already_rotated:
                return token.value

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._refresh())
            task.add_done_callback(self._on_refresh_done)
            self._refresh_task = task

        # shield: cancelar um job não cancela a renovação compartilhada
        refreshed = await asyncio.shield(task)
        return refreshed.value

    def invalidate(self) -> None:
        """Descarta o token em cache (próxima leitura renova)."""
        self._token = None

    async def _refresh(self) -> AccessToken:
        self._token = None
        self.refresh_count += 1
        started_at = time.perf_counter()
        logger.info("sellsy_token_refreshing", extra={"refresh_count": self.refresh_count})
        try:
            value, expires_in = await self._exchange()
        except AuthError:
            record_token_refresh(False, (time.perf_counter() - started_at) * 1000)
            raise
        except Exception as exc:
            record_token_refresh(False, (time.perf_counter() - started_at) * 1000)
            raise AuthError(f"token_exchange_error: {type(exc).__name__}") from exc

        token = AccessToken(value=value, expires_at=self._clock() + expires_in)
        self._token = token
        record_token_refresh(True, (time.perf_counter() - started_at) * 1000)
        logger.info("sellsy_token_refreshed", extra={"expires_in": expires_in})
        return token

    def _on_refresh_done(self, task: asyncio.Task[AccessToken]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Falha nunca é cacheada: volta para NO_TOKEN
            self._token = None
            logger.error(
                "sellsy_token_refresh_failed",
                extra={
                    "error_type": type(exc).__name__,
                    "status_code": getattr(exc, "status_code", None),
                },
            )
