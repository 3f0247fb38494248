"""Cliente HTTP centralizado com retry, timeout e logging.

Usado pelos adapters de saída (Twilio REST) com:
- Retry com backoff exponencial (429 e 5xx)
- Timeouts configuráveis
- Logging estruturado sem credenciais na URL
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from textarr.observability.logging import get_logger

if TYPE_CHECKING:
    from textarr.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

# Account SID do Twilio e api keys de *arr em query string
_ACCOUNT_PATTERN = re.compile(r"/Accounts/[^/]+")
_API_KEY_PATTERN = re.compile(r"(apikey|api_key)=[^&]+", re.IGNORECASE)


def _sanitize_url(url: str) -> str:
    """Remove identificadores de conta e chaves da URL para logging seguro."""
    url = _ACCOUNT_PATTERN.sub("/Accounts/***", url)
    return _API_KEY_PATTERN.sub(r"\1=***", url)


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP.

    Valores padrão são seguros e conservadores.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_base_seconds: float = 2.0
    backoff_max_seconds: float = 30.0
    default_headers: dict[str, str] = field(default_factory=dict)
    auth: tuple[str, str] | None = None
    verify_ssl: bool = True


class HttpError(Exception):
    """Erro de requisição HTTP sem expor informações sensíveis."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable


def _is_retryable_status(status_code: int) -> bool:
    """Determina se status HTTP permite retry (429 ou 5xx)."""
    return status_code == 429 or 500 <= status_code < 600


def _calculate_backoff(attempt: int, base_seconds: float, max_seconds: float) -> float:
    return min((2**attempt) * base_seconds, max_seconds)


class HttpClient:
    """Cliente HTTP assíncrono com retry e logging.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post(url, data=form)
    """

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        self._config = config or HttpClientConfig()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
                auth=self._config.auth,
                verify=self._config.verify_ssl,
            )
        return self._client

    async def close(self) -> None:
        """Fecha o cliente e libera recursos."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Executa requisição com retry automático.

        Raises:
            HttpError: status não retentável ou tentativas esgotadas.
        """
        client = await self._get_client()
        cfg = self._config
        safe_url = _sanitize_url(url)
        last_error: HttpError | None = None

        for attempt in range(cfg.max_retries + 1):
            logger.debug(
                "Executando requisição HTTP",
                extra={"method": method, "url": safe_url, "attempt": attempt + 1},
            )
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                logger.warning(
                    "Timeout em requisição HTTP",
                    extra={"method": method, "url": safe_url, "attempt": attempt + 1},
                )
                last_error = HttpError("Timeout", is_retryable=True)
                last_error.__cause__ = exc
            except httpx.TransportError as exc:
                logger.warning(
                    "Erro de conexão HTTP",
                    extra={
                        "method": method,
                        "url": safe_url,
                        "attempt": attempt + 1,
                        "error_type": type(exc).__name__,
                    },
                )
                last_error = HttpError("Erro de conexão", is_retryable=True)
                last_error.__cause__ = exc
            else:
                if response.is_success:
                    return response
                if not _is_retryable_status(response.status_code):
                    logger.warning(
                        "Requisição HTTP falhou (não retryable)",
                        extra={
                            "method": method,
                            "url": safe_url,
                            "status_code": response.status_code,
                        },
                    )
                    raise HttpError(
                        f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                last_error = HttpError(
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                    is_retryable=True,
                )

            if attempt < cfg.max_retries:
                backoff = _calculate_backoff(
                    attempt, cfg.backoff_base_seconds, cfg.backoff_max_seconds
                )
                logger.info(
                    "Aguardando backoff antes de retry",
                    extra={"backoff_seconds": backoff, "next_attempt": attempt + 2},
                )
                await asyncio.sleep(backoff)

        logger.error(
            "Esgotou tentativas de retry",
            extra={"method": method, "url": safe_url, "total_attempts": cfg.max_retries + 1},
        )
        raise last_error or HttpError("Falha após todos os retries")

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._request("GET", url, **kwargs)

    async def post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        data: Any = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """POST com retry; `data` para form-encoded (Twilio), `json` para o resto."""
        return await self._request("POST", url, json=json, data=data, **kwargs)


def create_http_client(
    settings: Settings | None = None,
    auth: tuple[str, str] | None = None,
) -> HttpClient:
    """Factory para criar cliente HTTP configurado a partir de Settings."""
    if settings is None:
        from textarr.config.settings import get_settings

        settings = get_settings()

    config = HttpClientConfig(
        timeout_seconds=float(settings.http_timeout_seconds),
        max_retries=settings.http_max_retries,
        backoff_base_seconds=float(settings.http_backoff_base_seconds),
        default_headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
        auth=auth,
    )
    logger.info(
        "Cliente HTTP criado",
        extra={"timeout_seconds": config.timeout_seconds, "max_retries": config.max_retries},
    )
    return HttpClient(config)
