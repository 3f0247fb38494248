"""Correlation id por request HTTP ou por execução de tarefa em background."""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "x-correlation-id"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Retorna o correlation_id corrente (ou vazio)."""

    return _correlation_id.get()


def new_correlation_id(prefix: str | None = None) -> str:
    """Gera um id novo; `prefix` identifica a origem (ex.: nome da tarefa)."""

    value = str(uuid.uuid4())
    return f"{prefix}:{value}" if prefix else value


def set_correlation_id(value: str) -> Token[str]:
    """Define o correlation_id do contexto atual; devolve o token para reset."""

    return _correlation_id.set(value)


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga `x-correlation-id` recebido ou gera um novo por request."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        correlation_id = request.headers.get(CORRELATION_HEADER) or new_correlation_id()
        token = set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
