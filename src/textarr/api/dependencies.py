"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from textarr.application.container import (
    ServiceContainer,
    ServiceNotInitializedError,
    Services,
)
from textarr.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_container(request: Request) -> ServiceContainer:
    """Retorna o container de serviços da aplicação."""

    return request.app.state.container


def get_services(request: Request) -> Services:
    """Retorna os serviços ativos; 503 enquanto não inicializados."""
    try:
        return get_container(request).current
    except ServiceNotInitializedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="services_not_initialized",
        ) from exc
