"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from textarr.api.routes import router
from textarr.application.container import ServiceContainer
from textarr.config.settings import Settings, get_settings
from textarr.observability.logging import configure_logging, get_logger
from textarr.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Sobe os serviços (se já inicializados) e encerra no shutdown."""
    container: ServiceContainer = app.state.container
    if container.is_initialized:
        await container.start()
    else:
        logger.warning("Services not initialized - webhooks will answer unavailable")
    yield
    await container.shutdown()


def create_app(
    settings: Settings | None = None, container: ServiceContainer | None = None
) -> FastAPI:
    """Cria a aplicação FastAPI.

    O container é montado fora daqui (parser e gerenciadores de biblioteca
    são implementações externas); sem ele, só o healthcheck responde OK.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)

    validation_errors: list[str] = []
    validation_errors.extend(settings.validate_session_config())
    validation_errors.extend(settings.validate_quota_config())
    validation_errors.extend(settings.validate_notification_config())
    validation_errors.extend(settings.validate_sms_config())

    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)

    app.state.settings = settings
    app.state.container = container or ServiceContainer()

    return app
