"""Rotas HTTP: healthcheck, webhook SMS (Twilio) e webhooks Radarr/Sonarr."""

from __future__ import annotations

import json
from typing import Any
from xml.sax.saxutils import escape

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status

from textarr.api.dependencies import get_container, get_services, get_settings
from textarr.application.completion import CompletionOutcome
from textarr.application.container import ServiceContainer, Services
from textarr.application.messages import Messages
from textarr.config.settings import Settings
from textarr.domain.enums import ExternalSystem
from textarr.domain.identity import Platform, build_user_id, mask_user_id
from textarr.domain.models import MessageResponse
from textarr.messaging.sms import filter_media_urls
from textarr.observability.logging import get_logger
from textarr.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()

# Chave do objeto de mídia no payload de cada gerenciador
_PAYLOAD_KEYS: dict[ExternalSystem, str] = {
    ExternalSystem.RADARR: "movie",
    ExternalSystem.SONARR: "series",
}


def render_twiml(response: MessageResponse, include_media: bool = False) -> str:
    """Monta o TwiML de resposta; texto vazio vira `<Response/>`."""
    if not response.text:
        return "<Response/>"
    media = ""
    if include_media:
        media = "".join(
            f"<Media>{escape(url)}</Media>" for url in filter_media_urls(response.media_urls)
        )
    return f"<Response><Message><Body>{escape(response.text)}</Body>{media}</Message></Response>"


def _twiml_response(content: str) -> Response:
    return Response(content=content, media_type="text/xml")


def extract_webhook_secret(request: Request) -> str | None:
    """Secret do header `x-webhook-secret` ou `Authorization: Bearer`."""
    secret = request.headers.get("x-webhook-secret")
    if secret:
        return secret
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.removeprefix("Bearer ").strip()
    return None


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


@router.post("/webhooks/sms")
async def sms_webhook(
    sender: str = Form(..., alias="From"),
    body: str = Form("", alias="Body"),
    settings: Settings = Depends(get_settings),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    """Recebe SMS do Twilio e responde o turno de conversa em TwiML."""
    if not container.is_initialized:
        logger.warning("Services not initialized - SMS webhook unavailable")
        return _twiml_response(render_twiml(MessageResponse(text=Messages().not_configured)))

    user_id = build_user_id(Platform.SMS, sender.strip())
    logger.info(
        "sms_received",
        extra={
            "user": mask_user_id(user_id),
            "body_length": len(body),
            "correlation_id": get_correlation_id(),
        },
    )
    response = await container.current.router.dispatch(user_id, body)
    return _twiml_response(render_twiml(response, include_media=settings.sms_send_media))


async def _handle_library_webhook(
    system: ExternalSystem, request: Request, services: Services
) -> dict[str, Any]:
    if not services.notifications.verify_webhook_secret(extract_webhook_secret(request)):
        logger.warning("webhook_secret_mismatch", extra={"system": str(system)})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_secret")

    raw_body = await request.body()
    try:
        payload = json.loads(raw_body or b"{}")
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_payload")

    media = payload.get(_PAYLOAD_KEYS[system]) or {}
    if not isinstance(media, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_payload")
    outcome: CompletionOutcome = await services.completion.handle_library_event(
        system,
        str(payload.get("eventType", "")),
        external_id=media.get("id"),
        tmdb_id=media.get("tmdbId"),
    )
    return {"ok": True, "status": str(outcome), "correlation_id": get_correlation_id()}


@router.post("/webhooks/radarr")
async def radarr_webhook(
    request: Request, services: Services = Depends(get_services)
) -> dict[str, Any]:
    """Eventos do Radarr (Test, Grab, Download)."""
    return await _handle_library_webhook(ExternalSystem.RADARR, request, services)


@router.post("/webhooks/sonarr")
async def sonarr_webhook(
    request: Request, services: Services = Depends(get_services)
) -> dict[str, Any]:
    """Eventos do Sonarr (Test, Grab, Download)."""
    return await _handle_library_webhook(ExternalSystem.SONARR, request, services)
