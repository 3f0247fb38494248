"""Adapter SMS/MMS via API REST do Twilio.

Inbound chega pelo webhook `/webhooks/sms` (camada api); este adapter cuida
apenas do envio outbound (notificações e respostas fora de turno).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from textarr.config.settings import TWILIO_MAX_MEDIA_URLS
from textarr.domain.identity import Platform, mask_user_id, parse_user_id
from textarr.infra.http import HttpClient, create_http_client
from textarr.messaging.adapter import MessagingAdapter
from textarr.observability.logging import get_logger

if TYPE_CHECKING:
    from textarr.config.settings import Settings
    from textarr.domain.models import MessageResponse

logger: logging.Logger = get_logger(__name__)


def filter_media_urls(media_urls: list[str] | None) -> list[str]:
    """Somente URLs http(s), no máximo o limite do Twilio."""
    if not media_urls:
        return []
    return [url for url in media_urls if url and url.startswith("http")][:TWILIO_MAX_MEDIA_URLS]


class SmsAdapter(MessagingAdapter):
    """Envio de SMS/MMS pelo endpoint Messages do Twilio."""

    platform = Platform.SMS

    def __init__(self, settings: Settings, http_client: HttpClient | None = None) -> None:
        self._settings = settings
        self._http = http_client
        self._send_media = settings.sms_send_media

    @property
    def is_enabled(self) -> bool:
        s = self._settings
        return bool(
            s.sms_enabled and s.twilio_account_sid and s.twilio_auth_token and s.twilio_phone_number
        )

    def _client(self) -> HttpClient:
        if self._http is None:
            self._http = create_http_client(
                self._settings,
                auth=(self._settings.twilio_account_sid or "", self._settings.twilio_auth_token or ""),
            )
        return self._http

    async def start(self) -> None:
        self._client()
        if self._send_media:
            logger.info("MMS poster images enabled")

    async def stop(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None

    def build_form(self, user_id: str, response: MessageResponse) -> dict[str, str | list[str]]:
        """Form-encoded do Twilio; `MediaUrl` repetido por imagem."""
        form: dict[str, str | list[str]] = {
            "From": self._settings.twilio_phone_number or "",
            "To": parse_user_id(user_id).raw_id,
            "Body": response.text,
        }
        media_urls = filter_media_urls(response.media_urls) if self._send_media else []
        if media_urls:
            form["MediaUrl"] = media_urls
        return form

    async def send_message(self, user_id: str, response: MessageResponse) -> None:
        """Envia a mensagem; falhas sobem como HttpError para o router."""
        http = self._client()
        form = self.build_form(user_id, response)
        media_count = len(form.get("MediaUrl", []))
        logger.info(
            "Sending MMS" if media_count else "Sending SMS",
            extra={
                "to": mask_user_id(user_id),
                "body_length": len(response.text),
                "media_count": media_count,
            },
        )
        result = await http.post(self._settings.twilio_messages_endpoint, data=form)
        logger.debug("sms_sent", extra={"status_code": result.status_code})
