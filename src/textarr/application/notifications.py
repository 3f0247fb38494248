"""Notificações outbound: download concluído e novo pedido para admins.

Dependências (diretório de usuários e router) são ligadas pelo container
depois que todos os componentes existem; antes disso toda notificação é
no-op.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from textarr.application.messages import format_template
from textarr.domain.enums import MediaType
from textarr.domain.identity import Platform, build_user_id, mask_user_id, parse_user_id
from textarr.domain.models import MediaRequest, MessageResponse, User
from textarr.observability.logging import get_logger

if TYPE_CHECKING:
    from textarr.domain.protocols.user_directory import UserDirectory
    from textarr.messaging.router import MessageRouter

logger: logging.Logger = get_logger(__name__)

DEFAULT_TEMPLATE = "{emoji} {title}{year} is ready to watch!"
DEFAULT_ADMIN_TEMPLATE = "New Request\n{userName} added:\n{title}"


class DownloadNotificationConfig(BaseModel):
    enabled: bool = True
    webhook_secret: str | None = None
    message_template: str = DEFAULT_TEMPLATE
    supported_platforms: list[Platform] = Field(default_factory=lambda: [Platform.SMS])
    admin_notifications_enabled: bool = True
    admin_message_template: str = DEFAULT_ADMIN_TEMPLATE


class NotificationDispatcher:
    """Envia notificações pelo router na plataforma embutida no user id."""

    def __init__(self, config: DownloadNotificationConfig) -> None:
        self._config = config
        self._users: UserDirectory | None = None
        self._sender: MessageRouter | None = None

    def set_dependencies(self, user_directory: UserDirectory, sender: MessageRouter) -> None:
        self._users = user_directory
        self._sender = sender
        logger.debug("notification_dependencies_set")

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled and self._users is not None and self._sender is not None

    def format_message(self, request: MediaRequest) -> str:
        is_movie = request.media_type == MediaType.MOVIE
        return format_template(
            self._config.message_template,
            emoji="🎬" if is_movie else "📺",
            title=request.title,
            year=f" ({request.year})" if request.year else "",
            mediaType="Movie" if is_movie else "TV Show",
        )

    async def _send(self, sender: MessageRouter, user_id: str, text: str) -> bool:
        """Envio best-effort; plataforma sem suporte outbound é no-op com warning."""
        platform = parse_user_id(user_id).platform
        if platform not in self._config.supported_platforms:
            logger.warning(
                "Notification platform not yet supported", extra={"platform": str(platform)}
            )
            return False
        return await sender.deliver(user_id, MessageResponse(text=text))

    async def notify_complete(self, request: MediaRequest) -> bool:
        """Avisa o solicitante que o download terminou. Retorna True se enviado."""
        users, sender = self._users, self._sender
        if not self._config.enabled or users is None or sender is None:
            logger.debug("Notifications disabled, skipping", extra={"request_id": request.id})
            return False

        user = users.get_user(request.requested_by)
        if user is None:
            logger.warning(
                "User not found for notification",
                extra={"requested_by": mask_user_id(request.requested_by)},
            )
            return False
        if not user.notification_preferences.enabled:
            logger.debug("User has notifications disabled", extra={"user": user.id})
            return False

        sent = await self._send(sender, request.requested_by, self.format_message(request))
        if sent:
            logger.info(
                "Download notification sent",
                extra={"user": user.id, "request_id": request.id},
            )
        return sent

    async def notify_admins(self, requester: User, requester_id: str, title: str) -> int:
        """Avisa admins sobre um novo pedido; retorna quantos envios foram aceitos.

        O próprio solicitante não é notificado.
        """
        users, sender = self._users, self._sender
        if not (self._config.admin_notifications_enabled and self._config.enabled):
            return 0
        if users is None or sender is None:
            return 0

        text = format_template(
            self._config.admin_message_template, userName=requester.name, title=title
        )
        sent = 0
        for admin in users.get_admins():
            if admin.id == requester.id:
                continue
            for platform, raw_id in admin.identities.items():
                admin_user_id = build_user_id(platform, raw_id)
                if admin_user_id == requester_id:
                    continue
                if await self._send(sender, admin_user_id, text):
                    sent += 1
        logger.info(
            "admin_notifications_sent",
            extra={"requested_by": mask_user_id(requester_id), "sent": sent},
        )
        return sent

    def verify_webhook_secret(self, provided: str | None) -> bool:
        """Compara o secret em tempo constante; sem secret configurado aceita tudo."""
        expected = self._config.webhook_secret
        if not expected:
            return True
        return hmac.compare_digest((provided or "").encode(), expected.encode())
