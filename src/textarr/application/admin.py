"""Comandos de administração por mensagem (`admin list`, `admin add`, ...).

Só admins executam; os demais recebem `admin_only`. Alvos chegam do parser
como plataforma + id e são resolvidos pelo diretório de usuários.
"""

from __future__ import annotations

import logging

from textarr.application.messages import EMOJI, Messages
from textarr.application.quota import QuotaAccountant
from textarr.domain.enums import Action, MediaType
from textarr.domain.identity import Platform, build_user_id, mask_user_id
from textarr.domain.models import MessageResponse
from textarr.domain.protocols import AdminCommand, ParsedIntent, UserDirectory
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_IDENTITY_LABELS: dict[Platform, str] = {
    Platform.SMS: "SMS",
    Platform.TELEGRAM: "TG",
    Platform.DISCORD: "DC",
    Platform.SLACK: "SL",
}

_USAGE: dict[Action, str] = {
    Action.ADMIN_ADD: (
        "Usage: admin add <platform:id> Name\nExamples:\n"
        "• admin add 5551234567 John\n• admin add telegram:123456789 Jane"
    ),
    Action.ADMIN_REMOVE: (
        "Usage: admin remove <platform:id>\nExamples:\n"
        "• admin remove 5551234567\n• admin remove telegram:123456789"
    ),
    Action.ADMIN_PROMOTE: (
        "Usage: admin promote <platform:id>\nExamples:\n"
        "• admin promote 5551234567\n• admin promote telegram:123456789"
    ),
    Action.ADMIN_DEMOTE: (
        "Usage: admin demote <platform:id>\nExamples:\n"
        "• admin demote 5551234567\n• admin demote telegram:123456789"
    ),
    Action.ADMIN_QUOTA: (
        "Usage: admin quota <platform:id> movies +5\nExamples:\n"
        "• admin quota 5551234567 movies +5\n• admin quota telegram:123456789 tv +3"
    ),
}


def _warning(text: str) -> MessageResponse:
    return MessageResponse(text=f"{EMOJI['warning']} {text}")


def _done(text: str) -> MessageResponse:
    return MessageResponse(text=f"{EMOJI['check_green']} {text}")


class AdminCommandHandler:
    """Executa comandos `admin_*` contra o diretório de usuários e a cota."""

    def __init__(
        self, users: UserDirectory, quota: QuotaAccountant, messages: Messages | None = None
    ) -> None:
        self._users = users
        self._quota = quota
        self._messages = messages or Messages()

    def is_admin(self, user_id: str) -> bool:
        user = self._users.get_user(user_id)
        return user is not None and user.is_admin

    def help_text(self, user_id: str) -> str:
        """Ajuda geral, com a seção de admin anexada para admins."""
        text = self._messages.help_text
        if self.is_admin(user_id):
            text += f"\n\n{EMOJI['crown']} {self._messages.admin_help_text}"
        return text

    def handle(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        action = intent.action
        if not self.is_admin(user_id):
            logger.info(
                "admin_command_denied",
                extra={"user": mask_user_id(user_id), "action": str(action)},
            )
            return _warning(self._messages.admin_only)

        command = intent.admin_command or AdminCommand()
        logger.info(
            "admin_command", extra={"user": mask_user_id(user_id), "action": str(action)}
        )
        if action == Action.ADMIN_HELP:
            return MessageResponse(text=f"{EMOJI['crown']} {self._messages.admin_help_text}")
        if action == Action.ADMIN_LIST:
            return self._list()
        if command.target_platform is None or not command.target_id:
            return _warning(_USAGE[action])

        target_id = build_user_id(command.target_platform, command.target_id)
        if action == Action.ADMIN_ADD:
            return self._add(user_id, target_id, command)
        if action == Action.ADMIN_REMOVE:
            return self._remove(user_id, target_id, command)
        if action == Action.ADMIN_PROMOTE:
            return self._promote(target_id, command)
        if action == Action.ADMIN_DEMOTE:
            return self._demote(user_id, target_id, command)
        return self._grant_quota(target_id, command)

    @staticmethod
    def _target_label(command: AdminCommand) -> str:
        return f"{command.target_platform}:{command.target_id}"

    def _not_found(self, command: AdminCommand) -> MessageResponse:
        return _warning(f"User {self._target_label(command)} not found.")

    def _list(self) -> MessageResponse:
        users = self._users.list_users()
        if not users:
            return MessageResponse(text=self._messages.no_users)

        lines = ["Users:\n"]
        for user in users:
            badge = f" {EMOJI['crown']}" if user.is_admin else ""
            counts = user.request_count
            requests = f"({counts.movies}{EMOJI['movie']} {counts.tv_shows}{EMOJI['tv_show']})"
            identities = " ".join(
                f"{_IDENTITY_LABELS[platform]}:{raw_id}"
                for platform, raw_id in sorted(user.identities.items())
            )
            lines.append(f"• {user.name}{badge}\n  {identities or user.id} {requests}")
        return MessageResponse(text="\n".join(lines))

    def _add(self, user_id: str, target_id: str, command: AdminCommand) -> MessageResponse:
        if not command.user_name:
            return _warning(_USAGE[Action.ADMIN_ADD])
        if self._users.get_user(target_id) is not None:
            return _warning(f"User with {self._target_label(command)} already exists.")

        self._users.add_user(
            command.user_name,
            {command.target_platform: command.target_id},
            created_by=user_id,
        )
        return _done(
            f"Added {command.user_name} ({self._target_label(command)}) to authorized users."
        )

    def _remove(self, user_id: str, target_id: str, command: AdminCommand) -> MessageResponse:
        user = self._users.get_user(target_id)
        if user is None:
            return self._not_found(command)
        if target_id == user_id:
            return _warning("You can't remove yourself.")

        self._users.remove_user(user.id)
        return _done(f"Removed {user.name} from authorized users.")

    def _promote(self, target_id: str, command: AdminCommand) -> MessageResponse:
        user = self._users.get_user(target_id)
        if user is None:
            return self._not_found(command)
        if user.is_admin:
            return MessageResponse(text=f"{user.name} is already an admin.")

        self._users.set_admin(user.id, True)
        return _done(f"{user.name} is now an admin.")

    def _demote(self, user_id: str, target_id: str, command: AdminCommand) -> MessageResponse:
        if target_id == user_id:
            return _warning("You can't demote yourself.")
        user = self._users.get_user(target_id)
        if user is None:
            return self._not_found(command)
        if not user.is_admin:
            return MessageResponse(text=f"{user.name} is not an admin.")

        self._users.set_admin(user.id, False)
        return _done(f"{user.name} is no longer an admin.")

    def _grant_quota(self, target_id: str, command: AdminCommand) -> MessageResponse:
        media_type = command.media_type
        amount = command.quota_amount
        if media_type not in (MediaType.MOVIE, MediaType.TV_SHOW) or amount is None:
            return _warning(_USAGE[Action.ADMIN_QUOTA])
        user = self._users.get_user(target_id)
        if user is None:
            return self._not_found(command)

        self._quota.grant(user, media_type, amount)
        label = "movie" if media_type == MediaType.MOVIE else "TV show"
        return _done(f"Added {amount} {label} requests to {user.name}'s quota.")
