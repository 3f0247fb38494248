"""Identificador de usuário qualificado por plataforma (`platform:rawId`).

O raw id pode conter `:` (ex.: `sms:+1:555`), por isso o split é sempre
feito no PRIMEIRO separador.
"""

from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple

SEPARATOR = ":"


class Platform(StrEnum):
    """Plataformas de chat suportadas."""

    SMS = "sms"
    DISCORD = "discord"
    SLACK = "slack"
    TELEGRAM = "telegram"


class MalformedIdentifier(ValueError):
    """Identificador sem separador ou com plataforma desconhecida."""


class ParsedUserId(NamedTuple):
    platform: Platform
    raw_id: str


def parse_user_id(user_id: str) -> ParsedUserId:
    """Separa `platform:rawId` no primeiro `:`.

    Raises:
        MalformedIdentifier: se não há `:` ou a plataforma não é conhecida.
    """
    platform, sep, raw_id = user_id.partition(SEPARATOR)
    if not sep:
        raise MalformedIdentifier(f"Identificador sem plataforma: {mask_user_id(user_id)}")
    try:
        return ParsedUserId(Platform(platform), raw_id)
    except ValueError as exc:
        raise MalformedIdentifier(f"Plataforma desconhecida: {platform!r}") from exc


def build_user_id(platform: Platform | str, raw_id: str) -> str:
    """Monta `platform:rawId`. Única validação: plataforma pertence ao enum."""
    try:
        member = Platform(platform)
    except ValueError as exc:
        raise MalformedIdentifier(f"Plataforma desconhecida: {platform!r}") from exc
    return f"{member.value}{SEPARATOR}{raw_id}"


def platform_of(user_id: str) -> Platform:
    """Atalho para `parse_user_id(user_id).platform`."""
    return parse_user_id(user_id).platform


def mask_user_id(user_id: str) -> str:
    """Renderização segura para logs (plataforma + últimos 4 caracteres).

    Nunca lança: usado inclusive ao logar identificadores malformados.
    """
    platform, sep, raw_id = user_id.partition(SEPARATOR)
    if not sep:
        platform, raw_id = "?", user_id
    tail = raw_id[-4:] if len(raw_id) > 4 else ""
    return f"{platform}:***{tail}"
