"""Contrato de adapter por plataforma de chat."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from textarr.domain.identity import Platform
    from textarr.domain.models import MessageResponse


class MessagingAdapter(ABC):
    """Transporte de uma plataforma: start/stop, envio outbound e flag de habilitado.

    Ramificação por plataforma fica somente nas implementações.
    """

    platform: Platform

    @property
    @abstractmethod
    def is_enabled(self) -> bool: ...

    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def send_message(self, user_id: str, response: MessageResponse) -> None: ...
