"""Contrato do diretório de usuários."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from textarr.domain.identity import Platform
    from textarr.domain.models import User


class UserDirectory(ABC):
    """Consulta de usuários por PlatformUserId e persistência de contadores.

    Os métodos de administração (listar, incluir, remover, promover) recebem
    o id interno do usuário, não o PlatformUserId.
    """

    @abstractmethod
    def is_authorized(self, user_id: str) -> bool: ...

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_admins(self) -> list[User]: ...

    @abstractmethod
    def save_user(self, user: User) -> None: ...

    @abstractmethod
    def list_users(self) -> list[User]: ...

    @abstractmethod
    def add_user(
        self,
        name: str,
        identities: dict[Platform, str],
        *,
        is_admin: bool = False,
        created_by: str | None = None,
    ) -> User: ...

    @abstractmethod
    def remove_user(self, internal_id: str) -> bool: ...

    @abstractmethod
    def set_admin(self, internal_id: str, is_admin: bool) -> bool: ...
