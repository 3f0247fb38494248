"""Diretório de usuários persistido no snapshot JSON compartilhado.

Compartilha o `JsonSnapshotStore` com o ledger: contadores de cota e pedidos
passam pelo mesmo escritor.
"""

from __future__ import annotations

import logging
from typing import Any

from textarr.domain.identity import Platform, parse_user_id
from textarr.domain.models import User
from textarr.domain.protocols.user_directory import UserDirectory
from textarr.infra.snapshot import JsonSnapshotStore
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

SECTION = "users"


class JsonUserDirectory(UserDirectory):
    """Usuários lidos e gravados na seção `users` do snapshot."""

    def __init__(self, snapshot_store: JsonSnapshotStore) -> None:
        self._store = snapshot_store

    def _all(self) -> list[User]:
        return [User.model_validate(raw) for raw in self._store.read_section(SECTION)]

    def is_authorized(self, user_id: str) -> bool:
        return self.get_user(user_id) is not None

    def get_user(self, user_id: str) -> User | None:
        """Resolve o usuário pela identidade na plataforma do `user_id`."""
        platform, raw_id = parse_user_id(user_id)
        for user in self._all():
            if user.identities.get(platform) == raw_id:
                return user
        return None

    def get_user_by_id(self, internal_id: str) -> User | None:
        return next((u for u in self._all() if u.id == internal_id), None)

    def get_admins(self) -> list[User]:
        return [u for u in self._all() if u.is_admin]

    def list_users(self) -> list[User]:
        return self._all()

    def add_user(
        self,
        name: str,
        identities: dict[Platform, str],
        *,
        is_admin: bool = False,
        created_by: str | None = None,
    ) -> User:
        user = User(name=name, identities=identities, is_admin=is_admin, created_by=created_by)
        self._store.update(lambda doc: doc[SECTION].append(user.model_dump(mode="json")))
        logger.info("user_added", extra={"user": user.id, "platforms": sorted(identities)})
        return user

    def save_user(self, user: User) -> None:
        """Upsert pelo id interno."""
        payload = user.model_dump(mode="json")

        def apply(doc: dict[str, Any]) -> None:
            users = doc[SECTION]
            for index, raw in enumerate(users):
                if raw.get("id") == user.id:
                    users[index] = payload
                    return
            users.append(payload)

        self._store.update(apply)
        logger.debug("user_saved", extra={"user": user.id})

    def remove_user(self, internal_id: str) -> bool:
        def apply(doc: dict[str, Any]) -> bool:
            remaining = [raw for raw in doc[SECTION] if raw.get("id") != internal_id]
            removed = len(remaining) != len(doc[SECTION])
            doc[SECTION] = remaining
            return removed

        removed = self._store.update(apply)
        if removed:
            logger.info("user_removed", extra={"user": internal_id})
        return removed

    def set_admin(self, internal_id: str, is_admin: bool) -> bool:
        """Promove ou rebaixa; False se o usuário não existe."""
        user = self.get_user_by_id(internal_id)
        if user is None:
            return False
        user.is_admin = is_admin
        self.save_user(user)
        logger.info("user_admin_changed", extra={"user": internal_id, "is_admin": is_admin})
        return True
