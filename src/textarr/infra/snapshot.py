"""Snapshot JSON único (usuários + pedidos).

Um único escritor para o arquivo: ledger de pedidos e diretório de usuários
compartilham a mesma instância, e toda escrita passa pelo mesmo lock.
Gravação atômica: escreve em `<arquivo>.tmp` e faz `os.replace`.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")

SECTIONS: tuple[str, ...] = ("users", "media_requests")


class SnapshotError(Exception):
    """Arquivo de snapshot ilegível ou impossível de gravar."""


def _empty_document() -> dict[str, Any]:
    return {section: [] for section in SECTIONS}


class JsonSnapshotStore:
    """Documento JSON persistido em disco com read-modify-write serializado."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """Lê o documento; arquivo ausente = documento vazio.

        Raises:
            SnapshotError: JSON corrompido ou não-objeto.
        """
        with self._lock:
            if not self._path.exists():
                return _empty_document()
            try:
                with self._path.open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                raise SnapshotError(f"Falha ao ler snapshot {self._path}: {exc}") from exc
            if not isinstance(data, dict):
                raise SnapshotError(f"Snapshot {self._path} não é um objeto JSON")
            for section in SECTIONS:
                data.setdefault(section, [])
            return data

    def save(self, data: dict[str, Any]) -> None:
        """Grava o documento inteiro de forma atômica."""
        with self._lock:
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, default=str)
                os.replace(tmp_path, self._path)
            except OSError as exc:
                raise SnapshotError(f"Falha ao gravar snapshot {self._path}: {exc}") from exc
            logger.debug(
                "snapshot_saved",
                extra={
                    "path": str(self._path),
                    "sections": {k: len(data.get(k, [])) for k in SECTIONS},
                },
            )

    def read_section(self, section: str) -> list[dict[str, Any]]:
        return list(self.load().get(section, []))

    def write_section(self, section: str, items: list[dict[str, Any]]) -> None:
        """Substitui uma seção preservando as demais."""
        self.update(lambda doc: doc.__setitem__(section, items))

    def update(self, fn: Callable[[dict[str, Any]], T]) -> T:
        """Read-modify-write sob o lock; retorna o valor de `fn`."""
        with self._lock:
            data = self.load()
            result = fn(data)
            self.save(data)
            return result
