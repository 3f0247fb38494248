"""Tarefa periódica em asyncio (sweep de sessões, prune do ledger)."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from textarr.observability.logging import get_logger
from textarr.observability.middleware import (
    new_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

logger: logging.Logger = get_logger(__name__)


class PeriodicTask:
    """Executa `fn` (sync ou async) a cada `interval_seconds`.

    Erros de uma execução são logados e o loop continua.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[[], Any] | Callable[[], Awaitable[Any]],
        interval_seconds: float,
    ) -> None:
        self.name = name
        self._fn = fn
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Any:
        """Executa `fn` uma vez, com correlation_id próprio `<nome>:<uuid>`."""
        token = set_correlation_id(new_correlation_id(self.name))
        try:
            result = self._fn()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception:
            logger.exception("periodic_task_failed", extra={"task": self.name})
            raise
        finally:
            reset_correlation_id(token)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            # Falha já logada em run_once; o loop segue
            with contextlib.suppress(Exception):
                await self.run_once()

    def start(self) -> None:
        if self.running:
            logger.warning("periodic_task_already_running", extra={"task": self.name})
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.info(
            "periodic_task_started",
            extra={"task": self.name, "interval_seconds": self._interval},
        )

    async def stop(self) -> None:
        """Cancela o loop e aguarda o término."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("periodic_task_stopped", extra={"task": self.name})
