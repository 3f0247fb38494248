"""Router de mensagens: um adapter por plataforma, um handler de conversa.

Desacopla o handler de conversa dos transportes. Envio outbound é
best-effort: adapter ausente/desabilitado ou falha de envio é logado e
descartado, nunca propagado para quem chamou.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from textarr.domain.identity import Platform, mask_user_id, parse_user_id
from textarr.domain.models import MessageResponse
from textarr.messaging.adapter import MessagingAdapter
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

SERVICE_UNAVAILABLE = "Service not available"

MessageHandler = Callable[[str, str], Awaitable[MessageResponse]]


class MessageRouter:
    """Registro de adapters + despacho inbound/outbound."""

    def __init__(self) -> None:
        self._adapters: dict[Platform, MessagingAdapter] = {}
        self._handler: MessageHandler | None = None
        self._in_flight: set[asyncio.Task[MessageResponse]] = set()
        self._draining = False

    # ------------------------------------------------------------------
    # Registro
    # ------------------------------------------------------------------

    def register_adapter(self, adapter: MessagingAdapter) -> None:
        """Associa o adapter à sua plataforma (último registro vence)."""
        platform = Platform(adapter.platform)
        if platform in self._adapters:
            logger.warning("adapter_replaced", extra={"platform": str(platform)})
        self._adapters[platform] = adapter
        logger.info("adapter_registered", extra={"platform": str(platform)})

    def get_adapter(self, platform: Platform | str) -> MessagingAdapter | None:
        return self._adapters.get(Platform(platform))

    def enabled_adapters(self) -> list[MessagingAdapter]:
        return [a for a in self._adapters.values() if a.is_enabled]

    def set_handler(self, handler: MessageHandler) -> None:
        self._handler = handler

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    async def _run_adapter_op(self, adapter: MessagingAdapter, op: str) -> None:
        platform = str(adapter.platform)
        try:
            if op == "start":
                await adapter.start()
            else:
                await adapter.stop()
            logger.info("adapter_lifecycle", extra={"platform": platform, "op": op})
        except Exception:
            # Degradação parcial aceita: um adapter não derruba os outros
            logger.exception("adapter_lifecycle_failed", extra={"platform": platform, "op": op})

    async def start(self) -> None:
        """Inicia adapters habilitados concorrentemente e aguarda todos."""
        adapters = self.enabled_adapters()
        self._draining = False
        logger.info("Starting messaging adapters", extra={"count": len(adapters)})
        await asyncio.gather(*(self._run_adapter_op(a, "start") for a in adapters))

    async def stop(self) -> None:
        """Para todos os adapters registrados concorrentemente."""
        logger.info("Stopping messaging adapters", extra={"count": len(self._adapters)})
        await asyncio.gather(
            *(self._run_adapter_op(a, "stop") for a in self._adapters.values())
        )

    # ------------------------------------------------------------------
    # Despacho
    # ------------------------------------------------------------------

    async def dispatch(self, user_id: str, text: str) -> MessageResponse:
        """Entrega o texto ao handler de conversa e retorna a resposta.

        Sem handler (ou durante o drain de shutdown) retorna resposta
        estática de indisponibilidade em vez de falhar.
        """
        handler = self._handler
        if handler is None or self._draining:
            logger.error(
                "No message handler available",
                extra={"user": mask_user_id(user_id), "draining": self._draining},
            )
            return MessageResponse(text=SERVICE_UNAVAILABLE)

        task = asyncio.ensure_future(handler(user_id, text))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        try:
            return await task
        except asyncio.CancelledError:
            if self._draining and task.cancelled():
                logger.warning("turn_cancelled_on_shutdown", extra={"user": mask_user_id(user_id)})
                return MessageResponse(text=SERVICE_UNAVAILABLE)
            raise

    async def deliver(self, user_id: str, response: MessageResponse) -> bool:
        """Envio outbound best-effort. Retorna True se o adapter aceitou.

        Raises:
            MalformedIdentifier: `user_id` sem plataforma válida.
        """
        platform = parse_user_id(user_id).platform
        adapter = self._adapters.get(platform)
        masked = mask_user_id(user_id)

        if adapter is None:
            logger.error("No adapter for platform", extra={"user": masked, "platform": str(platform)})
            return False
        if not adapter.is_enabled:
            logger.warning("Adapter is disabled", extra={"user": masked, "platform": str(platform)})
            return False

        try:
            await adapter.send_message(user_id, response)
        except Exception:
            logger.exception("deliver_failed", extra={"user": masked, "platform": str(platform)})
            return False
        return True

    async def drain(self, timeout: float) -> int:
        """Para de aceitar turnos e aguarda os em andamento até `timeout`.

        Turnos que não terminam no prazo são cancelados. Retorna quantos
        foram cancelados.
        """
        self._draining = True
        pending = set(self._in_flight)
        if not pending:
            return 0

        logger.info("draining_turns", extra={"in_flight": len(pending), "timeout_seconds": timeout})
        _done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("turns_cancelled", extra={"cancelled": len(still_running)})
        return len(still_running)
