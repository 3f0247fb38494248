"""Montagem dos serviços e ciclo de vida (start/shutdown).

Todos os componentes são construídos primeiro; as referências cruzadas
(dependências do notificador, handler do router) são ligadas num único
ponto em `build_services`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from textarr.application.completion import DownloadCompletionHandler
from textarr.application.conversation import (
    ConversationConfig,
    ConversationHandler,
    LibraryProfile,
)
from textarr.application.messages import Messages
from textarr.application.notifications import (
    DownloadNotificationConfig,
    NotificationDispatcher,
)
from textarr.application.quota import QuotaAccountant, QuotaConfig, QuotaPeriod
from textarr.application.session import ConversationSessionStore
from textarr.config.settings import Settings
from textarr.domain.identity import Platform
from textarr.domain.protocols import IntentParser, LibraryManager
from textarr.infra.periodic import PeriodicTask
from textarr.infra.request_ledger import RequestLedger
from textarr.infra.snapshot import JsonSnapshotStore
from textarr.infra.user_directory import JsonUserDirectory
from textarr.messaging.adapter import MessagingAdapter
from textarr.messaging.router import MessageRouter
from textarr.messaging.sms import SmsAdapter
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class ServiceNotInitializedError(RuntimeError):
    """Serviços acessados antes de `initialize`."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class Services:
    settings: Settings
    snapshot: JsonSnapshotStore
    users: JsonUserDirectory
    ledger: RequestLedger
    sessions: ConversationSessionStore
    quota: QuotaAccountant
    notifications: NotificationDispatcher
    router: MessageRouter
    conversation: ConversationHandler
    completion: DownloadCompletionHandler
    prune_task: PeriodicTask


def _quota_config(settings: Settings) -> QuotaConfig:
    return QuotaConfig(
        enabled=settings.quota_enabled,
        period=QuotaPeriod(settings.quota_period.lower()),
        movie_limit=settings.quota_movie_limit,
        tv_show_limit=settings.quota_tv_show_limit,
        admin_exempt=settings.quota_admin_exempt,
    )


def _notification_config(settings: Settings) -> DownloadNotificationConfig:
    return DownloadNotificationConfig(
        enabled=settings.download_notifications_enabled,
        webhook_secret=settings.download_webhook_secret,
        message_template=settings.download_message_template,
        supported_platforms=[Platform(p) for p in settings.notification_platforms],
        admin_notifications_enabled=settings.admin_notifications_enabled,
    )


def _conversation_config(settings: Settings) -> ConversationConfig:
    return ConversationConfig(
        max_search_results=settings.session_max_search_results,
        serialize_user_turns=settings.serialize_user_turns,
        respond_unregistered={p for p in Platform if settings.respond_to_unregistered(p.value)},
        unregistered_message=settings.unregistered_message,
        movie_profile=LibraryProfile(
            quality_profile_id=settings.radarr_quality_profile_id,
            root_folder=settings.radarr_root_folder,
            anime_root_folder=settings.radarr_anime_root_folder,
            anime_quality_profile_id=settings.radarr_anime_quality_profile_id,
            anime_tag_ids=settings.radarr_anime_tag_ids,
        ),
        tv_profile=LibraryProfile(
            quality_profile_id=settings.sonarr_quality_profile_id,
            root_folder=settings.sonarr_root_folder,
            anime_root_folder=settings.sonarr_anime_root_folder,
            anime_quality_profile_id=settings.sonarr_anime_quality_profile_id,
            anime_tag_ids=settings.sonarr_anime_tag_ids,
        ),
    )


def build_services(
    settings: Settings,
    parser: IntentParser,
    movie_manager: LibraryManager,
    tv_manager: LibraryManager,
    adapters: Iterable[MessagingAdapter] | None = None,
    clock: Callable[[], datetime] = _utcnow,
    messages: Messages | None = None,
) -> Services:
    """Constrói todos os componentes e liga as referências cruzadas.

    Sem `adapters` explícitos, registra o adapter SMS (habilitado só se
    configurado).
    """
    snapshot = JsonSnapshotStore(settings.data_file)
    users = JsonUserDirectory(snapshot)
    ledger = RequestLedger(snapshot, clock=clock)
    sessions = ConversationSessionStore(
        timeout_seconds=settings.session_timeout_seconds,
        sweep_interval_seconds=settings.session_sweep_interval_seconds,
        clock=clock,
        history_max_entries=settings.session_history_max_entries,
    )
    quota = QuotaAccountant(_quota_config(settings), users, clock=clock)
    notifications = NotificationDispatcher(_notification_config(settings))
    router = MessageRouter()
    for adapter in adapters if adapters is not None else [SmsAdapter(settings)]:
        router.register_adapter(adapter)

    conversation = ConversationHandler(
        sessions=sessions,
        parser=parser,
        movie_manager=movie_manager,
        tv_manager=tv_manager,
        ledger=ledger,
        quota=quota,
        users=users,
        notifications=notifications,
        config=_conversation_config(settings),
        messages=messages,
    )
    completion = DownloadCompletionHandler(ledger, notifications)
    prune_task = PeriodicTask(
        "request_prune",
        lambda: ledger.prune(settings.request_retention_days),
        settings.request_prune_interval_seconds,
    )

    # Ligação das referências cruzadas
    notifications.set_dependencies(users, router)
    router.set_handler(conversation.handle)

    logger.info(
        "services_built",
        extra={
            "data_file": settings.data_file,
            "adapters": [str(a.platform) for a in router.enabled_adapters()],
            "quota_enabled": settings.quota_enabled,
        },
    )
    return Services(
        settings=settings,
        snapshot=snapshot,
        users=users,
        ledger=ledger,
        sessions=sessions,
        quota=quota,
        notifications=notifications,
        router=router,
        conversation=conversation,
        completion=completion,
        prune_task=prune_task,
    )


async def start_services(services: Services) -> None:
    """Sobe adapters, varredura de sessões e prune periódico do ledger."""
    await services.router.start()
    await services.sessions.start()
    services.prune_task.start()
    logger.info("services_started")


async def shutdown_services(services: Services) -> None:
    """Para timers, drena turnos em andamento (com timeout) e para adapters."""
    await services.prune_task.stop()
    await services.sessions.stop()
    cancelled = await services.router.drain(services.settings.shutdown_drain_timeout_seconds)
    await services.router.stop()
    logger.info("services_stopped", extra={"cancelled_turns": cancelled})


class ServiceContainer:
    """Guarda o conjunto de serviços ativo; troca protegida por lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._services: Services | None = None
        self._started = False

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._services is not None

    @property
    def current(self) -> Services:
        with self._lock:
            services = self._services
        if services is None:
            raise ServiceNotInitializedError("Serviços ainda não inicializados")
        return services

    def _swap(self, services: Services | None) -> Services | None:
        with self._lock:
            previous, self._services = self._services, services
        return previous

    async def initialize(self, services: Services) -> None:
        """Publica um novo conjunto de serviços e encerra o anterior.

        Se o container já estava rodando, o novo conjunto é iniciado logo
        após o anterior parar.
        """
        previous = self._swap(services)
        if previous is not None:
            logger.info("services_replaced", extra={"restart": self._started})
            await shutdown_services(previous)
        if self._started:
            await start_services(services)

    async def start(self) -> None:
        await start_services(self.current)
        self._started = True

    async def shutdown(self) -> None:
        self._started = False
        previous = self._swap(None)
        if previous is None:
            return
        await shutdown_services(previous)
