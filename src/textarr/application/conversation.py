"""Handler de conversa: ponto de entrada único `handle(user_id, text)`.

Cada turno: autorização -> sessão -> parser -> roteamento pela ação ->
mutação da sessão -> resposta. Falhas externas (parser, gerenciadores)
viram a mensagem genérica de erro; a sessão fica como estava.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter

from pydantic import BaseModel, Field

from textarr.application.admin import AdminCommandHandler
from textarr.application.messages import (
    EMOJI,
    Messages,
    format_template,
    media_emoji,
    media_type_label,
)
from textarr.application.notifications import NotificationDispatcher
from textarr.application.quota import QuotaAccountant
from textarr.application.session import ConversationSession, ConversationSessionStore
from textarr.domain.enums import (
    SEASON_OPTIONS,
    Action,
    AnimeStatus,
    ConversationState,
    LibraryStatus,
    MediaType,
    MonitorType,
)
from textarr.domain.identity import Platform, mask_user_id, parse_user_id
from textarr.domain.models import MediaSearchResult, MessageResponse
from textarr.domain.protocols import (
    AddOptions,
    IntentParser,
    LibraryManager,
    LibraryManagerError,
    ParseContext,
    ParsedIntent,
    UserDirectory,
)
from textarr.infra.request_ledger import RequestLedger
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

OVERVIEW_MAX_CHARS = 100
STATUS_MAX_ITEMS = 5


class LibraryProfile(BaseModel):
    """Opções de add de um gerenciador, com variante anime."""

    quality_profile_id: int = 1
    root_folder: str
    anime_root_folder: str | None = None
    anime_quality_profile_id: int | None = None
    anime_tag_ids: list[int] = Field(default_factory=list)


class ConversationConfig(BaseModel):
    max_search_results: int = 5
    serialize_user_turns: bool = True
    respond_unregistered: set[Platform] = Field(default_factory=set)
    unregistered_message: str = "You're not registered.\n\nYour {platform} ID: {id}"
    movie_profile: LibraryProfile = Field(
        default_factory=lambda: LibraryProfile(root_folder="/movies")
    )
    tv_profile: LibraryProfile = Field(default_factory=lambda: LibraryProfile(root_folder="/tv"))


def _needs_season_choice(media: MediaSearchResult) -> bool:
    return media.media_type == MediaType.TV_SHOW and (media.season_count or 0) > 1


class ConversationHandler:
    """Máquina de estados do diálogo busca -> seleção -> confirmação -> add."""

    def __init__(
        self,
        *,
        sessions: ConversationSessionStore,
        parser: IntentParser,
        movie_manager: LibraryManager,
        tv_manager: LibraryManager,
        ledger: RequestLedger,
        quota: QuotaAccountant,
        users: UserDirectory,
        notifications: NotificationDispatcher,
        config: ConversationConfig | None = None,
        messages: Messages | None = None,
    ) -> None:
        self._sessions = sessions
        self._parser = parser
        self._managers: dict[MediaType, LibraryManager] = {
            MediaType.MOVIE: movie_manager,
            MediaType.TV_SHOW: tv_manager,
        }
        self._ledger = ledger
        self._quota = quota
        self._users = users
        self._notifications = notifications
        self._config = config or ConversationConfig()
        self._messages = messages or Messages()
        self._admin = AdminCommandHandler(users, quota, self._messages)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Entrada
    # ------------------------------------------------------------------

    async def handle(self, user_id: str, text: str) -> MessageResponse:
        """Processa um turno.

        Com `serialize_user_turns`, turnos do mesmo usuário rodam em sequência
        sob um lock por usuário, descartado quando ninguém mais o aguarda.
        """
        if not self._config.serialize_user_turns:
            return await self._handle_turn(user_id, text)

        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._lock_holders[user_id] += 1
        try:
            async with lock:
                return await self._handle_turn(user_id, text)
        finally:
            self._lock_holders[user_id] -= 1
            if self._lock_holders[user_id] <= 0:
                del self._lock_holders[user_id]
                self._locks.pop(user_id, None)

    def _unregistered_response(self, platform: Platform, raw_id: str) -> MessageResponse:
        # SMS fica sempre em silêncio
        if platform == Platform.SMS or platform not in self._config.respond_unregistered:
            return MessageResponse(text="")
        return MessageResponse(
            text=format_template(
                self._config.unregistered_message,
                platform=platform.value.capitalize(),
                id=raw_id,
            )
        )

    async def _handle_turn(self, user_id: str, text: str) -> MessageResponse:
        platform, raw_id = parse_user_id(user_id)
        masked = mask_user_id(user_id)

        if not self._users.is_authorized(user_id):
            logger.info("unregistered_user", extra={"user": masked, "platform": str(platform)})
            return self._unregistered_response(platform, raw_id)

        session = self._sessions.get(user_id)
        try:
            intent = await self._parser.parse(
                text,
                ParseContext(
                    state=session.state,
                    pending_results=session.pending_results,
                    selected_media=session.selected_media,
                    recent_messages=session.recent_messages,
                ),
            )
            self._sessions.add_message(user_id, "user", text)
            logger.info(
                "Parsed request - routing action",
                extra={
                    "user": masked,
                    "action": str(intent.action),
                    "session_state": str(session.state),
                    "confidence": intent.confidence,
                },
            )
            response = await self._route(user_id, session, intent)
        except Exception:
            logger.exception(
                "Error handling message",
                extra={"user": masked, "session_state": str(session.state)},
            )
            return MessageResponse(text=f"{EMOJI['warning']} {self._messages.generic_error}")

        if response.text:
            self._sessions.add_message(user_id, "assistant", response.text)
        return response

    async def _route(
        self, user_id: str, session: ConversationSession, intent: ParsedIntent
    ) -> MessageResponse:
        msgs = self._messages
        action = intent.action
        state = session.state
        number = intent.selection_number

        static_replies = {
            Action.DECLINE: msgs.goodbye,
            Action.CONTINUE: msgs.add_prompt,
        }
        if action in static_replies:
            return MessageResponse(text=static_replies[action])
        if action == Action.HELP:
            return MessageResponse(text=self._admin.help_text(user_id))
        if action.is_admin:
            return self._admin.handle(user_id, intent)

        if action in (Action.ADD, Action.SEARCH):
            return await self._search(user_id, intent)
        if action == Action.STATUS:
            return self._status(user_id)
        if action == Action.CANCEL:
            self._sessions.reset(user_id)
            return MessageResponse(text=f"{EMOJI['cancel']} {msgs.cancelled}")
        if action == Action.RESTART:
            self._sessions.reset(user_id)
            return MessageResponse(text=msgs.restart)
        if action == Action.BACK:
            return self._back(user_id, session)
        if action == Action.SHOW_CONTEXT:
            return self._show_context(session)

        if action == Action.CONFIRM:
            if state == ConversationState.AWAITING_CONFIRMATION:
                return await self._confirm(user_id, session)
            # YES na escolha de temporadas = todas
            if state == ConversationState.AWAITING_SEASON_SELECTION:
                return await self._season_selection(user_id, session, 1)
            return MessageResponse(text=msgs.nothing_to_confirm)

        if action in (Action.SELECT, Action.SEASON_SELECT):
            if number is not None and state == ConversationState.AWAITING_SEASON_SELECTION:
                return await self._season_selection(user_id, session, number)
            if (
                action == Action.SELECT
                and number is not None
                and session.pending_results
                and state
                in (ConversationState.AWAITING_SELECTION, ConversationState.AWAITING_CONFIRMATION)
            ):
                return self._selection(user_id, session, number)
            return MessageResponse(text=msgs.nothing_to_select)

        if action == Action.CHANGE_SELECTION:
            if number is not None and session.pending_results:
                return self._selection(user_id, session, number)
            return MessageResponse(text=msgs.no_previous_results)

        if action in (Action.ANIME_CONFIRM, Action.REGULAR_CONFIRM):
            if state == ConversationState.AWAITING_ANIME_CONFIRMATION:
                is_anime = action == Action.ANIME_CONFIRM
                return await self._anime_confirmation(user_id, session, is_anime)
            return MessageResponse(text=msgs.nothing_to_confirm)

        return MessageResponse(text=msgs.unknown_command)

    # ------------------------------------------------------------------
    # Busca e seleção
    # ------------------------------------------------------------------

    async def _search_managers(self, term: str, media_type: MediaType) -> list[MediaSearchResult]:
        """Busca concorrente; gerenciador com falha é logado e não contribui.

        Raises:
            LibraryManagerError: todos os gerenciadores consultados falharam.
        """
        if media_type in self._managers:
            managers = [self._managers[media_type]]
        else:
            managers = list(self._managers.values())
        outcomes = await asyncio.gather(
            *(m.search(term) for m in managers), return_exceptions=True
        )
        results: list[MediaSearchResult] = []
        failures = 0
        for manager, outcome in zip(managers, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures += 1
                logger.warning(
                    "library_search_failed",
                    extra={"system": str(manager.system), "error_type": type(outcome).__name__},
                )
                continue
            results.extend(outcome)
        if failures == len(managers):
            raise LibraryManagerError("Todos os gerenciadores falharam na busca")
        return results

    async def _search(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        msgs = self._messages
        if not intent.title:
            return MessageResponse(text=msgs.add_prompt)

        results = await self._search_managers(intent.title, intent.media_type)
        if intent.year:
            same_year = [r for r in results if r.year == intent.year]
            if same_year:
                results = same_year
        results = results[: self._config.max_search_results]
        logger.info(
            "search_complete",
            extra={"user": mask_user_id(user_id), "result_count": len(results)},
        )

        if not results:
            self._sessions.reset(user_id)
            return MessageResponse(
                text=f"{EMOJI['search']} {format_template(msgs.no_results, query=intent.title)}"
            )

        if len(results) == 1:
            item = results[0]
            if item.in_library:
                self._sessions.reset(user_id)
                return MessageResponse(text=self._already_in_library(item))
            if intent.is_anime_request:
                item = item.model_copy(update={"anime_status": AnimeStatus.ANIME})
            self._sessions.reset(user_id)
            self._sessions.set_selected_media(user_id, item)
            return self._confirmation_prompt(item)

        self._sessions.reset(user_id)
        self._sessions.set_pending_results(user_id, results)
        return MessageResponse(text=self._selection_prompt(results, intent.title))

    def _selection(
        self, user_id: str, session: ConversationSession, number: int
    ) -> MessageResponse:
        results = session.pending_results
        if not results:
            return MessageResponse(text=self._messages.no_previous_results)
        if number < 1 or number > len(results):
            return MessageResponse(
                text=format_template(self._messages.select_range, max=len(results))
            )

        item = results[number - 1]
        if item.in_library:
            self._sessions.reset(user_id)
            return MessageResponse(text=self._already_in_library(item))

        self._sessions.set_selected_media(user_id, item)
        return self._confirmation_prompt(item)

    def _back(self, user_id: str, session: ConversationSession) -> MessageResponse:
        if session.pending_results:
            self._sessions.set_state(user_id, ConversationState.AWAITING_SELECTION)
            return MessageResponse(
                text=self._selection_prompt(session.pending_results, "previous search")
            )
        self._sessions.reset(user_id)
        return MessageResponse(text=self._messages.back_to_start)

    def _show_context(self, session: ConversationSession) -> MessageResponse:
        text = f"{EMOJI['pin']} {self._messages.state_label(session.state)}"
        if session.selected_media:
            media = session.selected_media
            text += f"\n\nSelected: {media.display_title}"
        if session.pending_results:
            text += f"\n\nSearch results: {len(session.pending_results)} items"
        text += '\n\nSay "restart" to start over.'
        return MessageResponse(text=text)

    def _status(self, user_id: str) -> MessageResponse:
        requests = self._ledger.find_by_requester(user_id)
        if not requests:
            return MessageResponse(text=f"{EMOJI['empty']} {self._messages.no_requests}")

        recent = sorted(requests, key=lambda r: r.requested_at, reverse=True)
        lines = [self._messages.your_requests]
        for request in recent[:STATUS_MAX_ITEMS]:
            year = f" ({request.year})" if request.year else ""
            lines.append(
                f"• {media_emoji(request.media_type)} {request.title}{year} - {request.status.value}"
            )
        if len(recent) > STATUS_MAX_ITEMS:
            lines.append(f"...and {len(recent) - STATUS_MAX_ITEMS} more")
        return MessageResponse(text="\n".join(lines))

    # ------------------------------------------------------------------
    # Confirmação
    # ------------------------------------------------------------------

    async def _confirm(self, user_id: str, session: ConversationSession) -> MessageResponse:
        media = session.selected_media
        if media is None:
            self._sessions.reset(user_id)
            return MessageResponse(text=self._messages.nothing_selected)

        if media.anime_status == AnimeStatus.UNCERTAIN:
            self._sessions.set_state(user_id, ConversationState.AWAITING_ANIME_CONFIRMATION)
            return self._anime_prompt(media)
        if _needs_season_choice(media) and "monitor_type" not in session.context:
            self._sessions.set_state(user_id, ConversationState.AWAITING_SEASON_SELECTION)
            return MessageResponse(text=self._messages.season_select_prompt)
        return await self._add(user_id, media, session.context.get("monitor_type"))

    async def _anime_confirmation(
        self, user_id: str, session: ConversationSession, is_anime: bool
    ) -> MessageResponse:
        media = session.selected_media
        if media is None:
            self._sessions.reset(user_id)
            return MessageResponse(text=self._messages.nothing_selected)

        status = AnimeStatus.ANIME if is_anime else AnimeStatus.REGULAR
        media = media.model_copy(update={"anime_status": status})
        self._sessions.set_selected_media(user_id, media)

        if _needs_season_choice(media):
            self._sessions.set_state(user_id, ConversationState.AWAITING_SEASON_SELECTION)
            return MessageResponse(text=self._messages.season_select_prompt)
        return await self._add(user_id, media, None)

    async def _season_selection(
        self, user_id: str, session: ConversationSession, number: int
    ) -> MessageResponse:
        media = session.selected_media
        if media is None:
            self._sessions.reset(user_id)
            return MessageResponse(text=self._messages.nothing_selected)
        if number not in SEASON_OPTIONS:
            return MessageResponse(
                text=format_template(self._messages.select_range, max=len(SEASON_OPTIONS))
            )

        monitor = SEASON_OPTIONS[number]
        self._sessions.set_state_with_context(
            user_id, ConversationState.AWAITING_CONFIRMATION, {"monitor_type": monitor.value}
        )
        return await self._add(user_id, media, monitor.value)

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------

    def _add_options(
        self, media_type: MediaType, is_anime: bool, monitor: str | None
    ) -> AddOptions:
        profile = (
            self._config.movie_profile if media_type == MediaType.MOVIE else self._config.tv_profile
        )
        if is_anime and profile.anime_root_folder:
            options = AddOptions(
                quality_profile_id=profile.anime_quality_profile_id or profile.quality_profile_id,
                root_folder=profile.anime_root_folder,
                tag_ids=list(profile.anime_tag_ids),
            )
        else:
            options = AddOptions(
                quality_profile_id=profile.quality_profile_id,
                root_folder=profile.root_folder,
            )
        if media_type == MediaType.TV_SHOW:
            options.monitor = MonitorType(monitor) if monitor else MonitorType.ALL
        return options

    async def _add(
        self, user_id: str, media: MediaSearchResult, monitor: str | None
    ) -> MessageResponse:
        """Dedupe -> biblioteca -> cota -> add externo -> ledger -> admins -> reset."""
        msgs = self._messages
        media_type = MediaType.MOVIE if media.media_type == MediaType.MOVIE else MediaType.TV_SHOW
        masked = mask_user_id(user_id)

        if self._ledger.find_active_by_catalog_id(media.tmdb_id, media_type) is not None:
            self._sessions.reset(user_id)
            return MessageResponse(
                text=format_template(msgs.already_requested, title=self._titled(media))
            )

        manager = self._managers[media_type]
        if await manager.in_library(media.tmdb_id):
            self._sessions.reset(user_id)
            return MessageResponse(text=self._already_in_library(media))

        user = self._users.get_user(user_id)
        if user is None:
            self._sessions.reset(user_id)
            return MessageResponse(text=f"{EMOJI['warning']} {msgs.generic_error}")

        quota = self._quota.check_and_consume(user, media_type)
        if not quota.allowed:
            self._sessions.reset(user_id)
            logger.info("quota_exceeded", extra={"user": masked, "media_type": str(media_type)})
            return MessageResponse(
                text=f"{EMOJI['warning']} "
                + format_template(msgs.quota_exceeded, quotaMessage=quota.message)
            )

        is_anime = media.anime_status == AnimeStatus.ANIME
        options = self._add_options(media_type, is_anime, monitor)
        try:
            added = await manager.add(media, options)
        except Exception as exc:
            logger.exception(
                "Failed to add media",
                extra={"user": masked, "tmdb_id": media.tmdb_id, "system": str(manager.system)},
            )
            if quota.consumed:
                self._quota.release(user, media_type)
            self._sessions.reset(user_id)
            error_text = str(exc).lower()
            if "already" in error_text or "exists" in error_text:
                return MessageResponse(text=self._already_in_library(media))
            return MessageResponse(
                text=f"{EMOJI['warning']} {format_template(msgs.failed_to_add, title=media.title)}"
            )

        is_movie = media_type == MediaType.MOVIE
        self._ledger.record(
            media_type,
            media.title,
            media.year,
            media.tmdb_id,
            user_id,
            tvdb_id=added.tvdb_id,
            radarr_id=added.id if is_movie else None,
            sonarr_id=None if is_movie else added.id,
        )

        try:
            await self._notifications.notify_admins(user, user_id, self._titled(media))
        except Exception:
            logger.exception("admin_notification_failed", extra={"user": masked})

        self._sessions.reset(user_id)
        label = " (anime)" if is_anime else ""
        title = f"{media_emoji(media.media_type)} {media.title}{label}"
        return MessageResponse(
            text=f"{EMOJI['check_green']} {format_template(msgs.media_added, title=title)}"
        )

    # ------------------------------------------------------------------
    # Formatação
    # ------------------------------------------------------------------

    @staticmethod
    def _titled(media: MediaSearchResult) -> str:
        return f"{media_emoji(media.media_type)} {media.display_title}"

    def _already_in_library(self, media: MediaSearchResult) -> str:
        title = self._titled(media)
        if media.library_status == LibraryStatus.AVAILABLE:
            return f"{format_template(self._messages.already_available, title=title)} {EMOJI['check']}"
        if media.library_status in (LibraryStatus.MONITORED, LibraryStatus.PARTIAL):
            return format_template(self._messages.already_monitored, title=title)
        return f"{format_template(self._messages.already_in_library, title=title)} {EMOJI['check']}"

    def _headline(self, media: MediaSearchResult) -> str:
        rating = f" {EMOJI['star']} {media.rating:.1f}" if media.rating else ""
        return (
            f"{media_emoji(media.media_type)} Found: {media.display_title}"
            f" - {media_type_label(media.media_type)}{rating}"
        )

    def _confirmation_prompt(self, media: MediaSearchResult) -> MessageResponse:
        text = self._headline(media)
        if media.season_count:
            text += f" | {media.season_count} seasons"
        if media.runtime:
            text += f" | {media.runtime} min"
        if media.anime_status == AnimeStatus.ANIME:
            text += " | Anime"
        if media.overview:
            overview = media.overview[:OVERVIEW_MAX_CHARS]
            if len(media.overview) > OVERVIEW_MAX_CHARS:
                overview += "..."
            text += f"\n\n{overview}"
        text += f"\n\n{self._messages.confirm_prompt}"
        return MessageResponse(
            text=text, media_urls=[media.poster_url] if media.poster_url else None
        )

    def _anime_prompt(self, media: MediaSearchResult) -> MessageResponse:
        text = f"{self._headline(media)}\n\n{self._messages.anime_or_regular_prompt}"
        return MessageResponse(
            text=text, media_urls=[media.poster_url] if media.poster_url else None
        )

    def _selection_prompt(self, results: list[MediaSearchResult], query: str) -> str:
        header = format_template(self._messages.search_results, count=len(results), query=query)
        lines = [f"{EMOJI['search']} {header}\n"]
        for index, result in enumerate(results, start=1):
            rating = f" {EMOJI['star']}{result.rating:.1f}" if result.rating else ""
            status = ""
            if result.in_library:
                waiting = result.library_status == LibraryStatus.MONITORED
                status = f" {EMOJI['wait']}" if waiting else f" {EMOJI['check']}"
            lines.append(
                f"{index}. {media_emoji(result.media_type)} {result.display_title}"
                f"{rating}{status}"
            )
        lines.append(f"\n{self._messages.select_prompt}")
        return "\n".join(lines)
