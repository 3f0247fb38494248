"""Testes da entrada de eventos Radarr/Sonarr."""

from __future__ import annotations

import pytest

from tests.helpers.fakes import FakeAdapter
from textarr.application.completion import CompletionOutcome, DownloadCompletionHandler
from textarr.application.notifications import (
    DownloadNotificationConfig,
    NotificationDispatcher,
)
from textarr.domain.enums import ExternalSystem, MediaType, RequestStatus
from textarr.domain.identity import Platform
from textarr.domain.models import MediaRequest
from textarr.infra.request_ledger import RequestLedger
from textarr.messaging.router import MessageRouter

REQUESTER = "sms:+15551234567"


@pytest.fixture()
def adapter() -> FakeAdapter:
    return FakeAdapter(Platform.SMS)


@pytest.fixture()
def handler(users, ledger: RequestLedger, adapter: FakeAdapter) -> DownloadCompletionHandler:
    users.add_user("Ana", {Platform.SMS: "+15551234567"})
    router = MessageRouter()
    router.register_adapter(adapter)
    notifications = NotificationDispatcher(DownloadNotificationConfig())
    notifications.set_dependencies(users, router)
    return DownloadCompletionHandler(ledger, notifications)


class TestOnDownloadComplete:
    @pytest.mark.asyncio
    async def test_marks_completed_and_notifies(self, handler, ledger, adapter) -> None:
        request = ledger.record(MediaType.MOVIE, "Inception", 2010, 27205, REQUESTER)

        assert await handler.on_download_complete(request) is True

        assert ledger.get(request.id).status is RequestStatus.COMPLETED
        assert adapter.sent[0][1].text == "🎬 Inception (2010) is ready to watch!"

    @pytest.mark.asyncio
    async def test_unknown_request_does_not_notify(self, handler, adapter) -> None:
        orphan = MediaRequest(
            media_type=MediaType.MOVIE, title="Ghost", tmdb_id=1, requested_by=REQUESTER
        )
        assert await handler.on_download_complete(orphan) is False
        assert adapter.sent == []


class TestHandleLibraryEvent:
    @pytest.mark.asyncio
    async def test_test_event_is_acknowledged(self, handler) -> None:
        outcome = await handler.handle_library_event(ExternalSystem.RADARR, "Test")
        assert outcome is CompletionOutcome.ACKNOWLEDGED

    @pytest.mark.asyncio
    async def test_other_events_are_ignored(self, handler) -> None:
        outcome = await handler.handle_library_event(ExternalSystem.RADARR, "Rename", 1)
        assert outcome is CompletionOutcome.IGNORED

    @pytest.mark.asyncio
    async def test_grab_marks_downloading(self, handler, ledger) -> None:
        request = ledger.record(MediaType.MOVIE, "Inception", 2010, 27205, REQUESTER, radarr_id=7)
        outcome = await handler.handle_library_event(ExternalSystem.RADARR, "Grab", 7)
        assert outcome is CompletionOutcome.DOWNLOADING
        assert ledger.get(request.id).status is RequestStatus.DOWNLOADING

    @pytest.mark.asyncio
    async def test_download_matches_by_external_id(self, handler, ledger, adapter) -> None:
        request = ledger.record(MediaType.TV_SHOW, "Dark", 2017, 70523, REQUESTER, sonarr_id=9)
        outcome = await handler.handle_library_event(ExternalSystem.SONARR, "Download", 9)
        assert outcome is CompletionOutcome.COMPLETED
        assert ledger.get(request.id).status is RequestStatus.COMPLETED
        assert adapter.sent[0][1].text == "📺 Dark (2017) is ready to watch!"

    @pytest.mark.asyncio
    async def test_download_falls_back_to_catalog_id(self, handler, ledger) -> None:
        request = ledger.record(MediaType.MOVIE, "Inception", 2010, 27205, REQUESTER)
        outcome = await handler.handle_library_event(
            ExternalSystem.RADARR, "Download", external_id=55, tmdb_id=27205
        )
        assert outcome is CompletionOutcome.COMPLETED
        assert ledger.get(request.id).status is RequestStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_catalog_fallback_respects_media_type(self, handler, ledger) -> None:
        ledger.record(MediaType.TV_SHOW, "Same Id", 2020, 27205, REQUESTER)
        outcome = await handler.handle_library_event(
            ExternalSystem.RADARR, "Download", tmdb_id=27205
        )
        assert outcome is CompletionOutcome.NO_MATCH

    @pytest.mark.asyncio
    async def test_completed_request_is_not_matched_again(self, handler, ledger, adapter) -> None:
        ledger.record(MediaType.MOVIE, "Inception", 2010, 27205, REQUESTER, radarr_id=7)
        await handler.handle_library_event(ExternalSystem.RADARR, "Download", 7)
        outcome = await handler.handle_library_event(ExternalSystem.RADARR, "Download", 7)
        assert outcome is CompletionOutcome.NO_MATCH
        assert len(adapter.sent) == 1
