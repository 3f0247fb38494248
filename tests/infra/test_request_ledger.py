"""Testes do ledger de pedidos."""

from __future__ import annotations

from unittest.mock import patch

from textarr.domain.enums import ExternalSystem, MediaType, RequestStatus
from textarr.infra.request_ledger import RequestLedger
from textarr.infra.snapshot import JsonSnapshotStore

USER = "sms:+15551234567"


def _record_movie(ledger: RequestLedger, tmdb_id: int = 27205, **kw):
    return ledger.record(MediaType.MOVIE, "Inception", 2010, tmdb_id, USER, **kw)


class TestRecord:
    def test_record_creates_pending_request(self, ledger: RequestLedger, clock) -> None:
        request = _record_movie(ledger, radarr_id=7)
        assert request.status is RequestStatus.PENDING
        assert request.requested_at == clock.now
        assert request.radarr_id == 7
        assert ledger.get(request.id) == request

    def test_record_persists_before_returning(
        self, ledger: RequestLedger, snapshot_store: JsonSnapshotStore
    ) -> None:
        request = _record_movie(ledger)
        reloaded = RequestLedger(JsonSnapshotStore(snapshot_store.path))
        assert reloaded.get(request.id) is not None

    def test_ids_are_unique(self, ledger: RequestLedger) -> None:
        assert _record_movie(ledger).id != _record_movie(ledger).id


class TestFind:
    def test_find_by_external_id(self, ledger: RequestLedger) -> None:
        movie = _record_movie(ledger, radarr_id=7)
        series = ledger.record(MediaType.TV_SHOW, "Dark", 2017, 70523, USER, sonarr_id=7)
        assert ledger.find_by_external_id(ExternalSystem.RADARR, 7).id == movie.id
        assert ledger.find_by_external_id(ExternalSystem.SONARR, 7).id == series.id
        assert ledger.find_by_external_id(ExternalSystem.RADARR, 8) is None

    def test_find_by_catalog_id_distinguishes_media_type(self, ledger: RequestLedger) -> None:
        """Filme e série com o mesmo tmdb_id são pedidos distintos."""
        movie = _record_movie(ledger, tmdb_id=500)
        series = ledger.record(MediaType.TV_SHOW, "Other", 2020, 500, USER)
        assert ledger.find_by_catalog_id(500, MediaType.MOVIE).id == movie.id
        assert ledger.find_by_catalog_id(500, MediaType.TV_SHOW).id == series.id
        # Sem tipo: o mais recente
        assert ledger.find_by_catalog_id(500).id == series.id

    def test_find_active_ignores_terminal(self, ledger: RequestLedger) -> None:
        request = _record_movie(ledger)
        ledger.update_status(request.id, RequestStatus.COMPLETED)
        assert ledger.find_active_by_catalog_id(27205, MediaType.MOVIE) is None
        assert ledger.find_by_catalog_id(27205, MediaType.MOVIE) is not None

    def test_find_pending_includes_downloading(self, ledger: RequestLedger) -> None:
        pending = _record_movie(ledger, tmdb_id=1)
        downloading = _record_movie(ledger, tmdb_id=2)
        done = _record_movie(ledger, tmdb_id=3)
        ledger.update_status(downloading.id, RequestStatus.DOWNLOADING)
        ledger.update_status(done.id, RequestStatus.FAILED)
        assert {r.id for r in ledger.find_pending()} == {pending.id, downloading.id}

    def test_find_by_requester(self, ledger: RequestLedger) -> None:
        mine = _record_movie(ledger)
        ledger.record(MediaType.MOVIE, "Dune", 2021, 438631, "sms:+15559999999")
        assert [r.id for r in ledger.find_by_requester(USER)] == [mine.id]


class TestUpdate:
    def test_update_status(self, ledger: RequestLedger) -> None:
        request = _record_movie(ledger)
        assert ledger.update_status(request.id, RequestStatus.DOWNLOADING) is True
        assert ledger.get(request.id).status is RequestStatus.DOWNLOADING

    def test_update_unknown_id_returns_false(self, ledger: RequestLedger) -> None:
        assert ledger.update_status("missing", RequestStatus.COMPLETED) is False
        assert ledger.update_external_id("missing", ExternalSystem.RADARR, 1) is False

    def test_update_external_id(self, ledger: RequestLedger) -> None:
        request = _record_movie(ledger)
        assert ledger.update_external_id(request.id, ExternalSystem.RADARR, 42) is True
        assert ledger.find_by_external_id(ExternalSystem.RADARR, 42).id == request.id


class TestPrune:
    def test_prune_removes_old_terminal_requests(self, ledger: RequestLedger, clock) -> None:
        old_done = _record_movie(ledger, tmdb_id=1)
        old_pending = _record_movie(ledger, tmdb_id=2)
        ledger.update_status(old_done.id, RequestStatus.COMPLETED)
        clock.advance(days=31)
        recent_done = _record_movie(ledger, tmdb_id=3)
        ledger.update_status(recent_done.id, RequestStatus.FAILED)

        assert ledger.prune(30) == 1
        assert ledger.get(old_done.id) is None
        assert ledger.get(old_pending.id) is not None
        assert ledger.get(recent_done.id) is not None

    def test_prune_with_nothing_to_remove_does_not_write(
        self, ledger: RequestLedger, snapshot_store: JsonSnapshotStore
    ) -> None:
        _record_movie(ledger)
        with patch.object(snapshot_store, "save") as save:
            assert ledger.prune() == 0
        save.assert_not_called()
