from __future__ import annotations

from collections.abc import Callable

import pytest

from tests.helpers.fakes import FakeClock
from textarr.config.settings import Settings, get_settings
from textarr.infra.request_ledger import RequestLedger
from textarr.infra.snapshot import JsonSnapshotStore
from textarr.infra.user_directory import JsonUserDirectory


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def snapshot_store(tmp_path) -> JsonSnapshotStore:
    return JsonSnapshotStore(tmp_path / "data.json")


@pytest.fixture()
def users(snapshot_store: JsonSnapshotStore) -> JsonUserDirectory:
    return JsonUserDirectory(snapshot_store)


@pytest.fixture()
def ledger(snapshot_store: JsonSnapshotStore, clock: FakeClock) -> RequestLedger:
    return RequestLedger(snapshot_store, clock=clock)


@pytest.fixture()
def settings_factory(tmp_path) -> Callable[..., Settings]:
    """Settings isoladas do ambiente, com snapshot em diretório temporário."""

    def make(**overrides) -> Settings:
        values = {"data_file": str(tmp_path / "data.json"), "_env_file": None}
        values.update(overrides)
        return Settings(**values)

    return make


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
