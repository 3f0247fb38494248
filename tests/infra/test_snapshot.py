"""Testes do snapshot JSON (escritor único, gravação atômica)."""

from __future__ import annotations

import json

import pytest

from textarr.infra.snapshot import JsonSnapshotStore, SnapshotError


def test_missing_file_loads_empty_document(snapshot_store: JsonSnapshotStore) -> None:
    assert snapshot_store.load() == {"users": [], "media_requests": []}


def test_save_and_load(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.save({"users": [{"id": "u1"}], "media_requests": []})
    assert snapshot_store.load()["users"] == [{"id": "u1"}]


def test_save_leaves_no_temp_file(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.save({"users": [], "media_requests": []})
    siblings = [p.name for p in snapshot_store.path.parent.iterdir()]
    assert siblings == ["data.json"]


def test_save_creates_parent_directory(tmp_path) -> None:
    store = JsonSnapshotStore(tmp_path / "config" / "data.json")
    store.save({"users": [], "media_requests": []})
    assert store.path.exists()


def test_corrupt_file_raises(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SnapshotError):
        snapshot_store.load()


def test_non_object_document_raises(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.path.write_text("[]", encoding="utf-8")
    with pytest.raises(SnapshotError):
        snapshot_store.load()


def test_missing_sections_are_filled(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.path.write_text(json.dumps({"users": [{"id": "u1"}]}), encoding="utf-8")
    assert snapshot_store.load()["media_requests"] == []


def test_write_section_preserves_other_sections(snapshot_store: JsonSnapshotStore) -> None:
    snapshot_store.write_section("users", [{"id": "u1"}])
    snapshot_store.write_section("media_requests", [{"id": "r1"}])
    data = snapshot_store.load()
    assert data["users"] == [{"id": "u1"}]
    assert data["media_requests"] == [{"id": "r1"}]


def test_update_returns_callback_result(snapshot_store: JsonSnapshotStore) -> None:
    def add(doc):
        doc["users"].append({"id": "u2"})
        return len(doc["users"])

    assert snapshot_store.update(add) == 1
    assert snapshot_store.read_section("users") == [{"id": "u2"}]
