"""Tests for the session store."""

import pytest

from qastudio.errors import StorageError
from qastudio.models.session import Session
from qastudio.storage.persistence import InMemoryRepository, JsonFileRepository
from qastudio.store.session_store import SessionStore


def _session(session_id: str, owner: str | None = None, ts: int = 1) -> Session:
    return Session(id=session_id, owner_id=owner, name=f"s{session_id}", timestamp=ts,
                   url=f"https://s{session_id}.test")


class TestSessionStore:
    def test_loads_from_repository(self, store: SessionStore, session: Session):
        assert len(store) == 1
        assert store.get(session.id) == session

    def test_get_unknown(self, store: SessionStore):
        assert store.get("nope") is None

    def test_upsert_new_session_is_prepended(self, store: SessionStore, repository):
        store.upsert(_session("2"))
        assert [s.id for s in store.snapshot()][0] == "2"
        assert [s.id for s in repository.load_all()][0] == "2"

    def test_upsert_replaces_in_place(self):
        repo = InMemoryRepository([_session("1"), _session("2"), _session("3")])
        store = SessionStore(repo)
        store.upsert(_session("2").model_copy(update={"name": "renamed"}))
        assert [s.id for s in store.snapshot()] == ["1", "2", "3"]
        assert store.get("2").name == "renamed"

    def test_every_write_persists(self, store: SessionStore, repository):
        store.upsert(_session("2"))
        store.rename("2", "x")
        store.delete("2")
        assert repository.save_count == 3

    def test_delete(self, store: SessionStore, session: Session, repository):
        store.delete(session.id)
        assert len(store) == 0
        assert repository.load_all() == []

    def test_delete_unknown_is_noop(self, store: SessionStore):
        store.delete("nope")
        assert len(store) == 1

    def test_rename_keeps_timestamp(self, store: SessionStore, session: Session):
        before = store.get(session.id)
        store.rename(session.id, "My shop")
        renamed = store.get(session.id)
        assert renamed.name == "My shop"
        assert renamed.timestamp == session.timestamp
        assert renamed.plan is before.plan

    def test_snapshot_is_a_copy(self, store: SessionStore):
        snap = store.snapshot()
        snap.clear()
        assert len(store) == 1

    def test_storage_failure_surfaces_after_memory_update(self, store: SessionStore, repository):
        repository.fail_next_save = True
        with pytest.raises(StorageError):
            store.upsert(_session("2"))
        assert store.get("2") is not None
        # The durable copy still holds the previous collection
        assert [s.id for s in repository.load_all()] == ["1700000000000"]


class TestRefresh:
    def test_stores_sharing_a_file_see_each_other(self, tmp_path):
        path = tmp_path / "sessions.json"
        first = SessionStore(JsonFileRepository(path))
        second = SessionStore(JsonFileRepository(path))

        first.upsert(_session("1"))
        second.refresh()
        second.upsert(_session("2"))

        assert [s.id for s in JsonFileRepository(path).load_all()] == ["2", "1"]

    def test_refresh_keeps_unsaved_change(self, store: SessionStore, repository):
        repository.fail_next_save = True
        with pytest.raises(StorageError):
            store.upsert(_session("2"))
        store.refresh()
        assert store.get("2") is not None

        store.upsert(_session("3"))
        store.refresh()
        assert {s.id for s in repository.load_all()} == {"1700000000000", "2", "3"}


class TestOwnershipFilter:
    def test_list_for_owner_includes_unowned(self):
        store = SessionStore(InMemoryRepository([
            _session("1", "alice"), _session("2", "bob"), _session("3", None),
        ]))
        assert [s.id for s in store.list_for("alice")] == ["1", "3"]
        assert [s.id for s in store.list_for("bob")] == ["2", "3"]

    def test_every_listed_session_is_owned_or_unowned(self):
        sessions = [_session(str(n), owner) for n, owner in
                    enumerate(["alice", "bob", None, "alice", "", "carol"])]
        store = SessionStore(InMemoryRepository(sessions))
        for user in ("alice", "bob", "carol", "dave"):
            for s in store.list_for(user):
                assert not s.owner_id or s.owner_id == user

    def test_unknown_user_sees_only_unowned(self):
        store = SessionStore(InMemoryRepository([_session("1", "alice"), _session("2")]))
        assert [s.id for s in store.list_for("mallory")] == ["2"]
