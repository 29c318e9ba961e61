"""Tests for the offline-first JSON store."""

import json

import pytest

from relation_core import (
    ConnectionRequest,
    LocalStore,
    PersistenceError,
    Relationship,
    RequestStatus,
    TypedKind,
)
from relation_core.storage import IDENTITIES_KEY, RELATIONSHIPS_KEY, REQUESTS_KEY, USER_KEY


def _request(request_id="req-1", from_id="id-alice", to_hash="hash-bob"):
    return ConnectionRequest(
        id=request_id,
        from_id=from_id,
        to_identifier_hash=to_hash,
        kind=TypedKind(relation_type="Friend"),
    )


class TestIdentities:
    def test_first_saved_identity_is_current_user(self, tmp_path, alice, bob):
        path = tmp_path / "network.json"
        store = LocalStore(path)
        store.save_identity(alice)
        store.save_identity(bob)

        document = json.loads(path.read_text())
        assert document[USER_KEY]["id"] == alice.id
        assert document[IDENTITIES_KEY][bob.id]["display_name"] == "Bob"
        assert store.current_identity() == alice

    def test_get_identity(self, local_store, alice, bob):
        local_store.save_identity(alice)
        local_store.save_identity(bob)

        assert local_store.get_identity(alice.id) == alice
        assert local_store.get_identity(bob.id) == bob
        assert local_store.get_identity("id-nobody") is None

    def test_resaving_current_user_updates_it(self, local_store, alice):
        local_store.save_identity(alice)
        renamed = alice.model_copy(update={"display_name": "Ally"})
        local_store.save_identity(renamed)
        assert local_store.current_identity().display_name == "Ally"

    def test_increment_score(self, local_store, alice, bob):
        local_store.save_identity(alice)
        local_store.save_identity(bob)

        local_store.increment_score(alice.id)
        local_store.increment_score(bob.id)
        local_store.increment_score(bob.id)
        local_store.increment_score("id-nobody")

        assert local_store.get_identity(alice.id).score == 1
        assert local_store.get_identity(bob.id).score == 2
        assert local_store.get_identity(bob.id).display_name == "Bob"


class TestRoundTrip:
    def test_reload_from_disk(self, tmp_path, alice):
        path = tmp_path / "network.json"
        store = LocalStore(path)
        store.save_identity(alice)
        store.create_relationship(Relationship(id="rel-1", user_a="id-alice", user_b="id-bob"))
        store.create_request(_request())

        reopened = LocalStore(path)
        assert reopened.current_identity() == alice
        assert [r.id for r in reopened.list_relationships("id-bob")] == ["rel-1"]
        assert [r.id for r in reopened.list_requests(alice)] == ["req-1"]

    def test_memory_store_writes_nothing(self, tmp_path, alice):
        store = LocalStore()
        store.save_identity(alice)
        assert list(tmp_path.iterdir()) == []

    def test_no_temp_files_left_behind(self, tmp_path, alice):
        store = LocalStore(tmp_path / "network.json")
        store.save_identity(alice)
        assert [p.name for p in tmp_path.iterdir()] == ["network.json"]

    def test_creates_parent_directories(self, tmp_path, alice):
        path = tmp_path / "nested" / "dir" / "network.json"
        LocalStore(path).save_identity(alice)
        assert path.exists()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "network.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            LocalStore(path)

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "network.json"
        path.write_text("[]")
        with pytest.raises(PersistenceError):
            LocalStore(path)


class TestRelationships:
    def test_pair_is_stored_once(self, local_store):
        first = Relationship(id="rel-1", user_a="id-a", user_b="id-b")
        second = Relationship(id="rel-2", user_a="id-a", user_b="id-b")

        local_store.create_relationship(first)
        stored = local_store.create_relationship(second)

        assert stored.id == "rel-1"
        assert len(local_store._document[RELATIONSHIPS_KEY]) == 1

    def test_delete(self, local_store):
        local_store.create_relationship(Relationship(id="rel-1", user_a="id-a", user_b="id-b"))
        local_store.delete_relationship("rel-1")
        local_store.delete_relationship("rel-1")
        assert local_store.list_relationships("id-a") == []

    def test_update(self, local_store):
        relationship = Relationship(id="rel-1", user_a="id-a", user_b="id-b")
        local_store.create_relationship(relationship)
        relationship.strength = 9
        local_store.update_relationship(relationship)
        assert local_store.list_relationships("id-a")[0].strength == 9

    def test_update_unknown(self, local_store):
        with pytest.raises(PersistenceError):
            local_store.update_relationship(Relationship(id="rel-x", user_a="id-a", user_b="id-b"))


class TestRequests:
    def test_list_by_hash_or_id(self, local_store, bob):
        local_store.create_request(_request("req-1", to_hash=bob.identifier_hash))
        local_store.create_request(_request("req-2", from_id=bob.id))
        local_store.create_request(_request("req-3", to_hash="someone-else"))

        assert [r.id for r in local_store.list_requests(bob)] == ["req-1", "req-2"]

    def test_update(self, local_store):
        request = _request()
        local_store.create_request(request)
        request.status = RequestStatus.DECLINED
        local_store.update_request(request)

        stored = local_store._document[REQUESTS_KEY][0]
        assert stored["status"] == "declined"

    def test_update_unknown_request(self, local_store):
        with pytest.raises(PersistenceError):
            local_store.update_request(_request("req-missing"))

    def test_delete(self, local_store, alice):
        local_store.create_request(_request())
        local_store.delete_request("req-1")
        assert local_store.list_requests(alice) == []
