"""Tests for the relationship store."""

from datetime import date

import pytest

from relation_core import NotFoundError, Relationship, ValidationError


class TestCreateFromAcceptance:
    def test_canonical_order_independent_of_caller(self, store):
        rel = store.create_from_acceptance("id-zed", "id-amy", "Friend")
        assert (rel.user_a, rel.user_b) == ("id-amy", "id-zed")

    def test_idempotent_for_either_direction(self, store):
        first = store.create_from_acceptance("id-a", "id-b", "Friend")
        second = store.create_from_acceptance("id-b", "id-a", "Coworker")

        assert second is first
        assert second.relation_type == "Friend"
        assert len(store) == 1

    def test_same_identity_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create_from_acceptance("id-a", "id-a")

    def test_defaults(self, store):
        rel = store.create_from_acceptance("id-a", "id-b")
        assert rel.strength == 5
        assert rel.last_interaction == date(2026, 3, 1)
        assert rel.hidden is False


class TestRemoveAndQuery:
    def test_query_returns_either_endpoint(self, store):
        ab = store.create_from_acceptance("id-a", "id-b")
        ca = store.create_from_acceptance("id-c", "id-a")
        store.create_from_acceptance("id-b", "id-c")

        assert store.query("id-a") == [ab, ca]
        assert store.query("id-x") == []

    def test_remove(self, store):
        rel = store.create_from_acceptance("id-a", "id-b")
        store.remove(rel.id)

        assert store.query("id-a") == []
        assert store.find_pair("id-a", "id-b") is None
        # The pair can be verified again afterwards.
        assert store.create_from_acceptance("id-b", "id-a").id != rel.id

    def test_remove_missing(self, store):
        with pytest.raises(NotFoundError):
            store.remove("nope")


class TestUpdateAndLoad:
    def test_update_editable_fields(self, store):
        rel = store.create_from_acceptance("id-a", "id-b")
        store.update(rel.id, strength=9, last_interaction=date(2025, 1, 1))
        assert rel.strength == 9
        assert rel.last_interaction == date(2025, 1, 1)

    @pytest.mark.parametrize("strength", [0, 11])
    def test_update_strength_bounds(self, store, strength):
        rel = store.create_from_acceptance("id-a", "id-b")
        with pytest.raises(ValidationError):
            store.update(rel.id, strength=strength)

    def test_load_canonicalizes_and_drops_duplicates(self, store):
        store.load([
            Relationship(id="r1", user_a="id-b", user_b="id-a"),
            Relationship(id="r2", user_a="id-a", user_b="id-b"),
        ])
        assert len(store) == 1
        rel = store.get("r1")
        assert (rel.user_a, rel.user_b) == ("id-a", "id-b")

    def test_snapshot_is_a_copy(self, store):
        rel = store.create_from_acceptance("id-a", "id-b")
        copy = store.snapshot()[0]
        copy.strength = 1
        assert rel.strength == 5
