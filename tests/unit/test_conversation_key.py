from __future__ import annotations

import pytest

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import ForbiddenError
from messaging_service.application.policies.permissions import assert_room_member
from messaging_service.domain.value_objects.conversation_key import (
    conversation_key,
    key_includes,
)


@pytest.mark.parametrize(
    ("a", "b"),
    [("alice", "bob"), ("bob", "alice"), ("64f1c0", "64a9ff"), ("u1", "u10")],
)
def test_key_is_order_independent(a, b):
    assert conversation_key(a, b) == conversation_key(b, a)


def test_key_is_sorted_pair_joined_by_underscore():
    assert conversation_key("bob", "alice") == "alice_bob"


def test_distinct_pairs_get_distinct_keys():
    assert conversation_key("alice", "bob") != conversation_key("alice", "carol")


def test_key_includes_either_participant():
    key = conversation_key("alice", "bob")
    assert key_includes(key, "alice")
    assert key_includes(key, "bob")


def test_key_includes_rejects_outsiders_and_prefixes():
    key = conversation_key("alice", "bob")
    assert not key_includes(key, "carol")
    assert not key_includes(key, "ali")
    assert not key_includes(key, "alice_bob")
    assert not key_includes("alice_", "alice")


@pytest.mark.parametrize(("a", "b"), [("a", "b_c"), ("a_b", "c"), ("", "bob")])
def test_ids_with_separator_or_empty_have_no_key(a, b):
    with pytest.raises(ValueError):
        conversation_key(a, b)


def test_key_includes_rejects_ids_that_would_collide():
    # "a_b_c" could be (a, b_c) or (a_b, c), so it is not a valid key.
    assert not key_includes("a_b_c", "a")
    assert not key_includes("a_b_c", "a_b")
    assert not key_includes("a_b_c", "c")


def test_key_includes_rejects_unsorted_keys():
    assert not key_includes("bob_alice", "alice")


def test_room_membership_for_colliding_id_is_forbidden():
    with pytest.raises(ForbiddenError):
        assert_room_member(Principal(user_id="a_b"), "a_b_c")
    assert_room_member(Principal(user_id="alice"), "alice_bob")
