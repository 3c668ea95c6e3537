from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import make_message


def test_marked_read_sets_flag_and_timestamp():
    msg = make_message()
    at = datetime(2024, 5, 1, tzinfo=timezone.utc)

    read = msg.marked_read(at)

    assert read.is_read is True
    assert read.read_at == at
    assert msg.is_read is False


def test_marked_read_again_refreshes_timestamp():
    first = datetime(2024, 5, 1, tzinfo=timezone.utc)
    msg = make_message().marked_read(first)

    again = msg.marked_read(first + timedelta(minutes=5))

    assert again.is_read is True
    assert again.read_at == first + timedelta(minutes=5)


def test_soft_deleted_by_participant():
    msg = make_message(sender_id="alice", receiver_id="bob")
    at = datetime(2024, 5, 1, tzinfo=timezone.utc)

    deleted = msg.soft_deleted("bob", at)

    assert deleted.is_deleted is True
    assert deleted.deleted_by == "bob"
    assert deleted.deleted_at == at
    assert deleted.content == msg.content


def test_soft_deleted_by_outsider_raises():
    msg = make_message(sender_id="alice", receiver_id="bob")

    with pytest.raises(ValueError):
        msg.soft_deleted("mallory", datetime.now(timezone.utc))


def test_has_valid_key_detects_tampering():
    msg = make_message(sender_id="alice", receiver_id="bob")
    assert msg.has_valid_key()
    assert not replace(msg, conversation_key="alice_carol").has_valid_key()
