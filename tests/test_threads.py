"""Tests for opening and listing chat threads."""

from __future__ import annotations

import pytest

from marketplace_messaging.application.use_cases.messages import append_message
from marketplace_messaging.application.use_cases.threads import (
    create_or_get_thread,
    get_thread,
    list_user_threads,
)
from marketplace_messaging.domain.entities import ChatThread, canonical_pair
from marketplace_messaging.domain.errors import Forbidden, NotFound, ValidationError
from marketplace_messaging.infrastructure.repositories import ThreadRepository


def test_canonical_pair_orders_ids() -> None:
    assert canonical_pair("zoe", "adam") == ("adam", "zoe")
    assert canonical_pair("adam", "zoe") == ("adam", "zoe")


def test_thread_is_unique_for_both_orderings(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="seller")

    first, first_is_new = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", other_party_id="seller", fanout=fanout
    )
    second, second_is_new = create_or_get_thread(
        session, listing_id=listing_id, requester_id="seller", other_party_id="buyer", fanout=fanout
    )

    assert first_is_new is True
    assert second_is_new is False
    assert first.id == second.id
    assert (first.party_a_id, first.party_b_id) == ("buyer", "seller")
    assert ThreadRepository(session).count() == 1


def test_other_party_defaults_to_listing_owner(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="seller")

    thread, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", fanout=fanout
    )

    assert set(thread.participant_ids) == {"buyer", "seller"}


def test_concurrent_first_contact_returns_existing_thread(
    session, fanout, make_listing, monkeypatch
) -> None:
    listing_id = make_listing(owner_id="seller")
    winner = ThreadRepository(session).create(
        ChatThread(id=None, listing_id=listing_id, party_a_id="seller", party_b_id="buyer")
    )

    original_find = ThreadRepository.find_by_pair
    calls = {"count": 0}

    def stale_first_lookup(self, *args):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return original_find(self, *args)

    monkeypatch.setattr(ThreadRepository, "find_by_pair", stale_first_lookup)

    thread, is_new = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", other_party_id="seller", fanout=fanout
    )

    assert is_new is False
    assert thread.id == winner.id
    assert calls["count"] == 2
    assert ThreadRepository(session).count() == 1
    assert fanout.sent == []


def test_thread_creation_notifies_both_participants(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="seller")

    thread, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", fanout=fanout
    )

    channels = sorted(channel for channel, _ in fanout.sent)
    assert channels == ["notifications:buyer", "notifications:seller"]
    frame = fanout.frames("notifications:seller")[0]
    assert frame["type"] == "thread_updated"
    assert frame["data"]["change_type"] == "created"
    assert frame["data"]["thread"]["id"] == thread.id


def test_cannot_open_thread_with_yourself(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="seller")

    with pytest.raises(ValidationError) as exc_info:
        create_or_get_thread(
            session, listing_id=listing_id, requester_id="seller", fanout=fanout
        )

    assert exc_info.value.field == "other_party_id"


def test_unknown_listing_is_not_found(session, fanout) -> None:
    with pytest.raises(NotFound):
        create_or_get_thread(
            session, listing_id="missing", requester_id="buyer", other_party_id="seller", fanout=fanout
        )


def test_get_thread_checks_participation(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="seller")
    thread, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", fanout=fanout
    )

    assert get_thread(session, thread_id=thread.id, user_id="seller").id == thread.id
    with pytest.raises(Forbidden):
        get_thread(session, thread_id=thread.id, user_id="stranger")
    with pytest.raises(NotFound):
        get_thread(session, thread_id=thread.id + 100, user_id="seller")


def test_inbox_is_sorted_by_activity_with_unread_counts(session, fanout, make_listing) -> None:
    bike = make_listing("bike", owner_id="seller")
    lamp = make_listing("lamp", owner_id="seller", title="Desk lamp")
    bike_thread, _ = create_or_get_thread(session, listing_id=bike, requester_id="buyer", fanout=fanout)
    lamp_thread, _ = create_or_get_thread(session, listing_id=lamp, requester_id="other-buyer", fanout=fanout)

    append_message(session, thread_id=lamp_thread.id, sender_id="other-buyer", content="Still there?", fanout=fanout)
    append_message(session, thread_id=bike_thread.id, sender_id="buyer", content="Is it available?", fanout=fanout)
    append_message(session, thread_id=bike_thread.id, sender_id="buyer", content="x" * 150, fanout=fanout)

    summaries = list_user_threads(session, user_id="seller")

    assert [summary.thread.id for summary in summaries] == [bike_thread.id, lamp_thread.id]
    assert [summary.unread_count for summary in summaries] == [2, 1]
    assert summaries[0].other_party_id == "buyer"
    assert summaries[0].has_unread is True
    assert summaries[0].last_message_preview == "x" * 100 + "..."
    assert list_user_threads(session, user_id="buyer")[0].unread_count == 0
