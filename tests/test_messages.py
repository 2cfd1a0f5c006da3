"""Tests for the message log, read state and unread counters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from marketplace_messaging.application.use_cases import messages as messages_module
from marketplace_messaging.application.use_cases.messages import (
    append_message,
    list_messages,
    mark_thread_read,
)
from marketplace_messaging.application.use_cases.threads import create_or_get_thread
from marketplace_messaging.application.use_cases.unread import (
    thread_has_unread,
    unread_count_for_thread,
    unread_count_for_user,
)
from marketplace_messaging.domain.entities import Message
from marketplace_messaging.domain.errors import Forbidden, NotFound, TransientStoreError, ValidationError
from marketplace_messaging.infrastructure.repositories import (
    MessageRepository,
    NotificationRepository,
    ThreadRepository,
)


@pytest.fixture()
def thread(session, fanout, make_listing):
    listing_id = make_listing(owner_id="seller")
    created, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="buyer", fanout=fanout
    )
    fanout.sent.clear()
    return created


def test_append_stores_trimmed_content_and_advances_thread(session, fanout, thread) -> None:
    message = append_message(
        session, thread_id=thread.id, sender_id="buyer", content="  Hi there  ", fanout=fanout
    )

    assert message.content == "Hi there"
    assert message.read is False
    stored_thread = ThreadRepository(session).get(thread.id)
    assert stored_thread.last_message_at == message.created_at


@pytest.mark.parametrize("content", ["", "   ", None])
def test_empty_content_is_rejected(session, fanout, thread, content) -> None:
    with pytest.raises(ValidationError) as exc_info:
        append_message(session, thread_id=thread.id, sender_id="buyer", content=content, fanout=fanout)

    assert exc_info.value.field == "content"
    assert MessageRepository(session).list_for_thread(thread.id) == []


def test_content_over_maximum_length_is_rejected(session, fanout, thread) -> None:
    with pytest.raises(ValidationError) as exc_info:
        append_message(session, thread_id=thread.id, sender_id="buyer", content="a" * 5001, fanout=fanout)

    assert exc_info.value.field == "content"


def test_only_participants_can_send(session, fanout, thread) -> None:
    with pytest.raises(Forbidden):
        append_message(session, thread_id=thread.id, sender_id="stranger", content="Hello", fanout=fanout)
    with pytest.raises(NotFound):
        append_message(session, thread_id=thread.id + 1, sender_id="buyer", content="Hello", fanout=fanout)


def test_send_publishes_and_notifies_recipient(session, fanout, thread) -> None:
    message = append_message(
        session,
        thread_id=thread.id,
        sender_id="buyer",
        content="Is the bike still available?",
        sender_name="Bob",
        fanout=fanout,
    )

    thread_frames = fanout.frames(f"thread:{thread.id}", "new_message")
    assert [frame["data"]["id"] for frame in thread_frames] == [message.id]
    seller_frames = fanout.frames("notifications:seller")
    assert [frame["type"] for frame in seller_frames] == ["new_notification", "thread_updated"]
    assert seller_frames[0]["data"]["title"] == "New message from Bob"
    assert seller_frames[0]["data"]["action_url"] == f"/chat/{thread.id}"
    assert fanout.frames("notifications:buyer", "thread_updated")
    thread_updates = fanout.frames(f"thread:{thread.id}", "thread_updated")
    assert [frame["data"]["change_type"] for frame in thread_updates] == ["new_message"]
    assert thread_updates[0]["data"]["thread"]["last_message_at"] is not None

    notifications, total = NotificationRepository(session).list_for_user("seller", limit=10)
    assert total == 1
    assert notifications[0].data == {"thread_id": thread.id, "sender_name": "Bob"}
    assert NotificationRepository(session).count_for_user("buyer") == 0


def test_long_message_preview_is_truncated(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="b" * 120, fanout=fanout)

    notifications, _ = NotificationRepository(session).list_for_user("seller", limit=10)
    assert notifications[0].message == "b" * 100 + "..."


def test_retry_with_client_token_is_idempotent(session, fanout, thread) -> None:
    first = append_message(
        session, thread_id=thread.id, sender_id="buyer", content="Hello", client_token="tok-1", fanout=fanout
    )
    retried = append_message(
        session, thread_id=thread.id, sender_id="buyer", content="Hello", client_token="tok-1", fanout=fanout
    )

    assert retried.id == first.id
    assert len(MessageRepository(session).list_for_thread(thread.id)) == 1
    assert NotificationRepository(session).count_for_user("seller") == 1
    assert len(fanout.frames(f"thread:{thread.id}", "new_message")) == 1


def test_client_token_is_scoped_to_sender(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="Hi", client_token="same", fanout=fanout)
    append_message(session, thread_id=thread.id, sender_id="seller", content="Hey", client_token="same", fanout=fanout)

    assert len(MessageRepository(session).list_for_thread(thread.id)) == 2


def test_client_token_length_is_limited(session, fanout, thread) -> None:
    with pytest.raises(ValidationError) as exc_info:
        append_message(
            session, thread_id=thread.id, sender_id="buyer", content="Hi", client_token="t" * 65, fanout=fanout
        )

    assert exc_info.value.field == "client_token"


def test_messages_with_equal_timestamps_keep_insertion_order(session, thread) -> None:
    repository = MessageRepository(session)
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    first = repository.append(
        Message(id=None, thread_id=thread.id, sender_id="buyer", content="first", created_at=moment)
    )
    second = repository.append(
        Message(id=None, thread_id=thread.id, sender_id="seller", content="second", created_at=moment)
    )
    earlier = repository.append(
        Message(
            id=None,
            thread_id=thread.id,
            sender_id="buyer",
            content="earlier",
            created_at=moment - timedelta(minutes=5),
        )
    )

    ordered = repository.list_for_thread(thread.id)

    assert [message.id for message in ordered] == [earlier.id, first.id, second.id]
    assert ThreadRepository(session).get(thread.id).last_message_at == moment


def test_messages_stay_ordered_when_clocks_go_back(session, thread, monkeypatch) -> None:
    try:
        london = ZoneInfo("Europe/London")
    except ZoneInfoNotFoundError:
        pytest.skip("tz database not available")
    monkeypatch.setattr("marketplace_messaging.utils.datetime.get_app_timezone", lambda: london)
    repository = MessageRepository(session)
    # 01:30 BST, then 01:10 GMT forty minutes later.
    before = datetime(2024, 10, 27, 0, 30, tzinfo=timezone.utc)
    after = datetime(2024, 10, 27, 1, 10, tzinfo=timezone.utc)
    first = repository.append(
        Message(id=None, thread_id=thread.id, sender_id="buyer", content="before", created_at=before)
    )
    second = repository.append(
        Message(id=None, thread_id=thread.id, sender_id="seller", content="after", created_at=after)
    )

    ordered = repository.list_for_thread(thread.id)

    assert [message.id for message in ordered] == [first.id, second.id]
    assert ordered[1].created_at == after
    assert ordered[1].created_at.utcoffset() == timedelta(0)
    assert ThreadRepository(session).get(thread.id).last_message_at == after


def test_listing_marks_incoming_messages_read(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="Hi", fanout=fanout)
    append_message(session, thread_id=thread.id, sender_id="seller", content="Hello", fanout=fanout)
    fanout.sent.clear()

    messages = list_messages(session, thread_id=thread.id, user_id="seller", fanout=fanout)

    assert [(message.content, message.read) for message in messages] == [
        ("Hi", True),
        ("Hello", False),
    ]
    read_frames = fanout.frames(f"thread:{thread.id}", "thread_updated")
    assert read_frames[0]["data"]["change_type"] == "read"

    fanout.sent.clear()
    list_messages(session, thread_id=thread.id, user_id="seller", fanout=fanout)
    assert fanout.sent == []


def test_listing_requires_participation(session, fanout, thread) -> None:
    with pytest.raises(Forbidden):
        list_messages(session, thread_id=thread.id, user_id="stranger", fanout=fanout)


def test_mark_thread_read_is_idempotent(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="One", fanout=fanout)
    append_message(session, thread_id=thread.id, sender_id="buyer", content="Two", fanout=fanout)

    assert mark_thread_read(session, thread_id=thread.id, user_id="seller") == 2
    first_read_at = [m.read_at for m in MessageRepository(session).list_for_thread(thread.id)]
    assert mark_thread_read(session, thread_id=thread.id, user_id="seller") == 0
    assert [m.read_at for m in MessageRepository(session).list_for_thread(thread.id)] == first_read_at
    assert all(m.read for m in MessageRepository(session).list_for_thread(thread.id))


def test_mark_thread_read_publishes_one_read_event(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="Hi", fanout=fanout)
    fanout.sent.clear()

    assert mark_thread_read(session, thread_id=thread.id, user_id="seller", fanout=fanout) == 1

    read_frames = fanout.frames(f"thread:{thread.id}", "thread_updated")
    assert len(fanout.sent) == 1
    assert read_frames[0]["data"]["change_type"] == "read"
    assert read_frames[0]["data"]["actor_id"] == "seller"
    assert read_frames[0]["data"]["updated"] == 1

    fanout.sent.clear()
    assert mark_thread_read(session, thread_id=thread.id, user_id="seller", fanout=fanout) == 0
    assert fanout.sent == []


def test_sender_reading_does_not_mark_own_messages(session, fanout, thread) -> None:
    append_message(session, thread_id=thread.id, sender_id="buyer", content="One", fanout=fanout)

    assert mark_thread_read(session, thread_id=thread.id, user_id="buyer") == 0
    assert thread_has_unread(session, thread_id=thread.id, user_id="seller") is True


def test_unread_counts_are_consistent_across_threads(session, fanout, make_listing) -> None:
    bike = make_listing("bike", owner_id="seller")
    lamp = make_listing("lamp", owner_id="seller")
    bike_thread, _ = create_or_get_thread(session, listing_id=bike, requester_id="buyer", fanout=fanout)
    lamp_thread, _ = create_or_get_thread(session, listing_id=lamp, requester_id="collector", fanout=fanout)

    for content in ("a", "b", "c"):
        append_message(session, thread_id=bike_thread.id, sender_id="buyer", content=content, fanout=fanout)
    append_message(session, thread_id=lamp_thread.id, sender_id="collector", content="d", fanout=fanout)
    append_message(session, thread_id=lamp_thread.id, sender_id="seller", content="e", fanout=fanout)

    per_thread = [
        unread_count_for_thread(session, thread_id=bike_thread.id, user_id="seller"),
        unread_count_for_thread(session, thread_id=lamp_thread.id, user_id="seller"),
    ]
    assert per_thread == [3, 1]
    assert unread_count_for_user(session, user_id="seller") == sum(per_thread)
    assert unread_count_for_user(session, user_id="collector") == 1

    mark_thread_read(session, thread_id=bike_thread.id, user_id="seller")
    assert unread_count_for_user(session, user_id="seller") == 1
    assert thread_has_unread(session, thread_id=bike_thread.id, user_id="seller") is False


def test_two_sided_first_contact_and_conversation(session, fanout, make_listing) -> None:
    listing_id = make_listing(owner_id="bea")

    from_a, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="ann", other_party_id="bea", fanout=fanout
    )
    from_b, _ = create_or_get_thread(
        session, listing_id=listing_id, requester_id="bea", other_party_id="ann", fanout=fanout
    )
    assert from_a.id == from_b.id

    append_message(session, thread_id=from_a.id, sender_id="ann", content="Hi", fanout=fanout)
    append_message(session, thread_id=from_a.id, sender_id="bea", content="Hello", fanout=fanout)

    contents = [m.content for m in MessageRepository(session).list_for_thread(from_a.id)]
    assert contents == ["Hi", "Hello"]
    assert unread_count_for_user(session, user_id="bea") == 1

    assert mark_thread_read(session, thread_id=from_a.id, user_id="bea") == 1
    assert unread_count_for_user(session, user_id="bea") == 0
    assert unread_count_for_user(session, user_id="ann") == 1


def test_failed_notification_does_not_undo_the_message(session, fanout, thread, monkeypatch, caplog) -> None:
    def unavailable(*args, **kwargs):
        raise TransientStoreError("store down")

    monkeypatch.setattr(messages_module, "notify_new_chat_message", unavailable)

    with caplog.at_level("ERROR"):
        message = append_message(session, thread_id=thread.id, sender_id="buyer", content="Hi", fanout=fanout)

    assert MessageRepository(session).list_for_thread(thread.id)[0].id == message.id
    assert "notifying user seller failed" in caplog.text
    assert fanout.frames(f"thread:{thread.id}", "new_message")
