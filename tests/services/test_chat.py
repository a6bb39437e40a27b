# tests/services/test_chat.py
"""Tests for the chat moderation policy."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.models import BanRecord, ChatMessage, ChatSession
from deepbug.schemas.chat import ChatMessageOut
from deepbug.services.chat import ChatService
from deepbug.services.realtime import TOPIC_CHAT_MESSAGES, TOPIC_CHAT_SESSIONS, ChangeFeed


def _messages(db: Session) -> list[ChatMessage]:
    return list(db.scalars(select(ChatMessage).order_by(ChatMessage.id)))


# --- Chat sessions ------------------------------------------------------------------


def test_chat_starts_closed(chat_service: ChatService) -> None:
    assert chat_service.is_chat_open() is False


def test_open_chat_creates_single_open_session(chat_service: ChatService, db_session: Session) -> None:
    result = chat_service.open_chat("admin-1")

    assert result.success is True
    assert result.message == messages.CHAT_OPENED
    assert chat_service.is_chat_open() is True

    chat_session = db_session.scalars(select(ChatSession)).one()
    assert chat_session.opened_by == "admin-1"
    assert chat_session.participants == []
    assert chat_session.message_count == 0


def test_open_chat_twice_fails(chat_service: ChatService) -> None:
    chat_service.open_chat("admin-1")

    result = chat_service.open_chat("admin-2")
    assert result.success is False
    assert result.message == messages.CHAT_ALREADY_OPEN


def test_second_open_session_violates_unique_index(db_session: Session) -> None:
    db_session.add(ChatSession(is_open=True, participants=[], message_count=0))
    db_session.commit()

    db_session.add(ChatSession(is_open=True, participants=[], message_count=0))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_racing_open_reported_as_already_open(chat_service: ChatService, mocker: Any) -> None:
    chat_service.open_chat("admin-1")
    mocker.patch.object(chat_service, "_find_open_session", return_value=None)

    result = chat_service.open_chat("admin-2")
    assert result.success is False
    assert result.message == messages.CHAT_ALREADY_OPEN


def test_closed_sessions_do_not_block_reopening(chat_service: ChatService) -> None:
    chat_service.open_chat("admin-1")
    chat_service.close_chat("admin-1")

    assert chat_service.open_chat("admin-1").success is True


def test_close_chat_without_open_session_fails(chat_service: ChatService) -> None:
    result = chat_service.close_chat("admin-1")

    assert result.success is False
    assert result.message == messages.CHAT_NOT_OPEN


def test_close_chat_records_who_closed_it(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")

    result = chat_service.close_chat("admin-2")
    assert result.success is True
    assert chat_service.is_chat_open() is False

    chat_session = db_session.scalars(select(ChatSession)).one()
    assert chat_session.is_open is False
    assert chat_session.closed_by == "admin-2"
    assert chat_session.closed_at is not None


def test_backend_failure_downgraded_to_result(
    chat_service: ChatService,
    db_session: Session,
    mocker: Any,
) -> None:
    mocker.patch.object(db_session, "commit", side_effect=SQLAlchemyError("down"))

    result = chat_service.open_chat("admin-1")
    assert result.success is False
    assert result.message == messages.CHAT_OPEN_FAILED


# --- Sending --------------------------------------------------------------------------


def test_send_while_closed_writes_nothing(chat_service: ChatService, db_session: Session) -> None:
    result = chat_service.send_message("u1", "Sara", "hello")

    assert result.success is False
    assert result.message == messages.CHAT_CLOSED
    assert _messages(db_session) == []


def test_rejected_send_with_failing_commit_returns_result(
    chat_service: ChatService,
    db_session: Session,
    mocker: Any,
) -> None:
    failure = OperationalError("COMMIT", {}, Exception("db down"))
    mocker.patch.object(db_session, "commit", side_effect=failure)
    rollback = mocker.spy(db_session, "rollback")

    result = chat_service.send_message("u1", "Sara", "hello")

    assert result.success is False
    assert result.message == messages.MESSAGE_SEND_FAILED
    rollback.assert_called_once()


@pytest.mark.parametrize("body", ["", "x" * 1001])
def test_send_rejects_invalid_body(chat_service: ChatService, db_session: Session, body: str) -> None:
    chat_service.open_chat("admin-1")

    result = chat_service.send_message("u1", "Sara", body)
    assert result.success is False
    assert result.message == messages.INVALID_MESSAGE
    assert _messages(db_session) == []


def test_banned_user_sees_ban_before_closed(chat_service: ChatService) -> None:
    chat_service.ban_user("u1", "admin-1", "spam")

    result = chat_service.send_message("u1", "Sara", "hello")
    assert result.message == messages.USER_BANNED_FROM_CHAT


def test_banned_user_cannot_post_to_open_chat(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")
    chat_service.ban_user("u1", "admin-1", "spam")

    result = chat_service.send_message("u1", "Sara", "hello")
    assert result.success is False
    assert result.message == messages.USER_BANNED_FROM_CHAT
    assert _messages(db_session) == []


def test_send_sanitizes_and_tracks_participants(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")

    first = chat_service.send_message("u1", "<b>Sara</b>", "<script>x()</script><b>hi</b>")
    chat_service.send_message("u1", "Sara", "again")
    chat_service.send_message("u2", "Omar", "hey", user_avatar="https://deepbug.com/a.png")

    assert first.success is True
    assert first.message == messages.MESSAGE_SENT

    stored = _messages(db_session)
    assert [m.message for m in stored] == ["<b>hi</b>", "again", "hey"]
    assert stored[0].user_name == "<b>Sara</b>"
    assert stored[0].is_deleted is False
    assert stored[0].message_type == "text"
    assert stored[0].created_at is not None
    assert stored[2].user_avatar == "https://deepbug.com/a.png"

    chat_session = db_session.scalars(select(ChatSession)).one()
    assert chat_session.participants == ["u1", "u2"]
    assert chat_session.message_count == 3


def test_admin_messages_are_flagged(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")
    chat_service.send_message("admin-1", "Admin", "welcome", is_admin=True)

    assert _messages(db_session)[0].is_admin is True


# --- Reading and deleting -----------------------------------------------------------


def test_get_messages_returns_newest_in_chronological_order(chat_service: ChatService) -> None:
    chat_service.open_chat("admin-1")
    for body in ("one", "two", "three"):
        chat_service.send_message("u1", "Sara", body)

    assert [m.message for m in chat_service.get_messages(2)] == ["two", "three"]
    assert [m.message for m in chat_service.get_messages()] == ["one", "two", "three"]


def test_delete_message_is_soft(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")
    chat_service.send_message("u1", "Sara", "rude words")
    message = _messages(db_session)[0]

    result = chat_service.delete_message(message.id, "admin-1")
    assert result.success is True
    assert result.message == messages.MESSAGE_DELETED

    stored = db_session.get(ChatMessage, message.id)
    assert stored is not None
    assert stored.is_deleted is True
    assert stored.deleted_by == "admin-1"
    assert stored.message == "rude words"
    assert ChatMessageOut.from_model(stored).message == messages.DELETED_MESSAGE_PLACEHOLDER
    assert chat_service.get_messages() == []


def test_delete_missing_message_fails(chat_service: ChatService) -> None:
    result = chat_service.delete_message(999, "admin-1")

    assert result.success is False
    assert result.message == messages.MESSAGE_NOT_FOUND


def test_clear_all_messages_marks_everything_deleted(chat_service: ChatService, db_session: Session) -> None:
    chat_service.open_chat("admin-1")
    chat_service.send_message("u1", "Sara", "one")
    chat_service.send_message("u2", "Omar", "two")
    chat_service.delete_message(_messages(db_session)[0].id, "admin-1")

    result = chat_service.clear_all_messages("admin-2")
    assert result.success is True

    db_session.expire_all()
    stored = _messages(db_session)
    assert all(m.is_deleted for m in stored)
    assert {m.deleted_by for m in stored} == {"admin-2"}
    assert chat_service.get_messages() == []


# --- Bans -----------------------------------------------------------------------------


def test_ban_and_unban(chat_service: ChatService) -> None:
    result = chat_service.ban_user("u1", "admin-1", "spam")
    assert result.success is True
    assert chat_service.is_user_banned("u1") is True

    result = chat_service.unban_user("u1")
    assert result.success is True
    assert result.message == messages.USER_UNBANNED
    assert chat_service.is_user_banned("u1") is False


def test_ban_twice_fails(chat_service: ChatService) -> None:
    chat_service.ban_user("u1", "admin-1", "spam")

    result = chat_service.ban_user("u1", "admin-1", "again")
    assert result.success is False
    assert result.message == messages.USER_ALREADY_BANNED


def test_unban_without_ban_fails(chat_service: ChatService) -> None:
    result = chat_service.unban_user("u1")

    assert result.success is False
    assert result.message == messages.USER_NOT_BANNED


def test_permanent_ban_never_expires(chat_service: ChatService, clock: Any) -> None:
    chat_service.ban_user("u1", "admin-1", "spam")

    clock.advance(10 * 365 * 24 * 60 * 60)
    assert chat_service.is_user_banned("u1") is True


def test_ban_reason_is_sanitized(chat_service: ChatService, db_session: Session) -> None:
    chat_service.ban_user("u1", "admin-1", "<script>x</script>flooding")

    ban = db_session.scalars(select(BanRecord)).one()
    assert ban.reason == "flooding"
    assert ban.expires_at is None


def test_expired_ban_heals_lazily(chat_service: ChatService, db_session: Session, clock: Any) -> None:
    chat_service.ban_user("u1", "admin-1", "spam", timedelta(hours=1))
    assert chat_service.is_user_banned("u1") is True

    clock.advance(60 * 60 + 1)
    assert chat_service.is_user_banned("u1") is False

    db_session.expire_all()
    ban = db_session.scalars(select(BanRecord)).one()
    assert ban.is_active is False


def test_expired_ban_allows_posting_and_rebanning(chat_service: ChatService, clock: Any) -> None:
    chat_service.open_chat("admin-1")
    chat_service.ban_user("u1", "admin-1", "spam", timedelta(minutes=5))

    clock.advance(5 * 60 + 1)
    assert chat_service.send_message("u1", "Sara", "back again").success is True
    assert chat_service.ban_user("u1", "admin-1", "spam again").success is True


def test_get_banned_users_most_recent_first(chat_service: ChatService, clock: Any) -> None:
    chat_service.ban_user("u1", "admin-1", "spam")
    chat_service.ban_user("u2", "admin-1", "flood", timedelta(minutes=1))
    chat_service.ban_user("u3", "admin-1", "abuse")

    assert [ban.user_id for ban in chat_service.get_banned_users()] == ["u3", "u2", "u1"]

    clock.advance(61)
    assert [ban.user_id for ban in chat_service.get_banned_users()] == ["u3", "u1"]


# --- Live views -----------------------------------------------------------------------


def test_listen_to_messages_delivers_snapshots(chat_service: ChatService) -> None:
    snapshots: list[list[str]] = []
    chat_service.open_chat("admin-1")

    subscription = chat_service.listen_to_messages(
        lambda items: snapshots.append([m.message for m in items])
    )
    assert snapshots == [[]]

    chat_service.send_message("u1", "Sara", "hello")
    assert snapshots[-1] == ["hello"]

    subscription.cancel()
    chat_service.send_message("u1", "Sara", "unseen")
    assert snapshots[-1] == ["hello"]


def test_listen_to_chat_status(chat_service: ChatService) -> None:
    statuses: list[bool] = []
    chat_service.listen_to_chat_status(statuses.append)

    chat_service.open_chat("admin-1")
    chat_service.close_chat("admin-1")

    assert statuses == [False, True, False]


def test_changes_from_another_service_are_observed(
    chat_service: ChatService,
    db_session: Session,
    feed: ChangeFeed,
    clock: Any,
) -> None:
    statuses: list[bool] = []
    chat_service.listen_to_chat_status(statuses.append)

    ChatService(db_session, feed=feed, clock=clock).open_chat("admin-1")
    assert statuses == [False, True]


def test_resubscribe_cancels_previous_stream(chat_service: ChatService, feed: ChangeFeed) -> None:
    first: list[int] = []
    second: list[int] = []

    old = chat_service.listen_to_messages(lambda items: first.append(len(items)))
    chat_service.listen_to_messages(lambda items: second.append(len(items)))

    assert old.active is False
    assert feed.subscriber_count(TOPIC_CHAT_MESSAGES) == 1

    chat_service.open_chat("admin-1")
    chat_service.send_message("u1", "Sara", "hello")
    assert first == [0]
    assert second == [0, 1]


def test_unsubscribe_all_leaves_no_listeners(chat_service: ChatService, feed: ChangeFeed) -> None:
    chat_service.listen_to_messages(lambda items: None)
    chat_service.listen_to_chat_status(lambda is_open: None)

    chat_service.unsubscribe_all()

    assert feed.subscriber_count(TOPIC_CHAT_MESSAGES) == 0
    assert feed.subscriber_count(TOPIC_CHAT_SESSIONS) == 0
