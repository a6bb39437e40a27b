# src/deepbug/services/chat.py
"""Moderation policy for the public chat room.

Every public method either returns a plain value or an ``ActionResult`` with a
localized message; database failures are rolled back, logged and reported as
failures rather than raised.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.core.errors import AuthorizationFailure, DeepBugError, NotFound, ValidationFailure
from deepbug.core.security import sanitize_html, validate_message
from deepbug.core.settings import settings
from deepbug.db.time import Clock, as_utc, from_timestamp
from deepbug.models import BanRecord, ChatMessage, ChatSession
from deepbug.models.chat import MESSAGE_TYPE_TEXT
from deepbug.schemas.chat import ChatMessageOut
from deepbug.schemas.common import ActionResult
from deepbug.services.expiring import ExpiringRecord
from deepbug.services.realtime import (
    TOPIC_CHAT_MESSAGES,
    TOPIC_CHAT_SESSIONS,
    ChangeFeed,
    Subscription,
    get_change_feed,
)

logger = logging.getLogger(__name__)

STREAM_MESSAGES = "messages"
STREAM_STATUS = "status"


class ChatService:
    """Guards every chat read and write with the moderation rules.

    Args:
        db: Session used for every read and write made by this service.
        feed: Change feed notified after each successful commit.
        clock: Epoch-seconds clock used for ban expiry.
    """

    def __init__(
        self,
        db: Session,
        *,
        feed: ChangeFeed | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.db = db
        self.feed = feed if feed is not None else get_change_feed()
        self._clock = clock
        self._listeners: dict[str, Subscription] = {}

    # --- Chat sessions --------------------------------------------------------------
    def _find_open_session(self, *, for_update: bool = False) -> ChatSession | None:
        stmt = select(ChatSession).where(ChatSession.is_open.is_(True)).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.scalars(stmt).first()

    def is_chat_open(self) -> bool:
        try:
            return self._find_open_session() is not None
        except SQLAlchemyError:
            logger.warning("Error checking chat status", exc_info=True)
            self.db.rollback()
            return False

    def open_chat(self, admin_id: str) -> ActionResult:
        """Open the chat room unless a session is already open."""
        try:
            if self._find_open_session() is not None:
                return ActionResult.fail(messages.CHAT_ALREADY_OPEN)

            self.db.add(
                ChatSession(
                    is_open=True,
                    opened_by=admin_id,
                    participants=[],
                    message_count=0,
                )
            )
            self.db.commit()
        except IntegrityError:
            # Another admin opened the room between our check and insert.
            self.db.rollback()
            return ActionResult.fail(messages.CHAT_ALREADY_OPEN)
        except SQLAlchemyError:
            logger.error("Error opening chat", exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.CHAT_OPEN_FAILED)

        logger.info("Chat opened by %s", admin_id)
        self.feed.publish(TOPIC_CHAT_SESSIONS)
        return ActionResult.ok(messages.CHAT_OPENED)

    def close_chat(self, admin_id: str) -> ActionResult:
        try:
            chat_session = self._find_open_session(for_update=True)
            if chat_session is None:
                return ActionResult.fail(messages.CHAT_NOT_OPEN)

            chat_session.is_open = False
            chat_session.closed_by = admin_id
            chat_session.closed_at = from_timestamp(self._clock())
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error closing chat", exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.CHAT_CLOSE_FAILED)

        logger.info("Chat closed by %s", admin_id)
        self.feed.publish(TOPIC_CHAT_SESSIONS)
        return ActionResult.ok(messages.CHAT_CLOSED_OK)

    # --- Messages -------------------------------------------------------------------
    def send_message(
        self,
        user_id: str,
        user_name: str,
        message: str,
        user_avatar: str | None = None,
        is_admin: bool = False,
    ) -> ActionResult:
        """Post a message if it is valid, the author is not banned and the room is open.

        The ban check, the open-session check and both writes share one
        transaction; the open session row is locked where the backend supports it.
        """
        try:
            if not validate_message(message):
                raise ValidationFailure(messages.INVALID_MESSAGE)
            if self._active_ban(user_id) is not None:
                raise AuthorizationFailure(messages.USER_BANNED_FROM_CHAT)
            chat_session = self._find_open_session(for_update=True)
            if chat_session is None:
                raise NotFound(messages.CHAT_CLOSED)

            self.db.add(
                ChatMessage(
                    user_id=user_id,
                    user_name=sanitize_html(user_name),
                    user_avatar=user_avatar,
                    message=sanitize_html(message),
                    message_type=MESSAGE_TYPE_TEXT,
                    is_admin=is_admin,
                    is_deleted=False,
                )
            )
            if user_id not in chat_session.participants:
                chat_session.participants = [*chat_session.participants, user_id]
            chat_session.message_count += 1
            self.db.commit()
        except DeepBugError as exc:
            # Nothing was added yet; only a lazily expired ban may be pending.
            return self._finish_rejected_send(user_id, exc.message)
        except SQLAlchemyError:
            logger.error("Error sending message for %s", user_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.MESSAGE_SEND_FAILED)

        self.feed.publish(TOPIC_CHAT_MESSAGES, TOPIC_CHAT_SESSIONS)
        return ActionResult.ok(messages.MESSAGE_SENT)

    def _finish_rejected_send(self, user_id: str, message: str) -> ActionResult:
        try:
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error sending message for %s", user_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.MESSAGE_SEND_FAILED)
        return ActionResult.fail(message)

    def delete_message(self, message_id: int, admin_id: str) -> ActionResult:
        """Soft-delete a message; its body stays stored but renders redacted."""
        try:
            message = self.db.get(ChatMessage, message_id)
            if message is None:
                return ActionResult.fail(messages.MESSAGE_NOT_FOUND)

            message.is_deleted = True
            message.deleted_by = admin_id
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error deleting message %s", message_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.MESSAGE_DELETE_FAILED)

        logger.info("Message %s deleted by %s", message_id, admin_id)
        self.feed.publish(TOPIC_CHAT_MESSAGES)
        return ActionResult.ok(messages.MESSAGE_DELETED)

    def get_messages(self, limit: int | None = None) -> list[ChatMessage]:
        """Return the newest visible messages, oldest first."""
        limit = limit if limit is not None else settings.chat_history_limit
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.is_deleted.is_(False))
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        try:
            newest_first = list(self.db.scalars(stmt))
        except SQLAlchemyError:
            logger.warning("Error getting messages", exc_info=True)
            self.db.rollback()
            return []
        newest_first.reverse()
        return newest_first

    def clear_all_messages(self, admin_id: str) -> ActionResult:
        """Mark every message deleted, whatever its previous state."""
        try:
            self.db.execute(
                update(ChatMessage).values(is_deleted=True, deleted_by=admin_id)
            )
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error clearing messages", exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.CLEAR_FAILED)

        logger.info("All chat messages cleared by %s", admin_id)
        self.feed.publish(TOPIC_CHAT_MESSAGES)
        return ActionResult.ok(messages.MESSAGES_CLEARED)

    # --- Bans -----------------------------------------------------------------------
    def _active_ban(self, user_id: str) -> BanRecord | None:
        """Return the user's live ban, deactivating any that have expired.

        Expired bans are only flagged in the session; the caller commits.
        """
        stmt = (
            select(BanRecord)
            .where(BanRecord.user_id == user_id, BanRecord.is_active.is_(True))
            .order_by(BanRecord.id.desc())
            .execution_options(populate_existing=True)
        )
        now = self._clock()
        live: BanRecord | None = None
        for ban in self.db.scalars(stmt):
            if self._ban_expired(ban, now):
                ban.is_active = False
                logger.info("Ban %s on %s expired", ban.id, user_id)
            elif live is None:
                live = ban
        return live

    @staticmethod
    def _ban_expired(ban: BanRecord, now: float) -> bool:
        expires_at = as_utc(ban.expires_at)
        record = ExpiringRecord(ban, expires_at.timestamp() if expires_at else None)
        return record.is_expired(now)

    def is_user_banned(self, user_id: str) -> bool:
        try:
            banned = self._active_ban(user_id) is not None
            self.db.commit()
        except SQLAlchemyError:
            logger.warning("Error checking ban status for %s", user_id, exc_info=True)
            self.db.rollback()
            return False
        return banned

    def ban_user(
        self,
        user_id: str,
        admin_id: str,
        reason: str,
        duration: timedelta | None = None,
    ) -> ActionResult:
        """Ban ``user_id`` from posting, permanently when ``duration`` is None."""
        try:
            if self._active_ban(user_id) is not None:
                self.db.commit()
                return ActionResult.fail(messages.USER_ALREADY_BANNED)

            expires_at = None
            if duration:
                expires_at = from_timestamp(self._clock() + duration.total_seconds())
            self.db.add(
                BanRecord(
                    user_id=user_id,
                    banned_by=admin_id,
                    reason=sanitize_html(reason),
                    expires_at=expires_at,
                    is_active=True,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error banning user %s", user_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.BAN_FAILED)

        logger.info("User %s banned by %s (expires: %s)", user_id, admin_id, expires_at)
        return ActionResult.ok(messages.USER_BANNED)

    def unban_user(self, user_id: str) -> ActionResult:
        try:
            ban = self._active_ban(user_id)
            if ban is None:
                self.db.commit()
                return ActionResult.fail(messages.USER_NOT_BANNED)

            ban.is_active = False
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error unbanning user %s", user_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.UNBAN_FAILED)

        logger.info("User %s unbanned", user_id)
        return ActionResult.ok(messages.USER_UNBANNED)

    def get_banned_users(self) -> list[BanRecord]:
        """Return live bans, most recent first."""
        stmt = (
            select(BanRecord)
            .where(BanRecord.is_active.is_(True))
            .order_by(BanRecord.banned_at.desc(), BanRecord.id.desc())
            .execution_options(populate_existing=True)
        )
        now = self._clock()
        try:
            bans = list(self.db.scalars(stmt))
            live = []
            for ban in bans:
                if self._ban_expired(ban, now):
                    ban.is_active = False
                else:
                    live.append(ban)
            self.db.commit()
        except SQLAlchemyError:
            logger.warning("Error getting banned users", exc_info=True)
            self.db.rollback()
            return []
        return live

    # --- Live views -----------------------------------------------------------------
    def listen_to_messages(
        self,
        callback: Callable[[list[ChatMessageOut]], None],
        limit: int | None = None,
    ) -> Subscription:
        """Deliver the visible message list now and after every change.

        Replaces any message subscription previously opened on this service.
        """

        def deliver() -> None:
            callback([ChatMessageOut.from_model(m) for m in self.get_messages(limit)])

        return self._listen(STREAM_MESSAGES, deliver, TOPIC_CHAT_MESSAGES)

    def listen_to_chat_status(self, callback: Callable[[bool], None]) -> Subscription:
        """Deliver the open/closed state now and after every session change."""

        def deliver() -> None:
            callback(self.is_chat_open())

        return self._listen(STREAM_STATUS, deliver, TOPIC_CHAT_SESSIONS)

    def _listen(self, stream: str, deliver: Callable[[], None], topic: str) -> Subscription:
        previous = self._listeners.pop(stream, None)
        if previous is not None:
            previous.cancel()
        subscription = self.feed.subscribe(deliver, topic)
        self._listeners[stream] = subscription
        deliver()
        return subscription

    def unsubscribe_all(self) -> None:
        for subscription in self._listeners.values():
            subscription.cancel()
        self._listeners.clear()
