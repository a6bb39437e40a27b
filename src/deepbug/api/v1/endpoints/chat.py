"""Chat room endpoints, moderation actions and the live WebSocket stream."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, WebSocket, status

from deepbug.api.v1.dependencies import (
    AuthServiceDep,
    ChatServiceDep,
    CurrentAdminDep,
    FeedDep,
    SessionDep,
    respond,
)
from deepbug.core import messages
from deepbug.core.settings import settings
from deepbug.schemas.chat import BanOut, BanRequest, ChatMessageOut, ChatStatus, SendMessageRequest
from deepbug.schemas.common import ActionResult
from deepbug.services.chat import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/status", response_model=ChatStatus)
async def get_chat_status(chat: ChatServiceDep) -> ChatStatus:
    return ChatStatus(is_open=chat.is_chat_open())


@router.post("/open", response_model=ActionResult)
async def open_chat(
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    return respond(chat.open_chat(admin.id), response)


@router.post("/close", response_model=ActionResult)
async def close_chat(
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    return respond(chat.close_chat(admin.id), response)


@router.get("/messages", response_model=list[ChatMessageOut])
async def list_messages(
    chat: ChatServiceDep,
    limit: int = Query(settings.chat_history_limit, ge=1, le=200),
) -> list[ChatMessageOut]:
    """Return the newest visible messages, oldest first."""
    return [ChatMessageOut.from_model(message) for message in chat.get_messages(limit)]


@router.post("/messages", response_model=ActionResult)
async def send_message(
    payload: SendMessageRequest,
    auth: AuthServiceDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    """Post as the signed-in user, or as the administrator when only that slot is live.

    Only messages authored by the administrator carry the admin flag.
    """
    user = auth.get_current_user()
    admin = auth.get_current_admin()
    if user is not None:
        result = chat.send_message(
            user.id,
            user.name,
            payload.message,
            user_avatar=user.avatar,
        )
    elif admin is not None:
        result = chat.send_message(admin.id, admin.name, payload.message, is_admin=True)
    else:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.LOGIN_REQUIRED,
        )
    return respond(result, response)


@router.delete("/messages/{message_id}", response_model=ActionResult)
async def delete_message(
    message_id: int,
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    return respond(chat.delete_message(message_id, admin.id), response)


@router.delete("/messages", response_model=ActionResult)
async def clear_messages(
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    return respond(chat.clear_all_messages(admin.id), response)


@router.get("/bans", response_model=list[BanOut])
async def list_bans(admin: CurrentAdminDep, chat: ChatServiceDep) -> list[BanOut]:
    return [BanOut.from_model(ban) for ban in chat.get_banned_users()]


@router.post("/bans", response_model=ActionResult)
async def ban_user(
    payload: BanRequest,
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    duration = (
        timedelta(seconds=payload.duration_seconds) if payload.duration_seconds else None
    )
    result = chat.ban_user(payload.user_id, admin.id, payload.reason, duration)
    return respond(result, response)


@router.delete("/bans/{user_id}", response_model=ActionResult)
async def unban_user(
    user_id: str,
    admin: CurrentAdminDep,
    chat: ChatServiceDep,
    response: Response,
) -> ActionResult:
    return respond(chat.unban_user(user_id), response)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def chat_stream(websocket: WebSocket, db: SessionDep, feed: FeedDep) -> None:
    """Push the message list and the open/closed state whenever either changes."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    events: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def enqueue(event: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(events.put_nowait, event)

    chat = ChatService(db, feed=feed)
    chat.listen_to_messages(
        lambda snapshot: enqueue(
            {"type": "messages", "messages": [m.model_dump(mode="json") for m in snapshot]}
        )
    )
    chat.listen_to_chat_status(lambda is_open: enqueue({"type": "status", "is_open": is_open}))

    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            next_event = asyncio.create_task(events.get())
            done, _ = await asyncio.wait(
                {disconnected, next_event},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if disconnected in done:
                next_event.cancel()
                break
            await websocket.send_json(next_event.result())
    finally:
        chat.unsubscribe_all()
        if not disconnected.done():
            disconnected.cancel()
        logger.debug("Chat stream closed")
