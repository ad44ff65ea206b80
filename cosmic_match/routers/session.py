from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..deps import AuthError, user_id_from_token
from ..session import (
    CANDIDATES,
    CONVERSATIONS,
    NEW_MATCHES,
    MatchSession,
    build_match_session,
)
from ..state import MatchState

LOGGER = logging.getLogger("uvicorn.error")

router = APIRouter()


def snapshot(kind: str, state: MatchState) -> Dict[str, Any]:
    """The JSON frame pushed to the client when one slice of the state changes."""
    if kind == CANDIDATES:
        data: Any = [c.model_dump(mode="json") for c in state.candidates]
    elif kind == CONVERSATIONS:
        data = [c.model_dump(mode="json") for c in state.conversations]
    elif kind == NEW_MATCHES:
        data = [m.model_dump(mode="json") for m in state.new_matches]
    else:
        data = {
            "conversation_id": state.open_conversation_id,
            "messages": [m.model_dump(mode="json") for m in state.messages],
        }
    return {"type": kind, "data": data}


async def _handle(session: MatchSession, event: Dict[str, Any]) -> Dict[str, Any]:
    event_type = event.get("type")
    target = str(event.get("target_user_id") or "").strip()
    if event_type == "like" and target:
        result = await session.like(target)
        return {
            "type": "like_result",
            "target_user_id": target,
            "data": result.model_dump() if result else None,
        }
    if event_type == "pass" and target:
        return {"type": "pass_result", "target_user_id": target, "ok": await session.pass_user(target)}
    if event_type == "open_conversation":
        await session.open_conversation(event.get("conversation_id") or None)
        return {"type": "ack", "message": "conversation-opened"}
    if event_type == "reload":
        await session.load_candidates()
        await session.reload_conversations()
        await session.reload_new_matches()
        return {"type": "ack", "message": "reloaded"}
    return {"type": "ack", "message": "ignored"}


@router.websocket("/ws/session")
async def session_socket(websocket: WebSocket) -> None:
    try:
        user_id = user_id_from_token(websocket.query_params.get("token") or "")
    except AuthError as exc:
        LOGGER.warning("Session socket rejected: %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def push(kind: str, state: MatchState) -> None:
        await websocket.send_json(snapshot(kind, state))

    session = build_match_session(user_id, on_change=push)
    try:
        await websocket.send_json({"type": "ack", "message": "connected"})
        await session.start()
        while True:
            raw = await websocket.receive_text()
            try:
                event = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "ack", "message": "invalid-json"})
                continue
            if not isinstance(event, dict):
                await websocket.send_json({"type": "ack", "message": "ignored"})
                continue
            await websocket.send_json(await _handle(session, event))
    except WebSocketDisconnect:
        LOGGER.debug("Session socket closed for user=%s", user_id)
    finally:
        await session.close()


__all__ = ["router", "snapshot"]
