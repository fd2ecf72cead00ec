# Housing assistant endpoints: HTTP question/answer and a WebSocket chat with a typing indicator.
# No login required; the assistant only serves scripted FAQ answers.
from __future__ import annotations

import asyncio
import json
import logging
import os

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .. import assistant, schemas

router = APIRouter()
ws_router = APIRouter()
logger = logging.getLogger("rentwise.assistant")

# Pause before the bot answers on the WebSocket, mirroring the widget's "typing..." state
REPLY_DELAY_SECONDS = float(os.getenv("ASSISTANT_REPLY_DELAY_SECONDS", "1.0"))


@router.get("/assistant", response_model=schemas.AssistantIntro)
def assistant_intro() -> schemas.AssistantIntro:
    """Opening message and the quick-question buttons shown under it."""
    return schemas.AssistantIntro(
        greeting=schemas.AssistantMessage(type="bot", text=assistant.GREETING),
        quick_questions=list(assistant.QUICK_QUESTIONS),
    )


@router.post("/assistant/messages", response_model=schemas.AssistantReply)
def ask_assistant(payload: schemas.AssistantAsk) -> schemas.AssistantReply:
    reply, matched = assistant.answer(payload.text)
    logger.info("assistant.ask", extra={"matched": matched})
    return schemas.AssistantReply(
        question=schemas.AssistantMessage(type="user", text=payload.text),
        answer=schemas.AssistantMessage(type="bot", text=reply),
        matched=matched,
    )


@ws_router.websocket("/assistant")
async def assistant_chat(websocket: WebSocket) -> None:
    """
    WS assistant chat.
    - On connect: server sends {"type":"bot","text":<greeting>,"quick_questions":[...]}
    - Client -> Server: {"text": "..."} (1..1000 after trim)
    - Server -> Client: {"type":"typing"} then {"type":"bot","text":...,"matched":bool}
    - Rate limit: per-connection 1 msg/s, burst 5
    """
    await websocket.accept()
    limiter = assistant.TokenBucket(rate=1.0, capacity=5)
    logger.info("assistant.ws.connected")
    await websocket.send_text(
        json.dumps(
            {
                "type": "bot",
                "text": assistant.GREETING,
                "quick_questions": list(assistant.QUICK_QUESTIONS),
            }
        )
    )

    try:
        while True:
            raw = await websocket.receive_text()

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                await _send_ws_error(websocket, "invalid_json", "Payload must be JSON")
                continue

            text = payload.get("text") if isinstance(payload, dict) else None
            if not isinstance(text, str):
                await _send_ws_error(websocket, "invalid_payload", "Missing 'text' string")
                continue

            text = text.strip()
            if not (1 <= len(text) <= 1000):
                await _send_ws_error(websocket, "invalid_text", "Text length must be 1..1000")
                continue

            if not limiter.consume(1.0):
                await _send_ws_error(websocket, "rate_limited", "Too many messages")
                continue

            await websocket.send_text(json.dumps({"type": "typing"}))
            if REPLY_DELAY_SECONDS > 0:
                await asyncio.sleep(REPLY_DELAY_SECONDS)

            reply, matched = assistant.answer(text)
            await websocket.send_text(json.dumps({"type": "bot", "text": reply, "matched": matched}))
            logger.info("assistant.ws.message", extra={"matched": matched})
    except WebSocketDisconnect:
        logger.info("assistant.ws.disconnected")


async def _send_ws_error(ws: WebSocket, code: str, message: str) -> None:
    await ws.send_text(json.dumps({"type": "error", "code": code, "message": message}))
