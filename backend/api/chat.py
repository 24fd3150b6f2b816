"""
Chat Stream Endpoint

POST /chat-stream sends one user message and streams the assistant reply as
Server-Sent Events. Authenticated turns are persisted; guest turns are not.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse

from backend.dependencies import (
    get_current_user,
    get_multiplexer_dependency,
    get_turn_service_dependency,
)
from backend.models.chat import ChatStreamRequest
from src.core.errors import BadRequest, SnowbasinError, Unauthorized, UpstreamFailure
from src.generation.chat_turn import ChatTurnService
from src.streaming.multiplexer import ChatStreamMultiplexer

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _plain_error(error: SnowbasinError) -> PlainTextResponse:
    return PlainTextResponse(error.message, status_code=error.status_code)


# ========== STREAMING CHAT ==========
@router.post(
    "/chat-stream",
    summary="Send streaming chat message",
    description="Send a message and stream the response in real-time (SSE)",
    tags=["Chat"],
    responses={
        400: {"description": "Message content is required"},
        401: {"description": "Unauthorized"},
        404: {"description": "Chat not found"},
    },
)
async def chat_stream(
    request: ChatStreamRequest,
    user_id: Optional[str] = Depends(get_current_user),
    turns: ChatTurnService = Depends(get_turn_service_dependency),
    multiplexer: ChatStreamMultiplexer = Depends(get_multiplexer_dependency),
):
    """
    Stream a chat reply.

    Frames are `data: <json>` lines: `{"chatId"}` first for a new chat, then
    `{"content"}` chunks, then `{"title"}` for a new chat, then `data: [DONE]`.
    Failures after the first frame arrive in-band as `{"error"}`.

    Args:
        request: Message, optional chat id and guest flag
        user_id: Caller identity (injected)
        turns: Turn service (injected)
        multiplexer: Stream multiplexer (injected)

    Returns:
        StreamingResponse with SSE events, or a plain-text error
    """
    try:
        # ===== VALIDATE =====
        if not request.content or not request.content.strip():
            raise BadRequest("Message content is required")

        # ===== PREPARE TURN =====
        if request.guest:
            logger.info("Streaming guest chat")
            turn = await turns.prepare_guest_turn(request.content)
        else:
            if user_id is None:
                raise Unauthorized()
            logger.info(f"Streaming chat for user {user_id} (chat={request.chat_id or 'new'})")
            turn = await turns.prepare_turn(user_id, request.chat_id, request.content)

    except SnowbasinError as e:
        if isinstance(e, UpstreamFailure):
            logger.error(f"Chat setup failed: {e}", exc_info=True)
            return _plain_error(UpstreamFailure())
        return _plain_error(e)
    except Exception as e:
        logger.error(f"Chat setup failed: {e}", exc_info=True)
        return _plain_error(UpstreamFailure())

    return StreamingResponse(
        multiplexer.stream(turn),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
