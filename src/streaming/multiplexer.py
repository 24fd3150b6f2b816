"""
Streaming response multiplexer.

Interleaves control frames (chat id, title) with the model's content chunks
on a single event stream. Ordering on the wire is fixed:

    chatId (new chats only) -> content* -> title (new chats only) -> [DONE]

Persistence of the assistant reply happens after the model stream is
exhausted and before the title frame. Any failure once streaming has begun
becomes one error frame; [DONE] is always the last frame.
"""

import logging
import time
from typing import AsyncIterator

from src.generation.chat_turn import ChatTurnService, PreparedTurn
from src.generation.llm import ChatModel
from src.streaming.frames import (
    DONE_FRAME,
    chat_id_frame,
    content_frame,
    error_frame,
    title_frame,
)

logger = logging.getLogger(__name__)


class ChatStreamMultiplexer:
    """Produces the framed byte stream for one prepared turn."""

    def __init__(self, model: ChatModel, turns: ChatTurnService):
        self.model = model
        self.turns = turns

    async def stream(self, turn: PreparedTurn) -> AsyncIterator[bytes]:
        """
        Stream a turn as encoded frames.

        Guest turns are a pure passthrough of content frames; authenticated
        turns add the chat id/title frames and persistence.

        Args:
            turn: Turn prepared by ChatTurnService

        Yields:
            Encoded frames, ending with the [DONE] sentinel
        """
        start_time = time.time()
        full_response = ""
        chunks = 0

        try:
            if turn.is_new_chat and not turn.guest:
                yield chat_id_frame(turn.chat_id)

            async for chunk in self.model.stream_chat(turn.history, turn.grounding):
                full_response += chunk
                chunks += 1
                yield content_frame(chunk)

            title = await self.turns.finalize_turn(turn, full_response)
            if title is not None:
                yield title_frame(title)

            logger.info(
                f"Stream completed for chat {turn.chat_id or 'guest'}: "
                f"{chunks} chunks, {len(full_response)} chars, {time.time() - start_time:.3f}s"
            )
        except Exception as e:
            label = "Guest stream" if turn.guest else f"Stream for chat {turn.chat_id}"
            logger.error(f"{label} failed: {e}", exc_info=True)
            yield error_frame()

        yield DONE_FRAME
