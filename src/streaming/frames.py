"""
Event-stream framing for chat replies.

Each frame is `data: <single-line JSON>` followed by a blank line; the stream
ends with the literal `data: [DONE]` line. FrameDecoder reassembles frames from
arbitrarily split byte chunks, holding any unterminated tail until the next
read.
"""

import codecs
import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "
DONE_PAYLOAD = "[DONE]"
DONE_FRAME = f"{FRAME_PREFIX}{DONE_PAYLOAD}\n\n".encode("utf-8")
STREAM_ERROR_MESSAGE = "Stream error"


class StreamFrame(BaseModel):
    """
    One event on the chat stream. Unknown fields are kept and ignored.

    The terminal marker is not a wire field: only the `[DONE]` line produces a
    frame whose `done` is true.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    chat_id: Optional[str] = Field(default=None, alias="chatId")
    content: Optional[str] = None
    title: Optional[str] = None
    error: Optional[str] = None
    _done: bool = PrivateAttr(default=False)

    @property
    def done(self) -> bool:
        return self._done

    @classmethod
    def terminal(cls) -> "StreamFrame":
        frame = cls()
        frame._done = True
        return frame

    def to_payload(self) -> dict[str, Any]:
        """The JSON object sent on the wire (unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


def encode_frame(frame: StreamFrame) -> bytes:
    """Serialize a frame as `data: <json>\\n\\n`."""
    if frame.done:
        return DONE_FRAME
    payload = json.dumps(frame.to_payload(), ensure_ascii=False, separators=(",", ":"))
    return f"{FRAME_PREFIX}{payload}\n\n".encode("utf-8")


def chat_id_frame(chat_id: str) -> bytes:
    return encode_frame(StreamFrame(chat_id=chat_id))


def content_frame(chunk: str) -> bytes:
    return encode_frame(StreamFrame(content=chunk))


def title_frame(title: str) -> bytes:
    return encode_frame(StreamFrame(title=title))


def error_frame(message: str = STREAM_ERROR_MESSAGE) -> bytes:
    return encode_frame(StreamFrame(error=message))


class FrameDecoder:
    """
    Incremental decoder for the chat event stream.

    Bytes are decoded as UTF-8 incrementally (a multi-byte character may span
    two reads) and split on newlines. Only complete lines are interpreted; the
    trailing partial line is buffered. Lines without the frame prefix (blank
    separators, comments) are skipped, as are payloads that are not valid JSON
    objects.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, data: bytes) -> list[StreamFrame]:
        """
        Consume a chunk of bytes.

        Args:
            data: Raw bytes as read from the transport

        Returns:
            Frames completed by this chunk, in stream order
        """
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[StreamFrame]:
        """Interpret whatever remains once the transport is exhausted."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder]) if remainder else []

    def _parse_lines(self, lines: list[str]) -> list[StreamFrame]:
        frames = []
        for line in lines:
            frame = self._parse_line(line.rstrip("\r"))
            if frame is not None:
                frames.append(frame)
        return frames

    def _parse_line(self, line: str) -> Optional[StreamFrame]:
        if not line.startswith(FRAME_PREFIX):
            return None

        payload = line[len(FRAME_PREFIX):]
        if payload == DONE_PAYLOAD:
            self.done = True
            return StreamFrame.terminal()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Skipping unparseable frame payload: {payload[:80]!r}")
            return None
        if not isinstance(data, dict):
            return None

        try:
            return StreamFrame.model_validate(data)
        except ValueError:
            logger.debug(f"Skipping malformed frame: {payload[:80]!r}")
            return None
