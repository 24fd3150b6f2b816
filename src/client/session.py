"""
Chat client session.

Drives one conversation view against the Snowbasin API: sends a message with
an optimistic user entry, consumes the framed reply incrementally, and commits,
aborts or rolls back the turn.

    idle -> sending -> streaming -> committed | aborted | errored -> idle

Only one turn is in flight at a time; send() while busy is a no-op. abort()
is a user-directed stop that keeps the optimistic entry; any other failure
removes it.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import httpx

from src.client.transcript import ChatState, Transcript, TranscriptEntry, temp_id
from src.streaming.frames import FrameDecoder, StreamFrame

logger = logging.getLogger(__name__)

UpdateCallback = Callable[["ChatClientSession"], None]


class ChatRequestError(Exception):
    """The server rejected the chat request before streaming began."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Chat request failed ({status_code}): {detail}")


class CancellationToken:
    """Abort handle for the in-flight turn."""

    def __init__(self):
        self.cancelled = False
        self._task: Optional[asyncio.Task] = None

    def bind(self, task: asyncio.Task) -> None:
        self._task = task

    def cancel(self) -> None:
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()


class ChatClientSession:
    """
    Per-conversation client state machine.

    Attributes:
        transcript: Messages shown to the user
        chat_id: Active chat (None until the server assigns one)
        state: Current ChatState
        streaming_content: Reply text received so far in the current turn
        stream_error: Message from an in-band error frame, if any
        last_error: Exception that errored the last turn, if any
        last_outcome: Terminal state of the last turn
        chats: Chat list from the last refresh
    """

    guest = False

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        """
        Initialize a session.

        Args:
            base_url: API base URL
            token: Bearer token identifying the user
            http_client: Optional shared client (not closed by the session)
            on_update: Called after every visible state change, including each content frame
        """
        self.base_url = base_url
        self.token = token
        self.on_update = on_update
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(10.0, read=None)
        )

        self.transcript = Transcript()
        self.chat_id: Optional[str] = None
        self.state = ChatState.IDLE
        self.streaming_content = ""
        self.stream_error: Optional[str] = None
        self.last_error: Optional[BaseException] = None
        self.last_outcome: Optional[ChatState] = None
        self.chats: list[dict[str, Any]] = []

        self._cancel: Optional[CancellationToken] = None
        self._needs_refresh = False

    async def __aenter__(self) -> "ChatClientSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    # ========== STATE ==========

    @property
    def is_loading(self) -> bool:
        return self.state in (ChatState.SENDING, ChatState.STREAMING)

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self)

    def _set_state(self, state: ChatState) -> None:
        self.state = state
        self._notify()

    # ========== TURNS ==========

    def _build_payload(self, content: str) -> dict[str, Any]:
        return {"chatId": self.chat_id, "content": content}

    async def send(self, content: str) -> ChatState:
        """
        Send a message and consume the streamed reply.

        Args:
            content: Message text

        Returns:
            The turn's terminal state (COMMITTED, ABORTED or ERRORED), or the
            current state unchanged if a turn was already in flight
        """
        if self.is_loading:
            logger.debug("Send ignored: a turn is already in flight")
            return self.state

        user_entry = TranscriptEntry(id=temp_id("temp"), role="user", content=content)
        self.transcript.append(user_entry)
        self.streaming_content = ""
        self.stream_error = None
        self.last_error = None
        self._needs_refresh = False
        self._set_state(ChatState.SENDING)

        token = CancellationToken()
        self._cancel = token
        task = asyncio.create_task(self._run_turn(content))
        token.bind(task)

        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if not token.cancelled or (current is not None and current.cancelling()):
                # The caller itself was cancelled, even if abort() also ran
                self.transcript.remove(user_entry.id)
                self._finish(ChatState.ERRORED)
                raise
            logger.info("Request aborted")
            outcome = ChatState.ABORTED
        except Exception as e:
            logger.error(f"Send message error: {e}")
            self.last_error = e
            self.transcript.remove(user_entry.id)
            outcome = ChatState.ERRORED
        else:
            if self.streaming_content:
                self.transcript.append(
                    TranscriptEntry(
                        id=temp_id("assistant"), role="assistant", content=self.streaming_content
                    )
                )
            outcome = ChatState.COMMITTED

        self._finish(outcome)

        if outcome == ChatState.COMMITTED and self._needs_refresh:
            await self.refresh_chats()
        return outcome

    def _finish(self, outcome: ChatState) -> None:
        self.last_outcome = outcome
        self.streaming_content = ""
        self._cancel = None
        self.state = outcome
        self._notify()
        self._set_state(ChatState.IDLE)

    async def _run_turn(self, content: str) -> None:
        async with self.http.stream(
            "POST", "/chat-stream", json=self._build_payload(content), headers=self._headers()
        ) as response:
            if not response.is_success:
                body = await response.aread()
                raise ChatRequestError(response.status_code, body.decode("utf-8", "replace"))

            self._set_state(ChatState.STREAMING)
            decoder = FrameDecoder()
            async for data in response.aiter_bytes():
                for frame in decoder.feed(data):
                    self._apply_frame(frame)
            for frame in decoder.flush():
                self._apply_frame(frame)

    def _apply_frame(self, frame: StreamFrame) -> None:
        if frame.done:
            return

        if frame.chat_id and not self.guest:
            self.chat_id = frame.chat_id
            self._needs_refresh = True

        if frame.content:
            self.streaming_content += frame.content
            self._notify()

        if frame.title and not self.guest:
            self._needs_refresh = True

        if frame.error:
            logger.warning(f"Server reported stream error: {frame.error}")
            self.stream_error = frame.error
            self._notify()

    def abort(self) -> None:
        """Stop the in-flight turn, keeping the user's message."""
        if self._cancel is not None:
            self._cancel.cancel()

    async def edit_message(self, message_id: str, new_content: str) -> ChatState:
        """
        Replace a sent user message: drop it and everything after, then send the new text.

        Returns:
            The new turn's terminal state, or the current state if nothing was done
        """
        if self.is_loading:
            return self.state
        if not self.transcript.truncate_before(message_id):
            logger.warning(f"Cannot edit unknown message: {message_id}")
            return self.state
        self._notify()
        return await self.send(new_content)

    async def resend(self, content: str) -> ChatState:
        """Send an existing message's text again as a new turn."""
        return await self.send(content)

    # ========== CHAT LIST / SELECTION ==========

    async def refresh_chats(self) -> list[dict[str, Any]]:
        """Refetch the caller's chat list."""
        try:
            response = await self.http.get("/chats", headers=self._headers())
            response.raise_for_status()
            self.chats = response.json()
            self._notify()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch chats: {e}")
        return self.chats

    async def select_chat(self, chat_id: Optional[str]) -> bool:
        """
        Make a chat active and reload its transcript from the server.

        Args:
            chat_id: Chat to open, or None to start a fresh conversation

        Returns:
            True if the transcript was loaded (or cleared)
        """
        self.chat_id = chat_id
        if chat_id is None:
            self.transcript.clear()
            self._notify()
            return True

        try:
            response = await self.http.get(f"/chats/{chat_id}", headers=self._headers())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch messages: {e}")
            return False

        self.transcript.replace([TranscriptEntry.from_api(m) for m in data.get("messages", [])])
        self._notify()
        return True


class GuestChatClientSession(ChatClientSession):
    """
    Session without an account: nothing is persisted and no chat id is ever
    assigned, so there is no chat list to refresh or chat to select.
    """

    guest = True

    def _headers(self) -> dict[str, str]:
        return {}

    def _build_payload(self, content: str) -> dict[str, Any]:
        return {"content": content, "guest": True}

    async def refresh_chats(self) -> list[dict[str, Any]]:
        return []

    async def select_chat(self, chat_id: Optional[str]) -> bool:
        if chat_id is not None:
            raise ValueError("Guest sessions cannot open stored chats")
        self.transcript.clear()
        self._notify()
        return True
