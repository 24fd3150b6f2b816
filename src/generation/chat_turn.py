"""
Turn sequencing around a streamed reply.

Before the model is called: create the chat if needed, store the user's
message, load the ordered history and fetch enrichment. After the stream is
exhausted: store the assistant reply and either title the new chat or bump
its timestamp. Failures before streaming propagate; failures after it are
logged so content already delivered is not retracted.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.enrichment.transit_enricher import TransitEnricher
from src.generation.llm import ChatModel
from src.generation.prompt_builder import ConversationMessage
from src.storage.chat_store import ChatStore

logger = logging.getLogger(__name__)


@dataclass
class PreparedTurn:
    """Everything the stream needs for one user message."""

    content: str
    history: list[ConversationMessage]
    grounding: str = ""
    user_id: Optional[str] = None
    chat_id: Optional[str] = None
    is_new_chat: bool = False
    guest: bool = False


class ChatTurnService:
    """Owns the persistence steps of a chat turn."""

    def __init__(self, store: ChatStore, model: ChatModel, enricher: TransitEnricher):
        self.store = store
        self.model = model
        self.enricher = enricher

    async def prepare_turn(
        self, user_id: Optional[str], chat_id: Optional[str], content: str
    ) -> PreparedTurn:
        """
        Persist the user's message and assemble model context.

        Args:
            user_id: Authenticated caller
            chat_id: Existing chat, or None to start a new one
            content: The user's message

        Returns:
            PreparedTurn for the authenticated stream

        Raises:
            Unauthorized: No caller identity
            NotFound: chat_id is not owned by the caller
            StorageError: The store failed (no model call is made)
        """
        is_new_chat = False
        if not chat_id:
            chat = self.store.create_chat(user_id)
            chat_id = chat.id
            is_new_chat = True

        self.store.add_message(user_id, chat_id, "user", content)

        history = [
            ConversationMessage(role=m.role, content=m.content)
            for m in self.store.list_messages(user_id, chat_id)
        ]
        grounding = await self.enricher.try_enrich(content)

        logger.info(
            f"Prepared turn for chat {chat_id} (new={is_new_chat}, "
            f"history={len(history)}, grounding={len(grounding)} chars)"
        )
        return PreparedTurn(
            content=content,
            history=history,
            grounding=grounding,
            user_id=user_id,
            chat_id=chat_id,
            is_new_chat=is_new_chat,
        )

    async def prepare_guest_turn(self, content: str) -> PreparedTurn:
        """Assemble context for a guest message; nothing is stored."""
        grounding = await self.enricher.try_enrich(content)
        return PreparedTurn(
            content=content,
            history=[ConversationMessage(role="user", content=content)],
            grounding=grounding,
            guest=True,
        )

    async def finalize_turn(self, turn: PreparedTurn, full_response: str) -> Optional[str]:
        """
        Persist the assistant reply and title or touch the chat.

        Args:
            turn: The prepared turn
            full_response: Concatenated streamed text

        Returns:
            The new title for a new chat, otherwise None
        """
        if turn.guest:
            return None

        try:
            self.store.add_message(turn.user_id, turn.chat_id, "assistant", full_response)
        except Exception as e:
            logger.error(
                f"Failed to save assistant message for chat {turn.chat_id}: {e}", exc_info=True
            )

        if turn.is_new_chat:
            title = await self.model.generate_title(turn.content)
            try:
                self.store.update_title(turn.user_id, turn.chat_id, title)
            except Exception as e:
                logger.error(f"Failed to save title for chat {turn.chat_id}: {e}", exc_info=True)
            return title

        try:
            self.store.touch(turn.user_id, turn.chat_id)
        except Exception as e:
            logger.error(f"Failed to update timestamp for chat {turn.chat_id}: {e}", exc_info=True)
        return None
