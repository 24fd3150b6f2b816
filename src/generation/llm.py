"""
Language-model client for Snowbasin.

Wraps the Ollama async API with the two calls the chat flow needs: a
token-streaming chat completion and a short non-streaming title completion.
"""

import logging
from typing import AsyncIterator, Optional, Protocol

import ollama

from src.generation.prompt_builder import ConversationMessage, PromptBuilder
from src.utilities.config import SnowbasinConfig

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    """Text-generation backend used by the stream multiplexer."""

    def stream_chat(
        self, history: list[ConversationMessage], grounding: str = ""
    ) -> AsyncIterator[str]: ...

    async def generate_title(self, first_message: str) -> str: ...


class OllamaChatModel:
    """
    Chat model backed by an Ollama server.

    Responsibilities:
        - Prompt assembly (system prompt + grounding + history)
        - Token streaming
        - Title generation with a plain-text fallback
    """

    def __init__(self, config: SnowbasinConfig, client: Optional[ollama.AsyncClient] = None):
        """
        Initialize the chat model.

        Args:
            config: Snowbasin configuration
            client: Optional pre-built Ollama client
        """
        self.config = config
        self.llm_config = config.llm
        self.prompt_builder = PromptBuilder(config)
        self.client = client or ollama.AsyncClient(
            host=self.llm_config.base_url, timeout=self.llm_config.timeout
        )

        logger.info(f"Initialized OllamaChatModel (model={self.llm_config.model})")

    def _options(self) -> dict:
        options = {
            "temperature": self.llm_config.temperature,
            "top_p": self.llm_config.top_p,
        }
        if self.llm_config.max_tokens is not None:
            options["num_predict"] = self.llm_config.max_tokens
        return options

    async def stream_chat(
        self, history: list[ConversationMessage], grounding: str = ""
    ) -> AsyncIterator[str]:
        """
        Stream response text chunks for the conversation.

        Args:
            history: Ordered conversation turns ending with the user's message
            grounding: Real-time enrichment text

        Yields:
            Non-empty text chunks in generation order
        """
        prompt = self.prompt_builder.build_chat_prompt(history, grounding)
        messages = prompt.to_messages()
        logger.debug(
            f"Streaming chat completion ({len(history)} turns, grounding={bool(prompt.grounding)})"
        )

        stream = await self.client.chat(
            model=self.llm_config.model,
            messages=messages,
            stream=True,
            options=self._options(),
        )
        async for part in stream:
            chunk = part["message"]["content"]
            if chunk:
                yield chunk

    async def generate_title(self, first_message: str) -> str:
        """
        Generate a short chat title from the first user message.

        Falls back to the truncated message when the model call fails.
        """
        try:
            response = await self.client.chat(
                model=self.llm_config.model,
                messages=self.prompt_builder.build_title_prompt(first_message),
                stream=False,
                options={"temperature": 0.3},
            )
            raw = response["message"]["content"]
        except Exception as e:
            logger.warning(f"Title generation failed, using message text: {e}")
            raw = ""

        return self.prompt_builder.clean_title(raw, fallback=first_message)
