"""
Generation module for Snowbasin.

This module builds prompts, streams replies from the language model and
sequences the persistence steps of a chat turn.
"""

from src.generation.prompt_builder import (
    ConversationMessage,
    PromptBuilder,
    PromptComponents,
)
from src.generation.llm import ChatModel, OllamaChatModel
from src.generation.chat_turn import ChatTurnService, PreparedTurn

__all__ = [
    # Prompt building
    "PromptBuilder",
    "PromptComponents",
    "ConversationMessage",
    # Model access
    "ChatModel",
    "OllamaChatModel",
    # Turn sequencing
    "ChatTurnService",
    "PreparedTurn",
]
