"""
Prompt Builder for Snowbasin

Turns stored chat history plus optional real-time enrichment into the
role/content message list sent to the language model, and builds the
one-shot prompt used to title new chats.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from src.utilities.utils import ensure_config

if TYPE_CHECKING:
    from src.utilities.config import SnowbasinConfig


@dataclass
class ConversationMessage:
    """Represents a single message in conversation history"""

    role: str  # "user" or "assistant"
    content: str


@dataclass
class PromptComponents:
    """Components of a constructed prompt"""

    system_prompt: str
    grounding: str = ""
    history: List[ConversationMessage] = field(default_factory=list)

    def to_messages(self) -> List[dict]:
        """
        Convert to Ollama chat messages format.

        Real-time grounding is appended to the system message so the
        conversation turns themselves stay exactly as stored.

        Returns:
            List of message dictionaries for Ollama API
        """
        system_content = self.system_prompt
        if self.grounding:
            system_content = (
                f"{system_content}\n\n"
                "REAL-TIME DATA (fetched just now, use it to answer):\n"
                f"{self.grounding}"
            )

        messages = [{"role": "system", "content": system_content}]
        for msg in self.history:
            messages.append({"role": msg.role, "content": msg.content})
        return messages


TITLE_INSTRUCTIONS = (
    "Generate a short, descriptive title (at most 6 words) for a conversation "
    "that starts with the user's message below. Reply with the title only: "
    "no quotes, no trailing punctuation."
)


class PromptBuilder:
    """Builds chat and title prompts."""

    def __init__(self, config: Optional["SnowbasinConfig"] = None):
        """
        Initialize prompt builder.

        Args:
            config: Snowbasin configuration object
        """
        self.config = ensure_config(config)
        self.llm_config = self.config.llm

    def build_chat_prompt(
        self, history: List[ConversationMessage], grounding: str = ""
    ) -> PromptComponents:
        """
        Build a conversational prompt.

        Args:
            history: Ordered conversation turns, ending with the new user message
            grounding: Real-time enrichment text ("" for none)

        Returns:
            PromptComponents ready for to_messages()
        """
        return PromptComponents(
            system_prompt=self.llm_config.system_prompt,
            grounding=grounding.strip(),
            history=list(history),
        )

    def build_title_prompt(self, first_message: str) -> List[dict]:
        """Messages for the non-streaming title call."""
        return [
            {"role": "system", "content": TITLE_INSTRUCTIONS},
            {"role": "user", "content": first_message},
        ]

    def clean_title(self, raw: str, fallback: str) -> str:
        """Normalize a model-generated title, falling back to the message text."""
        title = raw.strip().splitlines()[0] if raw.strip() else ""
        title = title.strip().strip("\"'").strip()
        if title.lower().startswith("title:"):
            title = title[len("title:"):].strip()
        if not title:
            title = fallback.strip()
        return self.truncate_title(title)

    def truncate_title(self, text: str) -> str:
        limit = self.llm_config.title_max_length
        text = " ".join(text.split())
        if len(text) <= limit:
            return text
        return text[: limit - 3].rstrip() + "..."
