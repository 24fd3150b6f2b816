"""
Tests for src.generation.llm and src.generation.prompt_builder.
"""

from src.generation.llm import OllamaChatModel
from src.generation.prompt_builder import ConversationMessage, PromptBuilder
from src.utilities.config import get_config


class FakeOllamaClient:
    """Stands in for ollama.AsyncClient."""

    def __init__(self, parts=None, title="Snow Report", fail_title=False):
        self.parts = parts if parts is not None else ["Fresh", "", " powder"]
        self.title = title
        self.fail_title = fail_title
        self.calls = []

    async def chat(self, model, messages, stream=False, options=None):
        self.calls.append({"model": model, "messages": messages, "stream": stream, "options": options})
        if stream:
            return self._stream()
        if self.fail_title:
            raise ConnectionError("ollama is down")
        return {"message": {"role": "assistant", "content": self.title}}

    async def _stream(self):
        for text in self.parts:
            yield {"message": {"role": "assistant", "content": text}}


async def test_stream_chat_yields_non_empty_chunks():
    client = FakeOllamaClient()
    model = OllamaChatModel(get_config(), client=client)

    chunks = [c async for c in model.stream_chat([ConversationMessage("user", "snow?")])]

    assert chunks == ["Fresh", " powder"]
    assert client.calls[0]["stream"] is True
    assert client.calls[0]["messages"][-1] == {"role": "user", "content": "snow?"}


async def test_grounding_goes_into_system_message():
    client = FakeOllamaClient()
    model = OllamaChatModel(get_config(), client=client)

    _ = [c async for c in model.stream_chat([ConversationMessage("user", "bus?")], "**Popular UTA Stops:**")]

    system = client.calls[0]["messages"][0]
    assert system["role"] == "system"
    assert "REAL-TIME DATA" in system["content"]
    assert "**Popular UTA Stops:**" in system["content"]
    assert len(client.calls[0]["messages"]) == 2


async def test_generate_title_cleans_model_output():
    model = OllamaChatModel(get_config(), client=FakeOllamaClient(title='"Title: Alta Snow Totals"\n'))

    assert await model.generate_title("How much snow at Alta?") == "Alta Snow Totals"


async def test_generate_title_falls_back_to_message():
    config = get_config()
    config.llm.title_max_length = 20
    model = OllamaChatModel(config, client=FakeOllamaClient(fail_title=True))

    title = await model.generate_title("What time does the first TRAX leave Draper?")

    assert title == "What time does th..."
    assert len(title) <= 20


def test_prompt_without_grounding_uses_plain_system_prompt():
    config = get_config()
    prompt = PromptBuilder(config).build_chat_prompt([ConversationMessage("user", "hi")], "  ")

    messages = prompt.to_messages()

    assert messages[0] == {"role": "system", "content": config.llm.system_prompt}
