"""
Pytest configuration and shared fixtures.
"""

from typing import AsyncIterator, Optional

import pytest
from fastapi.testclient import TestClient

from src.enrichment.transit_enricher import TransitEnricher
from src.enrichment.uta_client import ServiceAlert, StopArrival
from src.generation.chat_turn import ChatTurnService
from src.generation.prompt_builder import ConversationMessage
from src.storage.chat_store import ChatStore
from src.streaming.frames import FrameDecoder, StreamFrame
from src.utilities.config import SnowbasinConfig, get_config

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"


# ========== FAKES ==========
class FakeChatModel:
    """Chat model that replays fixed chunks."""

    def __init__(
        self,
        chunks: Optional[list[str]] = None,
        title: str = "Next Bus Times",
        fail_after: Optional[int] = None,
    ):
        self.chunks = chunks if chunks is not None else ["Hello", ", ", "skier!"]
        self.title = title
        self.fail_after = fail_after
        self.stream_calls: list[tuple[list[ConversationMessage], str]] = []
        self.title_calls: list[str] = []

    async def stream_chat(
        self, history: list[ConversationMessage], grounding: str = ""
    ) -> AsyncIterator[str]:
        self.stream_calls.append((list(history), grounding))
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("model connection dropped")
            yield chunk
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise RuntimeError("model connection dropped")

    async def generate_title(self, first_message: str) -> str:
        self.title_calls.append(first_message)
        return self.title


class FakeTransitProvider:
    """Transit provider that counts lookups."""

    def __init__(self, fail_alerts: bool = False, fail_arrivals: bool = False):
        self.fail_alerts = fail_alerts
        self.fail_arrivals = fail_arrivals
        self.alert_calls = 0
        self.arrival_calls: list[str] = []
        self.alerts = [ServiceAlert(header="Detour on 2 South", route_name="Route 2")]
        self.arrivals = [
            StopArrival(route_name="Blue Line", headsign="Draper", minutes_away=4),
            StopArrival(route_name="Green Line", headsign="Airport", minutes_away=9),
        ]

    @property
    def total_calls(self) -> int:
        return self.alert_calls + len(self.arrival_calls)

    async def get_service_alerts(self) -> list[ServiceAlert]:
        self.alert_calls += 1
        if self.fail_alerts:
            raise ConnectionError("alerts unavailable")
        return list(self.alerts)

    async def get_stop_arrivals(self, stop_id: str) -> list[StopArrival]:
        self.arrival_calls.append(stop_id)
        if self.fail_arrivals:
            raise ConnectionError("arrivals unavailable")
        return list(self.arrivals)


# ========== HELPERS ==========
def decode_stream(body: bytes) -> list[StreamFrame]:
    """Decode a complete event-stream body into frames."""
    decoder = FrameDecoder()
    return decoder.feed(body) + decoder.flush()


def auth_headers(token: str = ALICE_TOKEN) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ========== FIXTURES ==========
@pytest.fixture
def config() -> SnowbasinConfig:
    config = get_config()
    config.storage.database_path = ":memory:"
    config.auth.tokens = {ALICE_TOKEN: "alice", BOB_TOKEN: "bob"}
    return config


@pytest.fixture
def store():
    store = ChatStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def provider() -> FakeTransitProvider:
    return FakeTransitProvider()


@pytest.fixture
def enricher(provider, config) -> TransitEnricher:
    return TransitEnricher(provider, config=config.transit)


@pytest.fixture
def turns(store, model, enricher) -> ChatTurnService:
    return ChatTurnService(store=store, model=model, enricher=enricher)


@pytest.fixture
def api_client(config, store, model, enricher):
    """FastAPI test client wired to in-memory storage and fakes."""
    from backend import dependencies
    from backend.app import app

    app.dependency_overrides[dependencies.get_config_dependency] = lambda: config
    app.dependency_overrides[dependencies.get_chat_store_dependency] = lambda: store
    app.dependency_overrides[dependencies.get_chat_model_dependency] = lambda: model
    app.dependency_overrides[dependencies.get_enricher_dependency] = lambda: enricher

    yield TestClient(app)

    app.dependency_overrides.clear()
