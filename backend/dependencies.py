"""
Snowbasin Backend Dependencies

Shared dependency instances for FastAPI routes.
Uses singleton pattern for the store, model client and transit client.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.enrichment.transit_enricher import TransitEnricher
from src.enrichment.uta_client import UTAClient
from src.generation.chat_turn import ChatTurnService
from src.generation.llm import ChatModel, OllamaChatModel
from src.storage.chat_store import ChatStore
from src.streaming.multiplexer import ChatStreamMultiplexer
from src.utilities.config import SnowbasinConfig, get_config

logger = logging.getLogger(__name__)


# ========== GLOBAL INSTANCES (SINGLETONS) ==========
_config: Optional[SnowbasinConfig] = None
_chat_store: Optional[ChatStore] = None
_chat_model: Optional[ChatModel] = None
_enricher: Optional[TransitEnricher] = None

bearer_scheme = HTTPBearer(auto_error=False)


# ========== INITIALIZATION & CLEANUP ==========
def initialize_resources(config: Optional[SnowbasinConfig] = None):
    """
    Initialize shared resources on application startup.

    Called by FastAPI lifespan event.
    """
    global _config, _chat_store, _chat_model, _enricher

    logger.info("Initializing shared resources...")

    # 1. Load configuration
    _config = config or get_config(from_env=True)
    logger.info(f"✓ Configuration loaded (version: {_config.version})")

    # 2. Open chat store
    _chat_store = ChatStore(
        database_path=_config.storage.database_path,
        default_title=_config.chat.default_title,
        share_id_length=_config.chat.share_id_length,
    )
    logger.info("✓ Chat store initialized")

    # 3. Model client (no connection is made until the first request)
    _chat_model = OllamaChatModel(config=_config)
    logger.info("✓ Chat model initialized")

    # 4. Transit enrichment
    _enricher = TransitEnricher(UTAClient(_config.transit), config=_config.transit)
    logger.info("✓ Transit enricher initialized")

    logger.info("✅ All resources initialized")


def cleanup_resources():
    """
    Cleanup resources on application shutdown.

    Called by FastAPI lifespan event.
    """
    global _config, _chat_store, _chat_model, _enricher

    logger.info("Cleaning up resources...")

    if _chat_store is not None:
        _chat_store.close()

    # Reset all singletons
    _config = None
    _chat_store = None
    _chat_model = None
    _enricher = None

    logger.info("✅ Resources cleaned up")


# ========== DEPENDENCY FUNCTIONS ==========
def get_config_dependency() -> SnowbasinConfig:
    """
    Dependency: Get configuration instance.

    Returns:
        SnowbasinConfig instance
    """
    global _config

    if _config is None:
        # Lazy initialization
        _config = get_config(from_env=True)

    return _config


def get_chat_store_dependency(
    config: SnowbasinConfig = Depends(get_config_dependency),
) -> ChatStore:
    """
    Dependency: Get chat store instance.

    Returns:
        ChatStore instance
    """
    global _chat_store

    if _chat_store is None:
        _chat_store = ChatStore(
            database_path=config.storage.database_path,
            default_title=config.chat.default_title,
            share_id_length=config.chat.share_id_length,
        )

    return _chat_store


def get_chat_model_dependency(
    config: SnowbasinConfig = Depends(get_config_dependency),
) -> ChatModel:
    """
    Dependency: Get chat model instance.

    Returns:
        ChatModel instance
    """
    global _chat_model

    if _chat_model is None:
        _chat_model = OllamaChatModel(config=config)
        logger.info("Chat model lazy-loaded successfully")

    return _chat_model


def get_enricher_dependency(
    config: SnowbasinConfig = Depends(get_config_dependency),
) -> TransitEnricher:
    """
    Dependency: Get transit enricher instance.

    Returns:
        TransitEnricher instance
    """
    global _enricher

    if _enricher is None:
        _enricher = TransitEnricher(UTAClient(config.transit), config=config.transit)

    return _enricher


def get_turn_service_dependency(
    store: ChatStore = Depends(get_chat_store_dependency),
    model: ChatModel = Depends(get_chat_model_dependency),
    enricher: TransitEnricher = Depends(get_enricher_dependency),
) -> ChatTurnService:
    """Dependency: Turn sequencing service (cheap, built per request)."""
    return ChatTurnService(store=store, model=model, enricher=enricher)


def get_multiplexer_dependency(
    model: ChatModel = Depends(get_chat_model_dependency),
    turns: ChatTurnService = Depends(get_turn_service_dependency),
) -> ChatStreamMultiplexer:
    """Dependency: Stream multiplexer (cheap, built per request)."""
    return ChatStreamMultiplexer(model=model, turns=turns)


# ========== AUTHENTICATION ==========
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: SnowbasinConfig = Depends(get_config_dependency),
) -> Optional[str]:
    """
    Dependency: Resolve the caller's identity from a bearer token.

    Tokens are mapped to user ids by SNOWBASIN_AUTH_TOKENS. Unknown or missing
    tokens resolve to None; routes decide whether that is an error.

    Returns:
        User id, or None for anonymous callers
    """
    if credentials is None:
        return None

    user_id = config.auth.tokens.get(credentials.credentials)
    if user_id is None:
        logger.warning("Rejected unknown bearer token")
    return user_id

