"""
Health Check Endpoint
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from backend.dependencies import get_chat_store_dependency, get_config_dependency
from src.storage.chat_store import ChatStore
from src.utilities.config import SnowbasinConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=dict[str, Any], summary="Service health")
async def health(
    config: SnowbasinConfig = Depends(get_config_dependency),
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """Report service status and storage reachability."""
    try:
        stats = store.get_database_stats()
        storage = {"status": "ok", **stats}
    except Exception as e:
        logger.warning(f"Health check: storage unavailable: {e}")
        storage = {"status": "unavailable"}

    return {
        "status": "healthy" if storage["status"] == "ok" else "degraded",
        "version": config.version,
        "model": config.llm.model,
        "transit_enrichment": config.transit.enabled,
        "storage": storage,
    }
