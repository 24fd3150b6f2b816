"""
Shared Chat Endpoint

Public, read-only access to chats whose owner has turned sharing on.
"""

import logging

from fastapi import APIRouter, Depends

from backend.dependencies import get_chat_store_dependency
from backend.models.chat import ErrorResponse, SharedChatResponse, SharedMessage
from src.core.errors import SnowbasinError, UpstreamFailure
from src.storage.chat_store import ChatStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Share"])


@router.get(
    "/share/{share_id}",
    response_model=SharedChatResponse,
    summary="Get shared chat",
    description="Public view of a shared chat (no authentication)",
    responses={404: {"model": ErrorResponse, "description": "Chat not found"}},
)
async def get_shared_chat(
    share_id: str,
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """
    Get a shared chat by its share token.

    Args:
        share_id: Share token
        store: Chat store (injected)

    Returns:
        SharedChatResponse with messages oldest first

    Raises:
        NotFound: Unknown token or sharing is off
    """
    try:
        chat, messages = store.get_shared_chat(share_id)
        return SharedChatResponse(
            title=chat.title,
            messages=[
                SharedMessage(role=m.role, content=m.content, created_at=m.created_at)
                for m in messages
            ],
        )

    except SnowbasinError:
        raise
    except Exception as e:
        logger.error(f"Get shared chat error for {share_id}: {e}", exc_info=True)
        raise UpstreamFailure()
