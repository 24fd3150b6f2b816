"""
Chat API Endpoints

Owner-scoped chat management:
- List chats (most recently updated first)
- Fetch a chat with its messages
- Rename / share / unshare
- Delete (messages cascade)

Errors are raised as SnowbasinError and rendered as {"error": ...} by the app.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from backend.dependencies import get_chat_store_dependency, get_current_user
from backend.models.chat import (
    ChatDetailResponse,
    ChatInfo,
    DeleteChatResponse,
    ErrorResponse,
    MessageInfo,
    UpdateChatRequest,
)
from src.core.errors import SnowbasinError, UpstreamFailure
from src.storage.chat_store import ChatStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Chats"])

ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Unauthorized"},
    404: {"model": ErrorResponse, "description": "Chat not found"},
    500: {"model": ErrorResponse, "description": "Internal Server Error"},
}


@router.get(
    "",
    response_model=list[ChatInfo],
    summary="List chats",
    description="List the caller's chats, most recently updated first",
    responses=ERROR_RESPONSES,
)
async def list_chats(
    user_id: Optional[str] = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """
    List chats owned by the caller.

    Returns:
        List of ChatInfo
    """
    try:
        chats = store.list_chats(user_id)
        logger.info(f"Listed {len(chats)} chats for user {user_id}")
        return [ChatInfo.from_chat(chat) for chat in chats]

    except SnowbasinError:
        raise
    except Exception as e:
        logger.error(f"Get chats error: {e}", exc_info=True)
        raise UpstreamFailure()


@router.get(
    "/{chat_id}",
    response_model=ChatDetailResponse,
    summary="Get chat",
    description="Get a chat and its messages in creation order",
    responses=ERROR_RESPONSES,
)
async def get_chat(
    chat_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """
    Get a chat with messages.

    Args:
        chat_id: Chat identifier
        user_id: Caller identity (injected)
        store: Chat store (injected)

    Returns:
        ChatDetailResponse

    Raises:
        Unauthorized: No caller identity
        NotFound: Chat missing or owned by someone else
    """
    try:
        chat = store.get_chat(user_id, chat_id)
        messages = store.list_messages(user_id, chat_id)
        return ChatDetailResponse(
            **chat.to_dict(),
            messages=[MessageInfo.from_message(m) for m in messages],
        )

    except SnowbasinError:
        raise
    except Exception as e:
        logger.error(f"Get chat error for {chat_id}: {e}", exc_info=True)
        raise UpstreamFailure()


@router.patch(
    "/{chat_id}",
    response_model=ChatInfo,
    summary="Update chat",
    description="Rename a chat and/or change its sharing state",
    responses=ERROR_RESPONSES,
)
async def update_chat(
    chat_id: str,
    request: UpdateChatRequest,
    user_id: Optional[str] = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """
    Update chat title and/or sharing.

    Sharing without a shareId keeps an already-assigned token, so sharing
    twice yields the same link.

    Args:
        chat_id: Chat identifier
        request: Fields to change
        user_id: Caller identity (injected)
        store: Chat store (injected)

    Returns:
        Updated ChatInfo
    """
    try:
        chat = store.update_chat(
            user_id,
            chat_id,
            title=request.title,
            shared=request.shared,
            share_id=request.share_id,
        )
        return ChatInfo.from_chat(chat)

    except SnowbasinError:
        raise
    except Exception as e:
        logger.error(f"Update chat error for {chat_id}: {e}", exc_info=True)
        raise UpstreamFailure()


@router.delete(
    "/{chat_id}",
    response_model=DeleteChatResponse,
    summary="Delete chat",
    description="Delete a chat and all of its messages",
    responses=ERROR_RESPONSES,
)
async def delete_chat(
    chat_id: str,
    user_id: Optional[str] = Depends(get_current_user),
    store: ChatStore = Depends(get_chat_store_dependency),
):
    """Delete a chat owned by the caller."""
    try:
        store.delete_chat(user_id, chat_id)
        return DeleteChatResponse(success=True)

    except SnowbasinError:
        raise
    except Exception as e:
        logger.error(f"Delete chat error for {chat_id}: {e}", exc_info=True)
        raise UpstreamFailure()
