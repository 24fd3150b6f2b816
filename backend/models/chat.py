"""
Pydantic models for chat-related API endpoints.

Request/response models for the chat stream, chat CRUD and shared chats.
"""

from typing import Optional

from pydantic import BaseModel, Field

from src.storage.chat_store import Chat, Message


# ========== STREAM REQUEST ==========
class ChatStreamRequest(BaseModel):
    """Request model for sending a chat message."""

    chat_id: Optional[str] = Field(
        default=None,
        alias="chatId",
        description="Existing chat ID (a new chat is created if omitted)",
    )
    content: Optional[str] = Field(
        default=None,
        description="User message content",
        examples=["When is the next TRAX at Temple Square?"],
    )
    guest: bool = Field(
        default=False,
        description="Guest mode: no authentication, nothing is saved",
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "chatId": None,
                "content": "When is the next TRAX at Temple Square?",
                "guest": False,
            }
        }


# ========== CHAT MODELS ==========
class ChatInfo(BaseModel):
    """Model for chat information."""

    id: str = Field(..., description="Unique chat identifier")
    user_id: str = Field(..., description="Owner identifier")
    title: str = Field(..., description="Chat title")
    shared: bool = Field(default=False, description="Whether the chat is publicly shared")
    share_id: Optional[str] = Field(default=None, description="Public share token")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")

    @classmethod
    def from_chat(cls, chat: Chat) -> "ChatInfo":
        return cls(**chat.to_dict())

    class Config:
        json_schema_extra = {
            "example": {
                "id": "85c619ca-cd1e-4567-89ab-cdef01234567",
                "user_id": "alice",
                "title": "Next TRAX at Temple Square",
                "shared": False,
                "share_id": None,
                "created_at": "2026-01-25T14:00:00+00:00",
                "updated_at": "2026-01-25T14:30:00+00:00",
            }
        }


class MessageInfo(BaseModel):
    """Model for a stored chat message."""

    id: str = Field(..., description="Message identifier")
    chat_id: str = Field(..., description="Owning chat identifier")
    role: str = Field(..., description="Message role (user or assistant)", pattern="^(user|assistant)$")
    content: str = Field(..., description="Message content")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")

    @classmethod
    def from_message(cls, message: Message) -> "MessageInfo":
        return cls(**message.to_dict())


class ChatDetailResponse(ChatInfo):
    """Response model for a chat with its messages."""

    messages: list[MessageInfo] = Field(default_factory=list, description="Messages, oldest first")


class UpdateChatRequest(BaseModel):
    """Request model for renaming or sharing a chat."""

    title: Optional[str] = Field(default=None, min_length=1, description="New chat title")
    shared: Optional[bool] = Field(default=None, description="Share or unshare the chat")
    share_id: Optional[str] = Field(
        default=None,
        alias="shareId",
        description="Explicit share token (minted by the server if omitted)",
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Ski bus to Snowbird",
                "shared": True,
            }
        }


class DeleteChatResponse(BaseModel):
    """Response model for chat deletion."""

    success: bool = Field(default=True, description="Deletion status")


# ========== SHARE MODELS ==========
class SharedMessage(BaseModel):
    """Public view of a message."""

    role: str
    content: str
    created_at: str = Field(..., serialization_alias="createdAt")


class SharedChatResponse(BaseModel):
    """Public view of a shared chat."""

    title: str
    messages: list[SharedMessage]

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Next TRAX at Temple Square",
                "messages": [
                    {
                        "role": "user",
                        "content": "When is the next TRAX at Temple Square?",
                        "createdAt": "2026-01-25T14:30:00+00:00",
                    }
                ],
            }
        }


class ErrorResponse(BaseModel):
    """Error body returned by JSON endpoints."""

    error: str
