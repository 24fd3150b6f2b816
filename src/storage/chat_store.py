"""
Chat Store for Snowbasin

Persistence gateway for chats and messages with SQLite storage.
Every operation is scoped to an owner identity: a missing identity raises
Unauthorized, and a chat that is absent or owned by someone else raises NotFound.
"""

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from src.core.errors import BadRequest, NotFound, StorageError, Unauthorized
from src.utilities.utils import ensure_directory

logger = logging.getLogger(__name__)

MESSAGE_ROLES = ("user", "assistant")


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Chat:
    """A conversation owned by one user."""

    id: str
    user_id: str
    title: str
    shared: bool
    share_id: Optional[str]
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert chat to dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Chat":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            shared=bool(row["shared"]),
            share_id=row["share_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class Message:
    """A single immutable chat message."""

    id: str
    chat_id: str
    role: str
    content: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert message to dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Message":
        return cls(
            id=row["id"],
            chat_id=row["chat_id"],
            role=row["role"],
            content=row["content"],
            created_at=row["created_at"],
        )


class ChatStore:
    """
    Manages chats and messages with SQLite persistence.

    Features:
        - Owner-scoped create/read/update/delete of chats
        - Append-only messages ordered by creation time
        - Share tokens for public read access
        - Cascade deletion of messages through foreign keys
    """

    def __init__(
        self,
        database_path: str | Path = ":memory:",
        default_title: str = "New Chat",
        share_id_length: int = 8,
    ):
        """
        Initialize chat store.

        Args:
            database_path: SQLite file path, or ":memory:" for a private in-memory database
            default_title: Placeholder title for newly created chats
            share_id_length: Length of minted share tokens
        """
        self.database_path = str(database_path)
        self.default_title = default_title
        self.share_id_length = share_id_length
        self._lock = threading.Lock()

        if self.database_path != ":memory:":
            ensure_directory(str(Path(self.database_path).parent))

        # One connection shared across request threads; access is serialized by _lock
        self._conn = sqlite3.connect(self.database_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._init_database()

        logger.info(f"Chat store initialized with SQLite: {self.database_path}")

    def _init_database(self) -> None:
        """Initialize SQLite database schema."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chats (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT 'New Chat',
                    shared BOOLEAN NOT NULL DEFAULT 0,
                    share_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    chat_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (chat_id) REFERENCES chats(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_chat
                ON messages(chat_id, created_at)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_chats_user_updated
                ON chats(user_id, updated_at DESC)
            """)

            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_chats_share_id
                ON chats(share_id) WHERE share_id IS NOT NULL
            """)

        logger.debug("SQLite database schema initialized")

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run a block in one transaction, translating sqlite errors to StorageError."""
        with self._lock:
            cursor = self._conn.cursor()
            try:
                yield cursor
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error(f"SQLite operation failed: {e}")
                raise StorageError(f"Storage operation failed: {e}") from e
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cursor.close()

    @staticmethod
    def _require_owner(user_id: Optional[str]) -> str:
        if not user_id:
            raise Unauthorized()
        return user_id

    def _fetch_owned_chat(self, cursor: sqlite3.Cursor, user_id: str, chat_id: str) -> Chat:
        cursor.execute(
            "SELECT * FROM chats WHERE id = ? AND user_id = ?",
            (chat_id, user_id),
        )
        row = cursor.fetchone()
        if row is None:
            raise NotFound()
        return Chat.from_row(row)

    # ========== CHATS ==========

    def create_chat(self, user_id: Optional[str], title: Optional[str] = None) -> Chat:
        """
        Create a new chat.

        Args:
            user_id: Owner identity
            title: Initial title (placeholder title if None)

        Returns:
            The created Chat
        """
        user_id = self._require_owner(user_id)
        now = utc_now()
        chat = Chat(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title or self.default_title,
            shared=False,
            share_id=None,
            created_at=now,
            updated_at=now,
        )

        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO chats (id, user_id, title, shared, share_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (chat.id, chat.user_id, chat.title, chat.shared, chat.share_id,
                 chat.created_at, chat.updated_at),
            )

        logger.info(f"Created chat: {chat.id} (user={user_id})")
        return chat

    def get_chat(self, user_id: Optional[str], chat_id: str) -> Chat:
        """Retrieve a chat owned by the caller."""
        user_id = self._require_owner(user_id)
        with self._transaction() as cursor:
            return self._fetch_owned_chat(cursor, user_id, chat_id)

    def list_chats(self, user_id: Optional[str]) -> list[Chat]:
        """
        List the caller's chats, most recently updated first.

        Args:
            user_id: Owner identity

        Returns:
            List of Chat objects
        """
        user_id = self._require_owner(user_id)
        with self._transaction() as cursor:
            cursor.execute(
                """
                SELECT * FROM chats
                WHERE user_id = ?
                ORDER BY updated_at DESC, rowid DESC
                """,
                (user_id,),
            )
            return [Chat.from_row(row) for row in cursor.fetchall()]

    def update_title(self, user_id: Optional[str], chat_id: str, title: str) -> Chat:
        """Set a chat's title and bump its updated timestamp."""
        return self.update_chat(user_id, chat_id, title=title)

    def touch(self, user_id: Optional[str], chat_id: str) -> None:
        """Bump a chat's updated timestamp."""
        user_id = self._require_owner(user_id)
        with self._transaction() as cursor:
            cursor.execute(
                "UPDATE chats SET updated_at = ? WHERE id = ? AND user_id = ?",
                (utc_now(), chat_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFound()

    def update_chat(
        self,
        user_id: Optional[str],
        chat_id: str,
        title: Optional[str] = None,
        shared: Optional[bool] = None,
        share_id: Optional[str] = None,
    ) -> Chat:
        """
        Update title and/or sharing state of a chat.

        Sharing without an explicit share_id keeps the chat's existing token,
        minting a new one only when the chat has never been shared.

        Args:
            user_id: Owner identity
            chat_id: Chat identifier
            title: New title (unchanged if None)
            shared: New shared flag (unchanged if None)
            share_id: Explicit share token to store

        Returns:
            The updated Chat
        """
        user_id = self._require_owner(user_id)

        with self._transaction() as cursor:
            chat = self._fetch_owned_chat(cursor, user_id, chat_id)

            if title is not None:
                chat.title = title
            if shared is not None:
                chat.shared = shared
                if share_id and share_id != chat.share_id:
                    cursor.execute(
                        "SELECT 1 FROM chats WHERE share_id = ? AND id != ?", (share_id, chat_id)
                    )
                    if cursor.fetchone() is not None:
                        raise BadRequest("Share ID already in use")
                    chat.share_id = share_id
                elif shared and not chat.share_id:
                    chat.share_id = self._mint_share_id(cursor)
            chat.updated_at = utc_now()

            cursor.execute(
                """
                UPDATE chats
                SET title = ?, shared = ?, share_id = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (chat.title, chat.shared, chat.share_id, chat.updated_at, chat_id, user_id),
            )

        logger.info(f"Updated chat {chat_id}: title={title!r}, shared={shared}")
        return chat

    def _mint_share_id(self, cursor: sqlite3.Cursor) -> str:
        """Generate a share token not used by any other chat."""
        while True:
            candidate = uuid.uuid4().hex[: self.share_id_length]
            cursor.execute("SELECT 1 FROM chats WHERE share_id = ?", (candidate,))
            if cursor.fetchone() is None:
                return candidate

    def delete_chat(self, user_id: Optional[str], chat_id: str) -> None:
        """Delete a chat (messages are removed by ON DELETE CASCADE)."""
        user_id = self._require_owner(user_id)
        with self._transaction() as cursor:
            cursor.execute(
                "DELETE FROM chats WHERE id = ? AND user_id = ?",
                (chat_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFound()

        logger.info(f"Deleted chat: {chat_id}")

    def get_shared_chat(self, share_id: str) -> tuple[Chat, list[Message]]:
        """
        Load a publicly shared chat by share token (no owner required).

        Raises:
            NotFound: If no chat has this token or the chat is not shared
        """
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT * FROM chats WHERE share_id = ? AND shared = 1",
                (share_id,),
            )
            row = cursor.fetchone()
            if row is None:
                raise NotFound()
            chat = Chat.from_row(row)
            messages = self._select_messages(cursor, chat.id)

        return chat, messages

    # ========== MESSAGES ==========

    def add_message(
        self, user_id: Optional[str], chat_id: str, role: str, content: str
    ) -> Message:
        """
        Append a message to a chat owned by the caller.

        Args:
            user_id: Owner identity
            chat_id: Chat identifier
            role: "user" or "assistant"
            content: Message text

        Returns:
            The created Message
        """
        user_id = self._require_owner(user_id)
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {role}")

        message = Message(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            role=role,
            content=content,
            created_at=utc_now(),
        )

        with self._transaction() as cursor:
            self._fetch_owned_chat(cursor, user_id, chat_id)
            cursor.execute(
                """
                INSERT INTO messages (id, chat_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (message.id, message.chat_id, message.role, message.content, message.created_at),
            )

        logger.debug(f"Added {role} message {message.id} to chat {chat_id}")
        return message

    def list_messages(self, user_id: Optional[str], chat_id: str) -> list[Message]:
        """Messages of a chat owned by the caller, oldest first."""
        user_id = self._require_owner(user_id)
        with self._transaction() as cursor:
            self._fetch_owned_chat(cursor, user_id, chat_id)
            return self._select_messages(cursor, chat_id)

    @staticmethod
    def _select_messages(cursor: sqlite3.Cursor, chat_id: str) -> list[Message]:
        cursor.execute(
            """
            SELECT * FROM messages
            WHERE chat_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (chat_id,),
        )
        return [Message.from_row(row) for row in cursor.fetchall()]

    # ========== HOUSEKEEPING ==========

    def get_database_stats(self) -> dict[str, Any]:
        """
        Get database statistics.

        Returns:
            Dictionary with database stats
        """
        with self._transaction() as cursor:
            cursor.execute("SELECT COUNT(*) FROM chats")
            total_chats = cursor.fetchone()[0]
            cursor.execute("SELECT COUNT(*) FROM messages")
            total_messages = cursor.fetchone()[0]

        return {
            "total_chats": total_chats,
            "total_messages": total_messages,
            "database_path": self.database_path,
            "persistence": "sqlite",
        }

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()
        logger.debug("Chat store connection closed")
