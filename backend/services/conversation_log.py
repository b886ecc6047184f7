"""Append-only conversation log for the reading assistant."""
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from supabase import AsyncClient, acreate_client

from config import SUPABASE_URL, SUPABASE_KEY, RECENT_MESSAGE_LIMIT
from models.conversation import Message, Role

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"


class ConversationLogError(Exception):
    """Raised when the message store cannot be read or written."""


class ConversationLog:
    """
    Ordered message history.

    Messages are ordered by insertion; the log is append-only except for a
    full clear.
    """

    async def append(self, content: str, role: Role, page_number: int) -> Union[int, str]:
        raise NotImplementedError

    async def query_recent(self, limit: int = RECENT_MESSAGE_LIMIT) -> List[Message]:
        raise NotImplementedError

    async def delete_all(self) -> None:
        raise NotImplementedError


class InMemoryConversationLog(ConversationLog):
    """Process-local log, used when no remote store is configured."""

    def __init__(self):
        self._messages: List[Message] = []
        self._ids = itertools.count(1)

    async def append(self, content: str, role: Role, page_number: int) -> int:
        message = Message(
            id=next(self._ids),
            content=content,
            role=Role(role),
            page_number=page_number,
            created_at=datetime.now(timezone.utc),
        )
        self._messages.append(message)
        return message.id

    async def query_recent(self, limit: int = RECENT_MESSAGE_LIMIT) -> List[Message]:
        if limit <= 0:
            return []
        return list(self._messages[-limit:])

    async def delete_all(self) -> None:
        self._messages.clear()


class SupabaseConversationLog(ConversationLog):
    """
    Message log stored in a Supabase ``messages`` table.

    Expected schema::

        create table messages (
            id bigint generated always as identity primary key,
            content text not null,
            role text not null check (role in ('user', 'assistant')),
            page_number integer not null,
            created_at timestamptz not null default now()
        );

    The identity column gives insertion order, so it is used for sorting
    instead of ``created_at``.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        logger.info("SupabaseConversationLog initialized")

    async def append(self, content: str, role: Role, page_number: int) -> Union[int, str]:
        """
        Insert one message.

        Returns:
            The id assigned by the store
        """
        role = Role(role)
        try:
            result = await self.client.table(MESSAGES_TABLE).insert({
                "content": content,
                "role": role.value,
                "page_number": page_number,
            }).execute()
        except Exception as e:
            logger.error(f"Error appending {role.value} message: {e}", exc_info=True)
            raise ConversationLogError(f"Failed to append message: {e}") from e

        if not result.data:
            logger.error(f"Insert of {role.value} message returned no row")
            raise ConversationLogError("Insert returned no row")

        message_id = result.data[0]["id"]
        logger.info(f"Appended {role.value} message {message_id} (page {page_number})")
        return message_id

    async def query_recent(self, limit: int = RECENT_MESSAGE_LIMIT) -> List[Message]:
        """
        Fetch the most recent messages.

        Args:
            limit: Maximum number of messages

        Returns:
            Up to ``limit`` messages, oldest first
        """
        if limit <= 0:
            return []
        try:
            result = await (
                self.client.table(MESSAGES_TABLE)
                .select("*")
                .order("id", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error querying recent messages: {e}", exc_info=True)
            raise ConversationLogError(f"Failed to query messages: {e}") from e

        rows = result.data or []
        return [self._to_message(row) for row in reversed(rows)]

    async def delete_all(self) -> None:
        """Delete every message. PostgREST refuses unfiltered deletes, hence ``id >= 0``."""
        try:
            await self.client.table(MESSAGES_TABLE).delete().gte("id", 0).execute()
        except Exception as e:
            logger.error(f"Error clearing messages: {e}", exc_info=True)
            raise ConversationLogError(f"Failed to clear messages: {e}") from e
        logger.info("Cleared all messages")

    def _to_message(self, row: Dict[str, Any]) -> Message:
        return Message(
            id=row["id"],
            content=row["content"],
            role=Role(row["role"]),
            page_number=row["page_number"],
            created_at=self._parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _parse_timestamp(timestamp_str: str) -> datetime:
        """
        Parse timestamp string from Supabase, handling various formats.

        Supabase can return timestamps with varying microsecond precision,
        which Python's fromisoformat() can't always handle. This method
        normalizes the fractional part to six digits.

        Args:
            timestamp_str: Timestamp string from Supabase

        Returns:
            datetime object
        """
        # Replace 'Z' with '+00:00' for timezone
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        # Format: 2026-02-21T02:08:26.18976+00:00
        if "." in timestamp_str:
            head, fraction = timestamp_str.split(".", 1)
            tz = ""
            for sign in ("+", "-"):
                if sign in fraction:
                    fraction, tz_part = fraction.split(sign, 1)
                    tz = sign + tz_part
                    break
            fraction = fraction[:6].ljust(6, "0")
            timestamp_str = f"{head}.{fraction}{tz}"

        return datetime.fromisoformat(timestamp_str)


async def create_conversation_log(
    url: Optional[str] = None,
    key: Optional[str] = None
) -> ConversationLog:
    """
    Build the conversation log for this deployment.

    Uses Supabase when credentials are configured, otherwise an in-memory log.
    """
    url = url or SUPABASE_URL
    key = key or SUPABASE_KEY
    if not url or not key:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; chat history will not survive restarts")
        return InMemoryConversationLog()

    client = await acreate_client(url, key)
    return SupabaseConversationLog(client)
