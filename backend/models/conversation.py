"""Conversation data models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


class Role(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat turn stored in the conversation log."""
    id: Union[int, str]  # assigned by the store
    content: str
    role: Role
    page_number: int
    created_at: datetime
