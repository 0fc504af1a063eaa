"""Pydantic models for bots, their context files and chat messages.

Hierarchy:
  ContextFile: an uploaded reference document owned by exactly one bot.
  Bot:         persona plus ordered context files, owned by one user.
  BotPatch:    partial update applied by the owner.
  BotUpdate:   the updated bot plus the files the update dropped.
  ChatMessage: one persisted user or bot message of a conversation.
  ChatTurn:    the user message and bot reply written by one turn.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FileType(str, Enum):
    PHOTO = "photo"
    PDF = "pdf"
    OTHER = "other"


class IngestionStatus(str, Enum):
    PENDING = "pending"
    INDEXED = "indexed"
    EMPTY = "empty"
    FAILED = "failed"
    SKIPPED = "skipped"


class ContextFile(BaseModel):
    """Reference document attached to a bot.

    vector_ids records every index entry ingestion wrote for this file so
    that removing the file can delete exactly those entries.
    """

    id: str = Field(default_factory=_new_id)
    file_name: str
    file_path: str
    file_type: FileType
    file_size: int
    mime_type: str
    uploaded_at: datetime = Field(default_factory=utc_now)
    vector_ids: list[str] = []
    ingestion_status: IngestionStatus = IngestionStatus.PENDING


class Bot(BaseModel):
    """A persona bot. owner_id is the principal that may read, update and delete it."""

    id: str = Field(default_factory=_new_id)
    owner_id: str
    name: str
    description: str
    initial_context: str
    context_files: list[ContextFile] = []
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def has_documents(self) -> bool:
        return len(self.context_files) > 0

    def reorder_files(self, file_ids: list[str]) -> list[ContextFile]:
        """Keep only the files named by file_ids, in that order. Returns the dropped files.

        Unknown and repeated ids are ignored. The kept records are the current
        ones, so ingestion results written in the meantime survive.
        """
        current = {context_file.id: context_file for context_file in self.context_files}
        self.context_files = [current[file_id] for file_id in dict.fromkeys(file_ids) if file_id in current]
        kept = {context_file.id for context_file in self.context_files}
        return [context_file for context_file in current.values() if context_file.id not in kept]


class BotPatch(BaseModel):
    """Partial bot update. Empty strings are ignored.

    context_file_ids is applied by the store with Bot.reorder_files, against
    the stored files at the moment of the update.
    """

    name: str | None = None
    description: str | None = None
    initial_context: str | None = None
    context_file_ids: list[str] | None = None

    def to_update(self) -> dict:
        update: dict = {}
        if self.name:
            update["name"] = self.name
        if self.description:
            update["description"] = self.description
        if self.initial_context:
            update["initial_context"] = self.initial_context
        return update


class BotUpdate(BaseModel):
    bot: Bot
    dropped_files: list[ContextFile] = []


class ChatMessage(BaseModel):
    """A single message of the conversation between user_id and bot_id. Never mutated."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    bot_id: str
    message: str
    is_user: bool
    timestamp: datetime = Field(default_factory=utc_now)


class ChatTurn(BaseModel):
    """Result of one chat turn: the persisted user message and the persisted bot reply."""

    user_message: ChatMessage
    bot_message: ChatMessage
