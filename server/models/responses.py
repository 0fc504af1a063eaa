from pydantic import BaseModel

from shared.models.bot import ChatMessage


class HealthResponse(BaseModel):
    status: str
    version: str
    embed: bool
    index: bool
    llm: bool


class ChatHistoryResponse(BaseModel):
    messages: list[ChatMessage]
    total: int


class ClearChatResponse(BaseModel):
    message: str
    deleted_count: int
