from fastapi import APIRouter, Depends, Query, Request, status

from server.dependencies.auth import get_current_user
from server.models.requests import ChatRequest
from server.models.responses import ChatHistoryResponse, ClearChatResponse
from shared.models.bot import ChatTurn

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    request: Request,
    body: ChatRequest,
    user_id: str = Depends(get_current_user),
) -> ChatTurn:
    """Send a message to a bot and return both persisted messages.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): JSON body with message and bot_id.
        user_id (str): Authenticated principal.

    Returns:
        ChatTurn: The user message and the bot reply.
    """
    return await request.app.state.chat_service.do_send(user_id, body.bot_id, body.message)


@router.get("")
async def get_history(
    request: Request,
    bot_id: str = Query(default=""),
    user_id: str = Depends(get_current_user),
) -> ChatHistoryResponse:
    messages = await request.app.state.chat_service.do_history(user_id, bot_id)
    return ChatHistoryResponse(messages=messages, total=len(messages))


@router.delete("")
async def clear_history(
    request: Request,
    bot_id: str = Query(default=""),
    user_id: str = Depends(get_current_user),
) -> ClearChatResponse:
    deleted = await request.app.state.chat_service.do_clear(user_id, bot_id)
    return ClearChatResponse(message="Chat history cleared successfully", deleted_count=deleted)
