from fastapi import APIRouter, Depends, Request, status

from server.dependencies.auth import get_current_user
from server.models.requests import BotCreateRequest, BotUpdateRequest
from shared.models.bot import Bot

router = APIRouter(prefix="/bots", tags=["bots"])


@router.get("")
async def list_bots(request: Request, user_id: str = Depends(get_current_user)) -> list[Bot]:
    return await request.app.state.bot_service.do_list(user_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bot(request: Request, body: BotCreateRequest, user_id: str = Depends(get_current_user)) -> Bot:
    """Create a bot. name, description and initial_context must be non-empty."""
    return await request.app.state.bot_service.do_create(
        user_id, body.name, body.description, body.initial_context
    )


@router.get("/{bot_id}")
async def get_bot(request: Request, bot_id: str, user_id: str = Depends(get_current_user)) -> Bot:
    return await request.app.state.bot_service.do_get(user_id, bot_id)


@router.put("/{bot_id}")
async def update_bot(
    request: Request,
    bot_id: str,
    body: BotUpdateRequest,
    user_id: str = Depends(get_current_user),
) -> Bot:
    """Partially update a bot. Empty fields are left unchanged."""
    return await request.app.state.bot_service.do_update(
        user_id,
        bot_id,
        name=body.name,
        description=body.description,
        initial_context=body.initial_context,
        context_file_ids=body.context_file_ids,
    )


@router.delete("/{bot_id}")
async def delete_bot(request: Request, bot_id: str, user_id: str = Depends(get_current_user)) -> dict:
    """Delete a bot with its conversations, index entries and files."""
    await request.app.state.bot_service.do_delete(user_id, bot_id)
    return {"message": "Bot deleted successfully"}
