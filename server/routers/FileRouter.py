from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from server.dependencies.auth import get_current_user
from shared.models.bot import ContextFile

router = APIRouter(prefix="/bots/{bot_id}/files", tags=["files"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    bot_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user),
) -> ContextFile:
    """Attach a file to a bot. Ingestion of PDFs and text files runs in the background.

    Args:
        request (Request): FastAPI request (provides app.state.bot_service).
        bot_id (str): The bot to attach the file to.
        file (UploadFile): Multipart upload field "file".
        user_id (str): Authenticated principal.

    Returns:
        ContextFile: The stored file with ingestion_status pending (or skipped for photos).
    """
    data = await file.read()
    return await request.app.state.bot_service.do_upload(
        user_id,
        bot_id,
        file_name=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        data=data,
    )


@router.delete("/{file_id}")
async def delete_file(
    request: Request,
    bot_id: str,
    file_id: str,
    user_id: str = Depends(get_current_user),
) -> ContextFile:
    return await request.app.state.bot_service.do_remove_file(user_id, bot_id, file_id)
