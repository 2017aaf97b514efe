"""
Upload endpoints

Chat messages with files attached, and the download route that serves any
stored upload (attachments and company logos). Files are written before the
message row; if the row fails, the files are removed again.
"""
import mimetypes
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from teamdesk.core.config import settings
from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, PrivateMessage, GroupMessage, MessageAttachment
from teamdesk.schemas.message import (
    AttachmentResponse,
    PrivateMessageWithAttachments,
    GroupMessageWithAttachments,
)
from teamdesk.schemas.user import UserBrief
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.api.v1.endpoints.messages import get_user_or_404, publish_private_message
from teamdesk.api.v1.endpoints.channels import require_poster, publish_group_message
from teamdesk.services.file_storage import StoredFile, file_storage


router = APIRouter()


def check_file_count(files: List[UploadFile]) -> None:
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_UPLOAD_FILES} files per message",
        )


def attachments_for(stored: List[StoredFile], uploader: User) -> List[MessageAttachment]:
    return [
        MessageAttachment(
            file_name=item.file_name,
            original_name=item.original_name,
            content_type=item.content_type,
            size=item.size,
            uploaded_by_id=uploader.id,
        )
        for item in stored
    ]


async def commit_or_discard(db: AsyncSession, stored: List[StoredFile]) -> None:
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await file_storage.discard(stored)
        raise


@router.post(
    "/private-message/{user_id}",
    response_model=PrivateMessageWithAttachments,
    status_code=status.HTTP_201_CREATED,
)
async def upload_private_message(
    user_id: str,
    files: List[UploadFile] = File(...),
    content: str = Form(""),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    check_file_count(files)
    recipient = await get_user_or_404(db, user_id)

    stored = await file_storage.save_all(files)
    message = PrivateMessage(
        sender_id=current_user.id,
        recipient_id=recipient.id,
        content=content,
        attachments=attachments_for(stored, current_user),
    )
    db.add(message)
    await commit_or_discard(db, stored)

    logger.info(f"[Uploads] {current_user.username} sent {len(stored)} file(s) to {recipient.username}")
    response = PrivateMessageWithAttachments(
        id=message.id,
        content=message.content,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        created_at=message.created_at,
        read_at=message.read_at,
        sender=UserBrief.model_validate(current_user),
        attachments=[AttachmentResponse.model_validate(a) for a in message.attachments],
    )
    await publish_private_message(db, message, current_user, recipient, response)
    return response


@router.post(
    "/group-message/{channel_id}",
    response_model=GroupMessageWithAttachments,
    status_code=status.HTTP_201_CREATED,
)
async def upload_group_message(
    channel_id: str,
    files: List[UploadFile] = File(...),
    content: str = Form(""),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    check_file_count(files)
    await require_poster(db, channel_id, current_user)

    stored = await file_storage.save_all(files)
    message = GroupMessage(
        channel_id=channel_id,
        sender_id=current_user.id,
        content=content,
        attachments=attachments_for(stored, current_user),
    )
    db.add(message)
    await commit_or_discard(db, stored)

    response = GroupMessageWithAttachments(
        id=message.id,
        channel_id=channel_id,
        sender_id=current_user.id,
        content=message.content,
        created_at=message.created_at,
        sender=UserBrief.model_validate(current_user),
        attachments=[AttachmentResponse.model_validate(a) for a in message.attachments],
    )
    await publish_group_message(db, response)
    return response


@router.get("/file/{file_name}")
async def download_file(file_name: str):
    """Stored names are unguessable, so the route is open for <img> tags"""
    path = file_storage.path_for(file_name)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    media_type, _ = mimetypes.guess_type(path.name)
    return FileResponse(
        path=str(path),
        filename=path.name.split("-", 1)[-1],
        media_type=media_type or "application/octet-stream",
    )
