"""
HTTP routes for the blog API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from myblog.auth import Principal
from myblog.contacts import ContactService
from myblog.db import to_iso, utcnow
from myblog.dependencies import (
    get_contact_service,
    get_media_service,
    get_post_service,
    get_principal,
    get_support_service,
)
from myblog.media import CACHE_CONTROL, IncomingFile, MediaService
from myblog.posts import PostService
from myblog.schemas import (
    ContactInput,
    ContactResponse,
    DeletedResponse,
    HealthResponse,
    MediaFileResponse,
    MediaUploadResponse,
    MessageResponse,
    PostInput,
    PostResponse,
    SupportCreatedResponse,
    SupportMessageInput,
    SupportMessageResponse,
)
from myblog.support import SupportService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="Server is running", timestamp=to_iso(utcnow()))


# Posts


@router.get("/posts", response_model=list[PostResponse])
def list_posts(service: PostService = Depends(get_post_service)):
    return [PostResponse(**post.as_dict()) for post in service.list_public()]


@router.get("/posts/user/{user_id}", response_model=list[PostResponse])
def list_user_posts(
    user_id: str,
    principal: Principal = Depends(get_principal),
    service: PostService = Depends(get_post_service),
):
    """Only the user themselves may list their posts."""
    posts = service.list_by_author(user_id, principal)
    return [PostResponse(**post.as_dict()) for post in posts]


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(post_id: str, service: PostService = Depends(get_post_service)):
    return PostResponse(**service.get_by_id(post_id).as_dict())


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    payload: PostInput,
    principal: Principal = Depends(get_principal),
    service: PostService = Depends(get_post_service),
):
    return PostResponse(**service.create(principal, payload).as_dict())


@router.put("/posts/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    payload: PostInput,
    principal: Principal = Depends(get_principal),
    service: PostService = Depends(get_post_service),
):
    return PostResponse(**service.update(principal, post_id, payload).as_dict())


@router.delete("/posts/{post_id}", response_model=DeletedResponse)
def delete_post(
    post_id: str,
    principal: Principal = Depends(get_principal),
    service: PostService = Depends(get_post_service),
):
    deleted_id = service.delete(principal, post_id)
    return DeletedResponse(message="Post deleted successfully", id=deleted_id)


# Contacts


@router.get("/contacts", response_model=list[ContactResponse])
def list_contacts(service: ContactService = Depends(get_contact_service)):
    return [ContactResponse(**contact.as_dict()) for contact in service.list_public()]


@router.get("/contacts/admin", response_model=list[ContactResponse])
def list_contacts_admin(
    principal: Principal = Depends(get_principal),
    service: ContactService = Depends(get_contact_service),
):
    contacts = service.list_admin(principal)
    return [ContactResponse(**contact.as_dict()) for contact in contacts]


@router.post("/contacts", response_model=ContactResponse, status_code=201)
def create_contact(
    payload: ContactInput,
    principal: Principal = Depends(get_principal),
    service: ContactService = Depends(get_contact_service),
):
    return ContactResponse(**service.create(principal, payload).as_dict())


@router.put("/contacts/{contact_id}", response_model=ContactResponse)
def update_contact(
    contact_id: str,
    payload: ContactInput,
    principal: Principal = Depends(get_principal),
    service: ContactService = Depends(get_contact_service),
):
    return ContactResponse(**service.update(principal, contact_id, payload).as_dict())


@router.delete(
    "/contacts/{contact_id}",
    response_model=DeletedResponse,
    response_model_exclude_none=True,
)
def delete_contact(
    contact_id: str,
    principal: Principal = Depends(get_principal),
    service: ContactService = Depends(get_contact_service),
):
    service.delete(principal, contact_id)
    return DeletedResponse(message="Contact deleted successfully")


# Support messages


@router.post("/support", response_model=SupportCreatedResponse, status_code=201)
def create_support_message(
    payload: SupportMessageInput,
    service: SupportService = Depends(get_support_service),
):
    record = service.create(payload)
    return SupportCreatedResponse(
        id=record.id,
        message="Support message sent successfully",
        telegramSent=record.telegram_sent,
    )


@router.get("/support", response_model=list[SupportMessageResponse])
def list_support_messages(
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    messages = service.list_recent(principal)
    return [SupportMessageResponse(**message.as_dict()) for message in messages]


# Media


@router.post("/media/upload", response_model=MediaUploadResponse, status_code=201)
async def upload_media(
    media: Optional[list[UploadFile]] = File(None),
    principal: Principal = Depends(get_principal),
    service: MediaService = Depends(get_media_service),
):
    # Read one byte past the limit so oversize files are detectable without
    # buffering all of them.
    limit = service.max_file_bytes + 1
    files = [
        IncomingFile(
            filename=upload.filename or "",
            content_type=upload.content_type,
            data=await upload.read(limit),
        )
        for upload in media or []
    ]
    # Storage writes block; keep them off the event loop.
    stored = await run_in_threadpool(service.upload, principal, files)
    return MediaUploadResponse(
        message="Files uploaded successfully",
        files=[MediaFileResponse(**item.as_dict()) for item in stored],
    )


@router.get("/media/file/{filename}")
def get_media_file(
    filename: str, service: MediaService = Depends(get_media_service)
):
    data, content_type = service.open(filename)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.delete("/media/file/{filename}", response_model=MessageResponse)
def delete_media_file(
    filename: str,
    principal: Principal = Depends(get_principal),
    service: MediaService = Depends(get_media_service),
):
    service.delete(principal, filename)
    return MessageResponse(message="File deleted successfully")
