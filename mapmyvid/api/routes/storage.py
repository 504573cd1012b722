"""
Map My Vid API: Object storage routes.

Every object operation is confined to the caller's own prefix,
``videos/{user_id}/``; object names are single path segments.
"""
from __future__ import annotations

import os
import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from mapmyvid.api.deps import get_current_user_id, get_storage
from mapmyvid.core.config import get_settings
from mapmyvid.core.exceptions import ValidationError
from mapmyvid.schemas.schemas import ObjectExists, StorageHealth, StoredObject
from mapmyvid.services.storage.storage_service import StorageService, user_prefix, video_key

router = APIRouter(prefix="/storage", tags=["Storage"])
settings = get_settings()


@router.get("/health", response_model=StorageHealth)
async def storage_health(
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    return await storage.health()


@router.get("/list", response_model=List[StoredObject])
async def list_objects(
    max_keys: int = Query(1000, ge=1, le=1000),
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    """The caller's stored objects."""
    return await storage.list(prefix=user_prefix(str(user_id)), max_keys=max_keys)


@router.get("/metadata/{name}", response_model=StoredObject)
async def object_metadata(
    name: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    return await storage.metadata(video_key(str(user_id), name))


@router.get("/exists/{name}", response_model=ObjectExists)
async def object_exists(
    name: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    key = video_key(str(user_id), name)
    return ObjectExists(key=key, exists=await storage.exists(key))


@router.get("/objects/{name}")
async def download_object(
    name: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    data = await storage.get(video_key(str(user_id), name))
    return Response(content=data, media_type="application/octet-stream")


@router.post("/upload")
async def upload_object(
    file: UploadFile = File(...),
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    """Store a file under the caller's prefix, keeping its base name."""
    if file.size is not None and file.size > settings.max_video_size_bytes:
        raise ValidationError(
            f"File too large. Maximum size is {settings.max_video_size_bytes // (1024 * 1024)}MB"
        )
    content = await file.read()
    if not content:
        raise ValidationError("No file provided")

    name = os.path.basename((file.filename or "").replace("\\", "/"))
    key = video_key(str(user_id), name)
    url = await storage.put(key, content, file.content_type or "application/octet-stream")
    return {"key": key, "url": url}


@router.delete("/{name}")
async def delete_object(
    name: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    storage: StorageService = Depends(get_storage),
):
    key = video_key(str(user_id), name)
    await storage.delete(key)
    return {"message": "Object deleted successfully", "key": key}
