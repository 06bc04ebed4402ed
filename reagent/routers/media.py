"""Serve storage objects behind signed URLs."""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse

from reagent.storage import StorageError, storage

router = APIRouter(tags=["storage"], include_in_schema=False)


@router.get("/storage/{path:path}")
async def signed_object(path: str, token: str = Query(...)):
    if not storage.verify_signed_path(path, token):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        target = storage.local_path(path)
    except StorageError:
        raise HTTPException(status_code=400, detail="Invalid object path")
    if not target.is_file():
        raise HTTPException(status_code=404, detail="Object not found")

    media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    return FileResponse(target, media_type=media_type)
