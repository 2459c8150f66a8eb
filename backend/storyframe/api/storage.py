from __future__ import annotations
"""Signed download route for the local storage backend."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from storyframe.api.deps import get_storage
from storyframe.services.storage import LocalStorage, StorageBackend, StorageError
from storyframe.services.storage_paths import StorageTarget

router = APIRouter()


@router.get("/storage/{bucket}/{path:path}")
async def download_object(
    bucket: str,
    path: str,
    expires: int,
    signature: str,
    storage: StorageBackend = Depends(get_storage),
):
    """Serve a file if the signature matches and has not expired."""
    if not isinstance(storage, LocalStorage):
        raise HTTPException(status_code=404, detail="Not found")
    if not storage.verify(bucket, path, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        file_path = storage.resolve(StorageTarget(bucket=bucket, path=path))
    except StorageError:
        raise HTTPException(status_code=404, detail="Not found")
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(file_path)
