"""
Upload API routes.

All endpoints are prefixed with /upload.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Request, UploadFile

from ..db.models import UserModel
from ..dependencies import get_current_user
from .storage import ScreenshotStorage

router = APIRouter(prefix="/upload", tags=["uploads"])


def get_storage(request: Request) -> ScreenshotStorage:
    return request.app.state.screenshot_storage


@router.post("/screenshots")
async def upload_screenshots(
    files: List[UploadFile] = File(...),
    storage: ScreenshotStorage = Depends(get_storage),
    _: UserModel = Depends(get_current_user),
) -> Dict[str, Any]:
    """Store up to ten JPG, PNG, GIF or WEBP screenshots of at most 5MB each."""
    storage.check_count(len(files))
    payload = []
    for upload in files:
        # one byte over the limit is enough to reject the file
        data = await upload.read(storage.max_file_size + 1)
        payload.append((upload.filename or "", upload.content_type or "", data))

    return {"message": "Files uploaded successfully", "files": storage.save(payload)}
