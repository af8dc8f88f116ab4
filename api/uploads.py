"""
Image upload endpoint. Files are written to ``upload_dir`` and served
back under ``/uploads``.
"""

from __future__ import annotations

import logging
import pathlib
import re
import time
from typing import Dict, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])

_WHITESPACE = re.compile(r"\s+")


def stored_filename(original: str, now_ms: Optional[int] = None) -> str:
    """``My Pic.png`` → ``My_Pic-<epoch ms>.png``."""
    name = pathlib.PurePath(original or "upload").name
    suffix = pathlib.PurePath(name).suffix
    stem = name[: -len(suffix)] if suffix else name
    stem = _WHITESPACE.sub("_", stem) or "upload"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{stem}-{now_ms}{suffix}"


@router.post("/upload")
async def upload_image(request: Request, image: Optional[UploadFile] = File(None)) -> Dict[str, str]:
    """Store one image and return the URL to save on the owning record."""
    if image is None or not image.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only image files are allowed")

    settings = request.app.state.settings
    data = await image.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    upload_dir = pathlib.Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = stored_filename(image.filename)
    (upload_dir / filename).write_bytes(data)

    logger.info("Stored upload %s (%d bytes)", filename, len(data))
    return {"url": f"/uploads/{filename}"}
