"""Cover image storage."""

import os
import random
import time
from pathlib import Path

from fastapi import UploadFile

from services.errors import ValidationError

ALLOWED_IMAGE_MIME_PREFIX = "image/"
UPLOADS_URL_PREFIX = "/uploads"


def _sanitize_extension(filename: str) -> str:
    suffix = Path(os.path.basename(filename or "")).suffix.lower()
    safe = "".join(ch for ch in suffix if ch.isalnum() or ch == ".")
    return safe if len(safe) > 1 else ""


def cover_file_name(original_filename: str) -> str:
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"portada-{unique_suffix}{_sanitize_extension(original_filename)}"


async def save_cover_image(file: UploadFile, upload_dir: str, max_bytes: int) -> str:
    """Stream an uploaded image to disk and return the stored file name."""
    content_type = (file.content_type or "").lower()
    if not content_type.startswith(ALLOWED_IMAGE_MIME_PREFIX):
        await file.close()
        raise ValidationError("Solo se permiten archivos de imagen")

    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_name = cover_file_name(file.filename or "")
    destination = directory / file_name

    total_size = 0
    try:
        with destination.open("wb") as out:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_bytes:
                    out.close()
                    destination.unlink(missing_ok=True)
                    raise ValidationError(
                        f"La imagen supera el tamaño máximo de {max_bytes // (1024 * 1024)}MB"
                    )
                out.write(chunk)
    finally:
        await file.close()

    return file_name
