"""
Upload storage and image compression.

Files live flat in UPLOAD_DIR and are published under /uploads/<filename>.
"""

import logging
import os
import shutil
import uuid
from typing import BinaryIO, Optional

from PIL import Image, UnidentifiedImageError

from errors import InternalError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"

# resolved once; the static mount and every read/write share this directory
UPLOAD_DIR = os.path.abspath(os.getenv("UPLOAD_DIR", "uploads"))


def upload_dir() -> str:
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    return UPLOAD_DIR


def public_path(filename: str) -> str:
    return PUBLIC_PREFIX + filename


def disk_path(public: str) -> str:
    # only the basename is trusted, stored paths never escape the upload dir
    return os.path.join(upload_dir(), os.path.basename(public))


def save_upload(fileobj: BinaryIO, original_name: Optional[str]) -> str:
    """Copy an uploaded stream into the upload dir and return the stored filename."""
    ext = os.path.splitext(original_name or "")[1].lower()
    filename = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(upload_dir(), filename), "wb") as out:
        shutil.copyfileobj(fileobj, out)
    return filename


def remove_file(public: Optional[str]) -> bool:
    """Delete a stored file by its public path. A missing file is not an error."""
    if not public:
        return False
    path = disk_path(public)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def compress_image(filename: str) -> str:
    """
    Write a resized JPEG copy of an uploaded image as compressed-<name>.jpg
    and return the new filename. The original upload is left in place.
    """
    max_dim = int(os.getenv("IMAGE_MAX_DIMENSION", "1200"))
    quality = int(os.getenv("IMAGE_QUALITY", "80"))
    src = os.path.join(upload_dir(), filename)
    out_name = "compressed-" + os.path.splitext(filename)[0] + ".jpg"
    dest = os.path.join(upload_dir(), out_name)
    try:
        with Image.open(src) as img:
            img = img.convert("RGB")
            img.thumbnail((max_dim, max_dim))
            img.save(dest, "JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        if os.path.exists(dest):
            os.remove(dest)
        raise InternalError("Failed to compress image", details=str(e))
    return out_name
