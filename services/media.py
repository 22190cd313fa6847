"""Intake of the image a share carries, before it is handed to the transport."""

import logging
import os
import uuid

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

import config

logger = logging.getLogger(__name__)

FALLBACK_MIME_TYPE = "image/jpeg"


def image_extension(filename):
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def allowed_file(filename):
    return image_extension(filename) in config.ALLOWED_EXTENSIONS


def get_mime_type(file_path):
    """Content type Pillow detects from the file itself, not from its name."""
    try:
        with Image.open(file_path) as img:
            return Image.MIME.get(img.format, FALLBACK_MIME_TYPE)
    except (OSError, UnidentifiedImageError):
        # Unreadable files still go out; the transport reports the failure.
        return FALLBACK_MIME_TYPE


def save_upload(file_storage):
    """Store a shared image under UPLOAD_FOLDER and return its path.

    Returns None when no file came with the share or its type is not one
    the site accepts.
    """
    if not file_storage or not file_storage.filename:
        return None
    if not allowed_file(file_storage.filename):
        logger.warning("Rejected shared file %r", file_storage.filename)
        return None

    os.makedirs(config.UPLOAD_FOLDER, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}_{secure_filename(file_storage.filename)}"
    file_path = os.path.join(config.UPLOAD_FOLDER, stored_name)
    file_storage.save(file_path)
    logger.debug("Stored shared image at %s", file_path)
    return file_path


def cleanup_upload(file_path):
    """Remove a shared image once its transfer has finished."""
    if not file_path:
        return
    try:
        os.remove(file_path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not remove shared image %s: %s", file_path, e)
