"""
Upload storage on top of Django's default storage backend.
"""

import logging

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone

from .validators import safe_filename, validate_image_upload

logger = logging.getLogger(__name__)


def store_upload(uploaded_file, directory):
    """
    Validate and save ``uploaded_file`` under ``directory``.

    Returns the storage URL. Raises ``ValidationError`` for rejected files.
    """
    validate_image_upload(uploaded_file)

    timestamp = int(timezone.now().timestamp() * 1000)
    path = f"{directory.strip('/')}/{timestamp}-{safe_filename(uploaded_file.name)}"
    saved_path = default_storage.save(path, uploaded_file)
    url = default_storage.url(saved_path)
    logger.info(f"Stored upload {saved_path} ({uploaded_file.size} bytes)")
    return url


def delete_upload(url):
    """Remove a previously stored file; unknown paths are ignored."""
    path = url_to_path(url)
    if path and default_storage.exists(path):
        default_storage.delete(path)
        logger.info(f"Deleted upload {path}")


def url_to_path(url):
    media_url = settings.MEDIA_URL
    if url and url.startswith(media_url):
        return url[len(media_url):]
    return None
