"""
Storage for user uploaded files (property photos, id cards, avatars).

Files are written through Django's default storage under MEDIA_ROOT and
referenced by their public ``/uploads/<name>`` URL.
"""

import logging
import os
import time
import uuid

from django.conf import settings
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)


def build_upload_name(original_name):
    """Unique file name that keeps the original extension."""
    extension = os.path.splitext(original_name or '')[1].lower()
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{extension}"


def save_upload(uploaded_file):
    """Store ``uploaded_file`` and return its public URL."""
    name = default_storage.save(build_upload_name(uploaded_file.name), uploaded_file)
    logger.info(f"Stored upload {uploaded_file.name} as {name}")
    return f"{settings.MEDIA_URL}{name}"


def delete_upload(url):
    """Remove a stored file given its public URL. Missing files are ignored."""
    if not url or not url.startswith(settings.MEDIA_URL):
        return False
    name = url[len(settings.MEDIA_URL):]
    if not default_storage.exists(name):
        return False
    default_storage.delete(name)
    return True
