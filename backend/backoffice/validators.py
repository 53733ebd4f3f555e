import os
import re

from django.conf import settings
from django.core.exceptions import ValidationError
from PIL import Image, UnidentifiedImageError

ALLOWED_IMAGE_TYPES = ['image/jpeg', 'image/png', 'image/webp']
PIL_FORMATS = {'JPEG', 'PNG', 'WEBP'}

INVALID_TYPE_MESSAGE = 'Invalid file type. Please upload JPG, PNG, or WebP.'
TOO_LARGE_MESSAGE = 'File too large. Maximum size is 5MB.'


def validate_image_upload(value):
    """
    Accept JPEG, PNG and WebP screenshots up to the configured size.

    The declared content type must match and Pillow must be able to read
    the file as one of those formats.
    """
    if getattr(value, 'content_type', None) not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)

    if value.size > settings.MAESTRO['MAX_UPLOAD_SIZE']:
        raise ValidationError(TOO_LARGE_MESSAGE)

    try:
        image = Image.open(value)
        image_format = image.format
        image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError(INVALID_TYPE_MESSAGE)
    finally:
        value.seek(0)

    if image_format not in PIL_FORMATS:
        raise ValidationError(INVALID_TYPE_MESSAGE)


def safe_filename(name):
    """Strip directories and anything outside [A-Za-z0-9._-] from an uploaded file name."""
    base = os.path.basename(name or 'upload')
    cleaned = re.sub(r'[^A-Za-z0-9._-]', '_', base)
    return cleaned.strip('._') or 'upload'
