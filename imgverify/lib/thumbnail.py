"""Image type detection and preview generation.

Previews are small JPEG thumbnails embedded in history entries as data
URLs, generated with EXIF orientation correction using Pillow.
"""
from io import BytesIO
from typing import Tuple
import base64
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from imgverify.lib.errors import UnreadableImageError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type accepted for verification
SUPPORTED_FORMATS = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
}

DEFAULT_PREVIEW_SIZE = (128, 128)


def detect_image_type(data: bytes) -> str:
    """Return the MIME type of JPEG/PNG content.

    Detection uses the file signature, not the filename.

    Raises:
        UnsupportedFileTypeError: If the bytes are not a JPEG or PNG image
        UnreadableImageError: If the image exceeds Pillow's pixel limit
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
    except Image.DecompressionBombError as e:
        raise UnreadableImageError(f"Image is too large to process: {e}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFileTypeError("File is not a recognizable image") from e

    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFileTypeError(f"Unsupported image format: {fmt}")
    return SUPPORTED_FORMATS[fmt]


def make_preview_url(data: bytes, size: Tuple[int, int] = DEFAULT_PREVIEW_SIZE) -> str:
    """Build a base64 JPEG data URL thumbnail for an image.

    Args:
        data: Raw image bytes
        size: Maximum (width, height); aspect ratio is kept

    Returns:
        "data:image/jpeg;base64,..." string

    Raises:
        UnreadableImageError: If Pillow cannot decode the image
    """
    try:
        with Image.open(BytesIO(data)) as img:
            # Apply EXIF orientation before any processing
            img = ImageOps.exif_transpose(img)

            # Convert to RGB if needed (handles RGBA, P, LA, I;16 modes)
            if img.mode != 'RGB':
                img = img.convert('RGB')

            img.thumbnail(tuple(size), Image.Resampling.LANCZOS)

            buffer = BytesIO()
            img.save(buffer, 'JPEG', quality=80, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(f"Preview generation failed: {e}")
        raise UnreadableImageError(f"Image data could not be decoded: {e}") from e

    encoded = base64.b64encode(buffer.getvalue()).decode('ascii')
    return f"data:image/jpeg;base64,{encoded}"
