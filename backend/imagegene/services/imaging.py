"""
ImageGene Imaging Utilities
Handles upload validation and decoding of image bytes into RGBA buffers.
"""
import io
from typing import Optional

import numpy as np
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from imagegene.config import config
from imagegene.services.gene.engine import DecodedImage, ImageDecodeError

GENERIC_CONTENT_TYPES = {None, "", "application/octet-stream"}


def validate_upload_metadata(filename: Optional[str], content_type: Optional[str],
                             size: Optional[int] = None) -> None:
    """
    Validate declared upload metadata before reading the payload.

    Generic content types are accepted and left to the magic-byte check.

    Raises:
        ImageDecodeError: For oversized files or unsupported formats
    """
    if size and size > config.MAX_FILE_MB * 1024 * 1024:
        raise ImageDecodeError(f"File too large. Maximum size: {config.MAX_FILE_MB}MB")

    if content_type not in GENERIC_CONTENT_TYPES and content_type not in config.SUPPORTED_MIME_TYPES:
        raise ImageDecodeError(
            f"Unsupported media type {content_type}. "
            f"Supported: {', '.join(config.SUPPORTED_MIME_TYPES)}"
        )

    if filename and '.' in filename:
        ext = filename.lower().rsplit('.', 1)[-1]
        if f".{ext}" not in config.SUPPORTED_EXTENSIONS:
            raise ImageDecodeError(
                f"Unsupported file extension .{ext}. "
                f"Supported: {', '.join(sorted(config.SUPPORTED_EXTENSIONS))}"
            )


def validate_magic_bytes(file_bytes: bytes) -> str:
    """
    Validate file magic bytes to ensure it's actually an image.

    Args:
        file_bytes: Raw file bytes

    Returns:
        Detected MIME type

    Raises:
        ImageDecodeError: For invalid/corrupt files
    """
    if len(file_bytes) < 12:
        raise ImageDecodeError("File too small or corrupt")

    if file_bytes.startswith(b'\xff\xd8\xff'):
        return "image/jpeg"
    elif file_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
        return "image/png"
    elif file_bytes[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    elif file_bytes[:4] == b'RIFF' and file_bytes[8:12] == b'WEBP':
        return "image/webp"
    elif file_bytes.startswith(b'BM'):
        return "image/bmp"
    else:
        raise ImageDecodeError("Invalid image file. Magic bytes don't match supported formats.")


def decode_image_bytes(file_bytes: bytes) -> DecodedImage:
    """
    Decode image bytes into an RGBA8 buffer.

    Animated formats contribute their first frame only.

    Raises:
        ImageDecodeError: If the bytes cannot be decoded
    """
    if len(file_bytes) > config.MAX_FILE_MB * 1024 * 1024:
        raise ImageDecodeError(f"File too large. Maximum size: {config.MAX_FILE_MB}MB")

    validate_magic_bytes(file_bytes)

    try:
        with Image.open(io.BytesIO(file_bytes)) as pil_image:
            pil_image.seek(0)
            rgba_array = np.array(pil_image.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Failed to decode image: {str(e)}")

    height, width = rgba_array.shape[:2]
    if width == 0 or height == 0:
        raise ImageDecodeError("Decoded image has no pixels")

    return DecodedImage(pixels=rgba_array, width=width, height=height)


async def read_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded file after validating its metadata.

    Raises:
        ImageDecodeError: For invalid metadata or unreadable uploads
    """
    validate_upload_metadata(file.filename, file.content_type, getattr(file, 'size', None))
    try:
        return await file.read()
    except OSError as e:
        raise ImageDecodeError(f"Failed to read file: {str(e)}")


def get_image_display_name(image_path: Optional[str], item_id) -> str:
    """Last path segment of image_path, falling back to the item id."""
    normalized = (image_path or "").replace("\\", "/")
    filename = normalized.split("/")[-1]
    if filename.strip():
        return filename
    return str(item_id)
