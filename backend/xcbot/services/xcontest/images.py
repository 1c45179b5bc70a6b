"""Resize flight preview images with Pillow."""
import io

from PIL import Image

from xcbot.core.constants import PREVIEW_JPEG_QUALITY


def resize_jpeg(data: bytes, max_px: int, *, quality: int = PREVIEW_JPEG_QUALITY) -> bytes:
    """
    Decode an image, shrink it so the longest edge is at most max_px (never upscale)
    and return it JPEG-encoded. Raises PIL errors for undecodable input.
    """
    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB")
        img.thumbnail((max_px, max_px), Image.Resampling.LANCZOS)
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()
