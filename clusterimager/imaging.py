"""Image operations: cropping, resizing, loading and saving."""

from __future__ import annotations

import os
from pathlib import Path

from PIL import Image

_RESAMPLE_MODES = frozenset({"RGB", "RGBA", "L", "LA", "I", "F", "RGBX", "CMYK"})


class UnsupportedFormatError(ValueError):
    """Raised when an image is to be saved under an unknown file extension."""


def crop_image(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    """Return a width x height RGBA image taken from (x, y) of the input.

    Areas outside the source image come out transparent black.
    """
    right = x + max(width, 0)
    bottom = y + max(height, 0)
    return image.convert("RGBA").crop((x, y, right, bottom))


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """Resize with Lanczos filtering.

    A zero width or height is derived from the other to keep the aspect
    ratio; both zero returns an unchanged copy.
    """
    if width < 0 or height < 0:
        raise ValueError("width and height cannot be negative")
    src_width, src_height = image.size
    if width == 0 and height == 0:
        return image.copy()
    if width == 0:
        width = int(0.7 + src_width * height / src_height)
    elif height == 0:
        height = int(0.7 + src_height * width / src_width)

    source = image if image.mode in _RESAMPLE_MODES else image.convert("RGBA")
    return source.resize((width, height), Image.Resampling.LANCZOS)


def load_image(path: str | os.PathLike[str]) -> Image.Image:
    """Read and decode an image file."""
    with Image.open(path) as img:
        img.load()
        return img.copy()


def _flatten_for_jpeg(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


def export_image(image: Image.Image, path: str | os.PathLike[str]) -> None:
    """Save an image as JPEG (.jpg, .jpeg) or PNG (.png), chosen by extension."""
    ext = Path(path).suffix
    if ext in (".jpg", ".jpeg"):
        _flatten_for_jpeg(image).save(path, format="JPEG", quality=75)
    elif ext == ".png":
        image.save(path, format="PNG")
    else:
        raise UnsupportedFormatError(f"unsupported file type: {ext}")