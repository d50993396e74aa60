"""Utility helpers for displaying stored images."""

from __future__ import annotations

import io
from typing import Tuple

from PIL import Image


def load_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded PIL image."""
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def generate_thumbnail(data: bytes, max_size: Tuple[int, int] = (256, 256)) -> Image.Image:
    """Create a thumbnail suitable for history previews."""
    image = load_image(data)
    image.thumbnail(max_size)
    return image
