"""Low-resolution placeholder encoding: a base64 grid of average RGB colours."""

import base64
import binascii
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

from photodock.config import PLACEHOLDER_GRID, PLACEHOLDER_SIZE

FALLBACK_COLOR = (128, 128, 128)


def encode_placeholder(image_path: str | Path, grid: int = PLACEHOLDER_GRID) -> str:
    """Average the image down to a ``grid`` x ``grid`` RGB grid and base64-encode the bytes."""
    with Image.open(image_path) as img:
        img = ImageOps.exif_transpose(img).convert("RGB")
        tiny = img.resize((grid, grid), Image.Resampling.BOX)
    pixels = np.asarray(tiny, dtype=np.uint8)
    return base64.b64encode(pixels.tobytes()).decode("ascii")


def render_placeholder(
    encoding: str | None,
    width: int = PLACEHOLDER_SIZE,
    height: int = PLACEHOLDER_SIZE,
    grid: int = PLACEHOLDER_GRID,
) -> Image.Image:
    """Decode an encoded grid and upscale it to ``width`` x ``height``.

    Missing, malformed or short encodings give a flat mid-grey image.
    """
    needed = grid * grid * 3
    try:
        raw = base64.b64decode(encoding or "", validate=True)
    except (binascii.Error, ValueError):
        raw = b""
    if len(raw) < needed:
        return Image.new("RGB", (width, height), FALLBACK_COLOR)

    cells = np.frombuffer(raw[:needed], dtype=np.uint8).reshape(grid, grid, 3)
    tiny = Image.fromarray(cells)
    return tiny.resize((width, height), Image.Resampling.BILINEAR)
