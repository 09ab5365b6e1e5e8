# printsheet/infrastructure/cv/colors.py
"""
Representative-colour sampling.

Two modes share one pixel filter and one fallback:
  - dominant_color: whole image, quantized histogram, most frequent bucket
    (card tinting in the UI)
  - region_color: plain average of a bottom-centre region (banner fill on
    rendered fronts)
"""
import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

FALLBACK_COLOR = "#6b7280"

SAMPLE_SIZE = 50
SAMPLE_STRIDE = 4          # every 4th pixel
ALPHA_THRESHOLD = 128
NEAR_WHITE = 240
QUANT_STEP = 32

# (x0, y0, x1, y1) as fractions of the image
BANNER_REGION = (0.4, 0.9, 0.6, 1.0)

RGB = Tuple[int, int, int]


def format_rgb(rgb: RGB) -> str:
    r, g, b = rgb
    return f"rgb({r},{g},{b})"


def _rgba_array(img: Image.Image) -> np.ndarray:
    return np.asarray(img.convert("RGBA"), dtype=np.int32).reshape(-1, 4)


def _opaque(pixels: np.ndarray) -> np.ndarray:
    return pixels[pixels[:, 3] >= ALPHA_THRESHOLD]


def dominant_rgb(img: Image.Image) -> Optional[RGB]:
    small = img.convert("RGBA").resize((SAMPLE_SIZE, SAMPLE_SIZE), Image.Resampling.BILINEAR)
    pixels = _opaque(_rgba_array(small)[::SAMPLE_STRIDE])
    rgb = pixels[:, :3]
    rgb = rgb[~np.all(rgb > NEAR_WHITE, axis=1)]
    if len(rgb) == 0:
        return None

    quantized = np.minimum(np.floor(rgb / QUANT_STEP + 0.5) * QUANT_STEP, 255).astype(np.int32)
    buckets, counts = np.unique(quantized, axis=0, return_counts=True)
    r, g, b = buckets[int(np.argmax(counts))]
    return int(r), int(g), int(b)


def dominant_color(img: Optional[Image.Image]) -> str:
    if img is None:
        return FALLBACK_COLOR
    try:
        rgb = dominant_rgb(img)
    except (OSError, ValueError) as e:
        logger.warning(f"Dominant colour sampling failed: {e}")
        return FALLBACK_COLOR
    return format_rgb(rgb) if rgb else FALLBACK_COLOR


def region_rgb(img: Image.Image, region: Tuple[float, float, float, float] = BANNER_REGION) -> Optional[RGB]:
    w, h = img.size
    x0, y0, x1, y1 = region
    left, top = int(w * x0), int(h * y0)
    right = left + max(1, int(w * (x1 - x0)))
    bottom = top + max(1, int(h * (y1 - y0)))
    box = (left, top, min(right, w), min(bottom, h))
    if box[2] <= box[0] or box[3] <= box[1]:
        return None

    pixels = _rgba_array(img.crop(box))
    pixels = pixels[pixels[:, 3] > ALPHA_THRESHOLD]
    if len(pixels) == 0:
        return None
    r, g, b = np.floor(pixels[:, :3].mean(axis=0) + 0.5).astype(int)
    return int(r), int(g), int(b)


def region_color(img: Optional[Image.Image], region: Tuple[float, float, float, float] = BANNER_REGION) -> str:
    if img is None:
        return FALLBACK_COLOR
    try:
        rgb = region_rgb(img, region)
    except (OSError, ValueError) as e:
        logger.warning(f"Banner colour sampling failed: {e}")
        return FALLBACK_COLOR
    return format_rgb(rgb) if rgb else FALLBACK_COLOR
