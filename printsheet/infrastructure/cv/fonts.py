# printsheet/infrastructure/cv/fonts.py
import logging
import os
from functools import lru_cache
from typing import Optional

from PIL import ImageFont

logger = logging.getLogger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

CANDIDATES_BOLD = [
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]
CANDIDATES_REGULAR = [
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "/Library/Fonts/Arial.ttf",
    "C:/Windows/Fonts/arial.ttf",
]


@lru_cache(maxsize=2)
def find_font(bold: bool = False) -> Optional[str]:
    """
    Locate an Arial-like sans-serif font. A font.ttf / font-bold.ttf placed
    next to this module always wins.
    """
    local = os.path.join(_HERE, "font-bold.ttf" if bold else "font.ttf")
    if os.path.exists(local):
        return local
    for path in (CANDIDATES_BOLD if bold else CANDIDATES_REGULAR):
        if os.path.exists(path):
            return path
    logger.warning(f"No {'bold' if bold else 'regular'} TrueType font found, using Pillow's default font.")
    return None


@lru_cache(maxsize=256)
def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    size = max(1, int(size))
    path = find_font(bold)
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as e:
            logger.warning(f"Failed to load font {path}: {e}")
    return ImageFont.load_default(size=size)
