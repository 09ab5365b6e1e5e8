# printsheet/infrastructure/cv/back_design.py
from functools import lru_cache
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image, ImageDraw

from printsheet.infrastructure.cv.image_process import fit_font, overlay, shape_mask, to_data_url
from printsheet.infrastructure.cv.fonts import load_font

if TYPE_CHECKING:
    from printsheet.domain.back_designs import BackDesign

GRADIENT_OPACITY = 0.15
RING_OPACITY = 0.3
SUBTITLE_OPACITY = 0.8
CAPTION_OPACITY = 0.5
CAPTION_TEXT = "NFC"

def radial_gradient(size: int) -> Image.Image:
    """
    Two-circle radial gradient from (0.3s, 0.3s, r=0) to (0.5s, 0.5s, r=0.7s),
    white to black at constant low opacity. Pixels past the outer circle keep
    the last stop.
    """
    c0 = np.array([0.3, 0.3]) * size
    d = np.array([0.5, 0.5]) * size - c0
    r1 = 0.7 * size

    ys, xs = np.mgrid[0:size, 0:size].astype(np.float64) + 0.5
    qx, qy = xs - c0[0], ys - c0[1]
    # |q - t*d| = t*r1, smallest t >= 0
    a = d @ d - r1 * r1
    b = qx * d[0] + qy * d[1]
    c = qx * qx + qy * qy
    t = (b - np.sqrt(b * b - a * c)) / a
    t = np.clip(t, 0.0, 1.0)

    shade = np.round(255 * (1 - t)).astype(np.uint8)
    alpha = np.full_like(shade, round(255 * GRADIENT_OPACITY))
    return Image.fromarray(np.dstack([shade, shade, shade, alpha]), "RGBA")

def generate_back_design(design: "BackDesign", size: int, is_circle: bool) -> Image.Image:
    """Square RGBA back design; transparent outside the circle for coins."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    mask = shape_mask((size, size), is_circle) if is_circle else None

    # Background
    overlay(img, lambda d: d.rectangle((0, 0, size, size), fill=design.color), mask=mask)

    # Depth
    gradient = radial_gradient(size)
    if mask is not None:
        img.alpha_composite(Image.composite(gradient, Image.new("RGBA", gradient.size, (0, 0, 0, 0)), mask))
    else:
        img.alpha_composite(gradient)

    # Decorative ring / border
    line = size * 0.02

    def ring(draw: ImageDraw.ImageDraw):
        if is_circle:
            r = size * 0.42 + line / 2
            draw.ellipse((size / 2 - r, size / 2 - r, size / 2 + r, size / 2 + r),
                         outline=design.text_color, width=max(1, round(line)))
        else:
            p = size * 0.08 - line / 2
            draw.rectangle((p, p, size - p, size - p), outline=design.text_color, width=max(1, round(line)))

    overlay(img, ring, opacity=RING_OPACITY)

    # Title, shrunk to fit 75% of the width
    max_width = size * 0.75
    probe = ImageDraw.Draw(img)
    font = fit_font(probe, design.name, round(size * 0.12), max_width, min_size=round(size * 0.06))
    center_y = size * 0.45 if design.subtitle else size * 0.5
    overlay(img, lambda d: d.text((size / 2, center_y), design.name, font=font,
                                  fill=design.text_color, anchor="mm"))

    if design.subtitle:
        sub_font = load_font(round(size * 0.06))
        overlay(img, lambda d: d.text((size / 2, size * 0.58), design.subtitle, font=sub_font,
                                      fill=design.text_color, anchor="mm"),
                opacity=SUBTITLE_OPACITY)

    caption_font = load_font(round(size * 0.05))
    overlay(img, lambda d: d.text((size / 2, size * 0.85), CAPTION_TEXT, font=caption_font,
                                  fill=design.text_color, anchor="mm"),
            opacity=CAPTION_OPACITY)
    return img

@lru_cache(maxsize=64)
def back_design_data_url(design: "BackDesign", size: int, is_circle: bool) -> str:
    return to_data_url(generate_back_design(design, size, is_circle))
