# printsheet/infrastructure/cv/image_process.py
import base64
import io
from functools import lru_cache
from typing import Callable, Optional, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from printsheet.domain.layout import DPI
from printsheet.infrastructure.cv.fonts import load_font

OUTLINE_COLOR = "#cccccc"
OUTLINE_WIDTH = 2
CLIP_INSET = 2            # image clip, keeps the outline visible
BANNER_CLIP_INSET = 4
BANNER_BORDER_WIDTH = 4
SUPERSAMPLE = 4

WHITE = (255, 255, 255, 255)
SHADOW = (0, 0, 0, 128)

Box = Tuple[float, float, float, float]

@lru_cache(maxsize=32)
def shape_mask(size: Tuple[int, int], is_circle: bool, inset: float = 0, corner_radius: float = 0) -> Image.Image:
    """Anti-aliased L mask of a circle (inscribed in `size`) or a rounded rectangle."""
    w, h = size
    s = SUPERSAMPLE
    big = Image.new("L", (max(1, w * s), max(1, h * s)), 0)
    draw = ImageDraw.Draw(big)
    box = (inset * s, inset * s, (w - inset) * s - 1, (h - inset) * s - 1)
    if box[2] <= box[0] or box[3] <= box[1]:
        return Image.new("L", (w, h), 0)
    if is_circle:
        draw.ellipse(box, fill=255)
    else:
        draw.rounded_rectangle(box, radius=corner_radius * s, fill=255)
    return big.resize((w, h), Image.Resampling.LANCZOS)

def clip_to_mask(layer: Image.Image, mask: Image.Image) -> Image.Image:
    layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
    return layer

def overlay(base: Image.Image, paint: Callable[[ImageDraw.ImageDraw], None],
            opacity: float = 1.0, mask: Optional[Image.Image] = None) -> Image.Image:
    """Paint opaque content on a transparent layer, then composite it at `opacity`."""
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    paint(ImageDraw.Draw(layer))
    if opacity < 1.0:
        layer.putalpha(layer.getchannel("A").point(lambda a: int(a * opacity + 0.5)))
    if mask is not None:
        clip_to_mask(layer, mask)
    base.alpha_composite(layer)
    return base

def fit_font(draw: ImageDraw.ImageDraw, text: str, size: int, max_width: float,
             min_size: int = 1, bold: bool = True):
    """Largest font no larger than `size` whose rendering of `text` fits `max_width`."""
    size = max(int(size), min_size)
    font = load_font(size, bold)
    while draw.textlength(text, font=font) > max_width and size > min_size:
        size -= 1
        font = load_font(size, bold)
    return font

def contain_size(img_size: Tuple[int, int], frame: Tuple[int, int], zoom: float) -> Tuple[float, float]:
    """
    Draw size of an image in a frame: wide images fit the frame width, tall
    images the frame height, then both scale by `zoom`.
    """
    iw, ih = img_size
    fw, fh = frame
    aspect = iw / ih
    if aspect > 1:
        draw_w = fw * zoom
        draw_h = draw_w / aspect
    else:
        draw_h = fh * zoom
        draw_w = draw_h * aspect
    return draw_w, draw_h

def place_image(tile: Image.Image, img: Image.Image, zoom: float, offset_x: float, offset_y: float,
                clip: Image.Image) -> None:
    """
    Draw `img` centred in `tile`, scaled and offset (percent of tile), clipped by `clip`.

    Only the part of the source that lands inside the tile is resampled, so
    the work stays bounded by the tile size at any zoom.
    """
    fw, fh = tile.size
    iw, ih = img.size
    draw_w, draw_h = contain_size(img.size, (fw, fh), zoom)
    if draw_w <= 0 or draw_h <= 0:
        return
    x = fw / 2 - draw_w / 2 + offset_x / 100 * fw
    y = fh / 2 - draw_h / 2 + offset_y / 100 * fh

    # visible part of the drawn image, in tile pixels
    left, top = max(0, round(x)), max(0, round(y))
    right, bottom = min(fw, round(x + draw_w)), min(fh, round(y + draw_h))
    if right <= left or bottom <= top:
        return

    sx, sy = iw / draw_w, ih / draw_h
    src_box = (max(0.0, (left - x) * sx), max(0.0, (top - y) * sy),
               min(float(iw), (right - x) * sx), min(float(ih), (bottom - y) * sy))
    if src_box[2] <= src_box[0] or src_box[3] <= src_box[1]:
        return

    visible = img.convert("RGBA").resize((right - left, bottom - top), Image.Resampling.LANCZOS, box=src_box)
    layer = Image.new("RGBA", (fw, fh), (0, 0, 0, 0))
    layer.paste(visible, (left, top))
    tile.alpha_composite(clip_to_mask(layer, clip))

def draw_outline(tile: Image.Image, is_circle: bool, corner_radius: float) -> None:
    w, h = tile.size
    draw = ImageDraw.Draw(tile)
    if is_circle:
        draw.ellipse((0, 0, w - 1, h - 1), outline=OUTLINE_COLOR, width=OUTLINE_WIDTH)
    else:
        draw.rounded_rectangle((1, 1, w - 2, h - 2), radius=corner_radius, outline=OUTLINE_COLOR,
                               width=OUTLINE_WIDTH)

def banner_geometry(size: Tuple[int, int], is_circle: bool) -> Tuple[Box, float, float, int]:
    """
    Pill box, text font size ratio, max text width and name character budget
    for the name banner of a face of `size`.
    """
    w, h = size
    if is_circle:
        radius = w / 2
        bh, bw = radius * 0.28, radius * 1.5
        cy = h / 2 + radius * 0.55
        box = (w / 2 - bw / 2, cy - bh / 2, w / 2 + bw / 2, cy + bh / 2)
        return box, 0.55, bw * 0.85, 12
    bh, bw = h * 0.12, w * 0.85
    top = h - bh * 1.3
    box = (w / 2 - bw / 2, top, w / 2 + bw / 2, top + bh)
    return box, 0.6, bw * 0.9, 18

def draw_banner(tile: Image.Image, name: str, color: str, is_circle: bool, corner_radius: float) -> None:
    """Pill-shaped name banner, clipped inside the face so it never crosses its edge."""
    box, font_ratio, max_text_w, max_chars = banner_geometry(tile.size, is_circle)
    x0, y0, x1, y1 = box
    bh = y1 - y0
    text = name[:max_chars]
    clip = shape_mask(tile.size, is_circle, inset=BANNER_CLIP_INSET, corner_radius=corner_radius)

    def pill(draw):
        draw.rounded_rectangle(box, radius=bh / 2, fill=color, outline=WHITE, width=BANNER_BORDER_WIDTH)

    overlay(tile, pill, mask=clip)

    probe = ImageDraw.Draw(tile)
    font = fit_font(probe, text, round(bh * font_ratio), max_text_w)
    center = ((x0 + x1) / 2, (y0 + y1) / 2)

    shadow = Image.new("RGBA", tile.size, (0, 0, 0, 0))
    ImageDraw.Draw(shadow).text((center[0] + 1, center[1] + 1), text, font=font, fill=SHADOW, anchor="mm")
    shadow = shadow.filter(ImageFilter.GaussianBlur(1))
    tile.alpha_composite(clip_to_mask(shadow, clip))

    overlay(tile, lambda d: d.text(center, text, font=font, fill=WHITE, anchor="mm"), mask=clip)

def to_png_bytes(img: Image.Image, dpi: int = DPI) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", dpi=(dpi, dpi))
    return buf.getvalue()

def to_data_url(img: Image.Image) -> str:
    return "data:image/png;base64," + base64.b64encode(to_png_bytes(img)).decode("ascii")

def decode_image(data: Optional[bytes]) -> Optional[Image.Image]:
    if data is None:
        return None
    img = Image.open(io.BytesIO(data))
    img.load()
    return img.convert("RGBA")
