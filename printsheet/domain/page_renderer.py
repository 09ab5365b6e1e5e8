# printsheet/domain/page_renderer.py
"""
Rasterizes a template into print pages.

Every item yields two slots, front then back, in list order. Slots fill the
grid left to right, top to bottom; a new page starts when the grid is full.
The layout is validated when the renderer is built, so a degenerate
configuration fails before any canvas is allocated.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional

from PIL import Image

from printsheet.delivery.schemas.body import ListItem, TemplateConfig
from printsheet.domain.adjustments import AdjustmentStore
from printsheet.domain.layout import Layout, calculate_layout, mm_to_px
from printsheet.infrastructure.cv import colors, image_process

logger = logging.getLogger(__name__)

CARD_CORNER_RADIUS_MM = 3

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class Slot:
    item: ListItem
    is_front: bool


@dataclass
class RenderedPage:
    index: int
    image: Image.Image
    slots: List[Slot] = field(default_factory=list)

    def to_png(self) -> bytes:
        return image_process.to_png_bytes(self.image)


def build_slots(items: List[ListItem]) -> List[Slot]:
    slots = []
    for item in items:
        slots.append(Slot(item, True))
        slots.append(Slot(item, False))
    return slots


class PageRenderer:
    def __init__(self, config: TemplateConfig, images: Mapping[str, Image.Image],
                 back_sources: Mapping[str, Optional[str]], adjustments: AdjustmentStore):
        self.config = config
        self.images = images
        self.back_sources = back_sources
        self.adjustments = adjustments

        width_mm, height_mm = config.footprint_mm
        self.layout: Layout = calculate_layout(config.page, config.margin, config.spacing, width_mm, height_mm)

        self.page_px = config.page.pixel_size
        self.margin_px = mm_to_px(config.margin)
        self.spacing_px = mm_to_px(config.spacing)
        self.item_px = (mm_to_px(width_mm), mm_to_px(height_mm))
        self.corner_px = mm_to_px(CARD_CORNER_RADIUS_MM)

    @property
    def pages_needed(self) -> int:
        return self.layout.pages_needed(len(self.config.items))

    def slot_image(self, slot: Slot) -> Optional[Image.Image]:
        if slot.is_front:
            source = slot.item.image
        else:
            source = self.back_sources.get(slot.item.amiibo_series)
        return self.images.get(source) if source else None

    def slot_position(self, row: int, col: int):
        w, h = self.item_px
        return (self.margin_px + col * (w + self.spacing_px),
                self.margin_px + row * (h + self.spacing_px))

    def draw_slot(self, page: Image.Image, slot: Slot, x: int, y: int) -> None:
        is_circle = self.config.is_circle
        radius = 0 if is_circle else self.corner_px
        tile = Image.new("RGBA", self.item_px, (0, 0, 0, 0))

        image_process.draw_outline(tile, is_circle, radius)

        img = self.slot_image(slot)
        if img is not None:
            adj = self.adjustments.for_slot(slot.item, slot.is_front)
            clip = image_process.shape_mask(self.item_px, is_circle, inset=image_process.CLIP_INSET,
                                            corner_radius=radius)
            image_process.place_image(tile, img, adj.zoom, adj.offset_x, adj.offset_y, clip)

        if slot.is_front:
            banner_color = colors.region_color(img)
            image_process.draw_banner(tile, slot.item.name, banner_color, is_circle, radius)

        page.alpha_composite(tile, dest=(x, y))

    def render_page(self, index: int, slots: List[Slot]) -> RenderedPage:
        page = Image.new("RGBA", self.page_px, (255, 255, 255, 255))
        per_row = self.layout.items_per_row
        for i, slot in enumerate(slots):
            x, y = self.slot_position(i // per_row, i % per_row)
            self.draw_slot(page, slot, x, y)
        return RenderedPage(index=index, image=page.convert("RGB"), slots=list(slots))

    def render(self, progress: Optional[ProgressCallback] = None) -> List[RenderedPage]:
        slots = build_slots(self.config.items)
        per_page = self.layout.items_per_page
        total = self.pages_needed
        pages = []
        for index in range(total):
            chunk = slots[index * per_page:(index + 1) * per_page]
            pages.append(self.render_page(index, chunk))
            logger.info(f"Page {index + 1}/{total}: {len(chunk)} slots placed.")
            if progress:
                progress(round((index + 1) / total * 100), f"Rendered page {index + 1} of {total}")
        return pages
