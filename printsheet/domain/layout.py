# printsheet/domain/layout.py
"""
Physical-to-raster conversion and grid layout for print sheets.

Every pixel dimension used by the renderer (page size, margin, spacing,
item footprint) goes through mm_to_px so that printed output matches the
configured millimetre sizes at 100% print scale.
"""
import math
from dataclasses import dataclass
from typing import Dict, Tuple

DPI = 300
MM_PER_INCH = 25.4
# Smallest face, in pixels, that still holds its outline and clip inset
MIN_ITEM_PX = 12


def mm_to_px(mm: float, dpi: int = DPI) -> int:
    # Half-up rounding; Python's round() is banker's rounding
    return int(math.floor(mm / MM_PER_INCH * dpi + 0.5))


def px_to_mm(px: float, dpi: int = DPI) -> float:
    return px * MM_PER_INCH / dpi


@dataclass(frozen=True)
class PageSize:
    width: float   # mm
    height: float  # mm
    name: str

    @property
    def orientation(self) -> str:
        return "landscape" if self.width > self.height else "portrait"

    @property
    def pixel_size(self) -> Tuple[int, int]:
        return mm_to_px(self.width), mm_to_px(self.height)


PAGE_SIZES: Dict[str, PageSize] = {
    "A4": PageSize(210, 297, "A4 (210 x 297 mm)"),
    "Letter": PageSize(215.9, 279.4, "US Letter (8.5 x 11 in)"),
    "A3": PageSize(297, 420, "A3 (297 x 420 mm)"),
    "Legal": PageSize(215.9, 355.6, "US Legal (8.5 x 14 in)"),
}


class LayoutError(ValueError):
    """The item footprint does not fit the usable page area."""


@dataclass(frozen=True)
class Layout:
    items_per_row: int
    rows_per_page: int

    @property
    def items_per_page(self) -> int:
        return self.items_per_row * self.rows_per_page

    def pages_needed(self, item_count: int) -> int:
        return math.ceil(total_slots(item_count) / self.items_per_page)

    def summary(self, item_count: int) -> dict:
        return {
            "items_per_row": self.items_per_row,
            "rows_per_page": self.rows_per_page,
            "items_per_page": self.items_per_page,
            "total_slots": total_slots(item_count),
            "pages_needed": self.pages_needed(item_count),
        }


def total_slots(item_count: int) -> int:
    # front + back per item
    return 2 * item_count


def _fit_count(usable: float, footprint: float, spacing: float) -> int:
    pitch = footprint + spacing
    if pitch <= 0:
        return 0
    return math.floor((usable + spacing) / pitch)


def calculate_layout(page: PageSize, margin: float, spacing: float,
                     item_width: float, item_height: float) -> Layout:
    """
    Compute the row/column grid for one page. All inputs are millimetres.

    Raises LayoutError when not even one item fits in either direction, or
    when the item is too small to rasterize.
    """
    if min(mm_to_px(item_width), mm_to_px(item_height)) < MIN_ITEM_PX:
        raise LayoutError(
            f"Item footprint {item_width:g} x {item_height:g} mm is below the printable minimum "
            f"of {px_to_mm(MIN_ITEM_PX):.2f} mm per side: layout impossible."
        )

    usable_width = page.width - margin * 2
    usable_height = page.height - margin * 2

    items_per_row = _fit_count(usable_width, item_width, spacing)
    rows_per_page = _fit_count(usable_height, item_height, spacing)

    if items_per_row <= 0 or rows_per_page <= 0:
        raise LayoutError(
            f"Item footprint {item_width:g} x {item_height:g} mm (spacing {spacing:g} mm) "
            f"exceeds the usable page area {usable_width:g} x {usable_height:g} mm "
            f"({page.name}, margin {margin:g} mm): layout impossible."
        )
    return Layout(items_per_row=items_per_row, rows_per_page=rows_per_page)
