from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Dict, List, Literal, Optional, Tuple

from printsheet.config.settings import settings
from printsheet.domain.keys import parse_wire_key
from printsheet.domain.layout import PAGE_SIZES, PageSize

TemplateType = Literal["coin", "card"]

# Upper bound of the zoom slider
MAX_ZOOM = settings.MAX_ZOOM

class CamelModel(BaseModel):
    # Saved templates and the browser client use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ListItem(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    head: str
    tail: str
    name: str
    image: str                       # front image URL
    amiibo_series: str
    game_series: str = ""
    character: str = ""
    type: str = ""

class Adjustment(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    zoom: float = Field(settings.DEFAULT_ZOOM, ge=0, le=MAX_ZOOM)
    offset_x: float = Field(0, ge=-100, le=100)   # percent of frame width
    offset_y: float = Field(0, ge=-100, le=100)   # percent of frame height

class TemplateConfig(CamelModel):
    template_type: TemplateType = "coin"
    page_size: str = "A4"
    diameter: float = Field(30, gt=0)
    card_width: float = Field(54, gt=0)
    card_height: float = Field(85, gt=0)
    margin: float = Field(5, ge=0)
    spacing: float = Field(5, ge=0)

    # Per-series back design id
    series_back_designs: Dict[str, str] = Field(default_factory=dict)
    # Keyed "{head}-{tail}" for fronts, "back-{series}" for backs
    image_adjustments: Dict[str, Adjustment] = Field(default_factory=dict)

    items: List[ListItem] = Field(default_factory=list)
    list_name: str = "list"

    @field_validator("page_size")
    @classmethod
    def _known_page_size(cls, v: str) -> str:
        if v not in PAGE_SIZES:
            raise ValueError(f"Unknown page size '{v}', expected one of {sorted(PAGE_SIZES)}")
        return v

    @field_validator("image_adjustments")
    @classmethod
    def _wire_keys(cls, v: Dict[str, Adjustment]) -> Dict[str, Adjustment]:
        for key in v:
            parse_wire_key(key)
        return v

    @property
    def page(self) -> PageSize:
        return PAGE_SIZES[self.page_size]

    @property
    def is_circle(self) -> bool:
        return self.template_type == "coin"

    @property
    def footprint_mm(self) -> Tuple[float, float]:
        if self.is_circle:
            return self.diameter, self.diameter
        return self.card_width, self.card_height

    def unique_series(self) -> List[str]:
        return list(dict.fromkeys(item.amiibo_series for item in self.items))

class RenderRequest(CamelModel):
    config: TemplateConfig
    # Uploaded back images for series whose design is "custom" (data URLs)
    custom_back_images: Dict[str, str] = Field(default_factory=dict)

class CoverFitRequest(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)

class CoverFitApplyRequest(RenderRequest):
    side: Literal["fronts", "backs"] = "fronts"

class DominantColorRequest(BaseModel):
    source: str

class LayoutSummary(CamelModel):
    items_per_row: int
    rows_per_page: int
    items_per_page: int
    total_slots: int
    pages_needed: int
    page_width_px: Optional[int] = None
    page_height_px: Optional[int] = None
