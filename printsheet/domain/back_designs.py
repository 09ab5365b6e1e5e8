# printsheet/domain/back_designs.py
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from printsheet.config.settings import settings
from printsheet.infrastructure.cv.back_design import back_design_data_url

logger = logging.getLogger(__name__)

CUSTOM_DESIGN_ID = "custom"


@dataclass(frozen=True)
class BackDesign:
    id: str
    name: str
    color: str
    text_color: str
    image_url: Optional[str] = None   # static asset, relative to the assets dir
    subtitle: Optional[str] = None

    @property
    def is_generated(self) -> bool:
        return self.image_url is None


# Image-based designs first, then generated ones
BACK_DESIGNS: List[BackDesign] = [
    BackDesign("amiibo-logo", "amiibo Logo", "#e60012", "#ffffff", image_url="/AMIIBO_ART.png"),
    BackDesign("mario", "Super Mario", "#e60012", "#ffffff", image_url="/MARIO_CAPY_ART.png"),
    BackDesign("animal-crossing", "Animal Crossing", "#7bc67b", "#ffffff", image_url="/ACNH_ART.png"),
    BackDesign("kirby", "Kirby", "#ff69b4", "#ffffff", image_url="/KIRBY_ART.png"),
    BackDesign("amiibo-explorer", "Amiibo Explorer", "#1a1a1a", "#ffffff", subtitle="Collection"),
    BackDesign("smash-bros", "Super Smash Bros.", "#ff6b00", "#ffffff", subtitle="Ultimate"),
    BackDesign("zelda", "The Legend of Zelda", "#006400", "#ffd700", subtitle="Series"),
    BackDesign("pokemon", "Pokemon", "#ffcb05", "#3d7dca", subtitle="Series"),
    BackDesign("splatoon", "Splatoon", "#ff5722", "#00e5ff", subtitle="Series"),
]

_BY_ID: Dict[str, BackDesign] = {d.id: d for d in BACK_DESIGNS}


def get_back_design(design_id: str) -> Optional[BackDesign]:
    return _BY_ID.get(design_id)


class BackDesignResolver:
    """Maps a series to the image source of its selected back design."""

    def __init__(self, series_designs: Mapping[str, str], is_circle: bool,
                 custom_images: Optional[Mapping[str, str]] = None,
                 assets_dir: str = settings.ASSETS_DIR,
                 size: int = settings.BACK_DESIGN_PRINT_SIZE,
                 default_design: str = settings.DEFAULT_BACK_DESIGN):
        self.series_designs = dict(series_designs)
        self.custom_images = dict(custom_images or {})
        self.is_circle = is_circle
        self.assets_dir = assets_dir
        self.size = size
        self.default_design = default_design

    def design_id(self, series: str) -> str:
        return self.series_designs.get(series) or self.default_design

    def resolve(self, series: str) -> Optional[str]:
        design_id = self.design_id(series)
        if design_id == CUSTOM_DESIGN_ID:
            return self.custom_images.get(series)

        design = get_back_design(design_id)
        if design is None:
            logger.warning(f"Unknown back design '{design_id}' for series '{series}', back renders without image.")
            return None
        if design.image_url:
            path = os.path.join(self.assets_dir, design.image_url.lstrip("/"))
            if os.path.isfile(path):
                return path
            logger.warning(f"Back design asset not found at '{path}' for series '{series}', using the generated '{design_id}' design.")
        return back_design_data_url(design, self.size, self.is_circle)

    def resolve_all(self, series_names) -> Dict[str, Optional[str]]:
        return {series: self.resolve(series) for series in series_names}
