# printsheet/domain/adjustments.py
"""
Per-face image adjustments (zoom and offset) and the cover-fit policy.

Fronts are adjusted per item, backs per series: every item of a series
shares one back adjustment.
"""
from typing import Dict, Mapping, Optional

from printsheet.config.settings import settings
from printsheet.delivery.schemas.body import Adjustment, ListItem
from printsheet.domain.keys import AdjustmentKey, BackKey, FrontKey, parse_wire_key

# Policy constants. Neither is derived from the geometry: DEFAULT_ZOOM is the
# starting zoom for unadjusted faces, COVER_FIT_MAX_ZOOM limits how far cover
# fit may crop very elongated artwork.
DEFAULT_ZOOM = settings.DEFAULT_ZOOM
COVER_FIT_MAX_ZOOM = settings.COVER_FIT_MAX_ZOOM


def front_key(item: ListItem) -> FrontKey:
    return FrontKey(item.head, item.tail)


def back_key(item: ListItem) -> BackKey:
    return BackKey(item.amiibo_series)


def cover_fit_zoom(width: float, height: float, max_zoom: float = COVER_FIT_MAX_ZOOM) -> float:
    """
    Zoom that makes a "contain"-placed image cover a square frame.

    A wide image placed with contain semantics fills the frame width, so it
    needs `aspect` to fill the height; a tall image needs `1/aspect`.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    aspect = width / height
    zoom = aspect if aspect > 1 else 1 / aspect
    return min(zoom, max_zoom)


class AdjustmentStore:
    def __init__(self, adjustments: Optional[Mapping[AdjustmentKey, Adjustment]] = None,
                 default_zoom: float = DEFAULT_ZOOM):
        self._adjustments: Dict[AdjustmentKey, Adjustment] = dict(adjustments or {})
        self.default = Adjustment(zoom=default_zoom, offset_x=0, offset_y=0)

    @classmethod
    def from_wire(cls, raw: Mapping[str, Adjustment], default_zoom: float = DEFAULT_ZOOM) -> "AdjustmentStore":
        return cls({parse_wire_key(k): v for k, v in raw.items()}, default_zoom=default_zoom)

    def to_wire(self) -> Dict[str, Adjustment]:
        return {key.to_wire(): adj for key, adj in self._adjustments.items()}

    def get(self, key: AdjustmentKey) -> Adjustment:
        return self._adjustments.get(key, self.default)

    def set(self, key: AdjustmentKey, adjustment: Adjustment) -> None:
        self._adjustments[key] = adjustment

    def for_slot(self, item: ListItem, is_front: bool) -> Adjustment:
        return self.get(front_key(item) if is_front else back_key(item))

    def apply_cover_fit(self, key: AdjustmentKey, width: float, height: float,
                        max_zoom: float = COVER_FIT_MAX_ZOOM) -> Adjustment:
        adjustment = Adjustment(zoom=cover_fit_zoom(width, height, max_zoom), offset_x=0, offset_y=0)
        self.set(key, adjustment)
        return adjustment

    def __contains__(self, key: AdjustmentKey) -> bool:
        return key in self._adjustments

    def __len__(self) -> int:
        return len(self._adjustments)
