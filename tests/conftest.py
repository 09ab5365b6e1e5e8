import base64
import io

import pytest
from PIL import Image

from printsheet.delivery.schemas.body import ListItem, TemplateConfig


def solid_image(color, size=(100, 100), mode="RGBA"):
    return Image.new(mode, size, color)


def data_url(img):
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def make_item(n, image="", series="Super Smash Bros.", name=None):
    return ListItem(
        head=f"{n:08x}",
        tail=f"{n + 1000:08x}",
        name=name or f"Figure {n}",
        image=image,
        amiibo_series=series,
        game_series="Super Mario",
        character=f"Character {n}",
        type="Figure",
    )


def make_config(n_items=0, **overrides):
    fields = dict(template_type="coin", page_size="A4", diameter=30, margin=5, spacing=5)
    fields.update(overrides)
    items = fields.pop("items", None)
    if items is None:
        items = [make_item(i) for i in range(n_items)]
    return TemplateConfig(items=items, **fields)


@pytest.fixture
def blue_with_red_bottom():
    """100x100 blue image whose bottom 10% rows are red."""
    img = solid_image((0, 0, 255, 255))
    img.paste((255, 0, 0, 255), (0, 90, 100, 100))
    return img
