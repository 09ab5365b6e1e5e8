import pytest

from printsheet.delivery.schemas.body import MAX_ZOOM, Adjustment
from printsheet.domain.adjustments import AdjustmentStore
from printsheet.domain.keys import BackKey
from printsheet.domain.layout import LayoutError, mm_to_px
from printsheet.domain.page_renderer import PageRenderer, build_slots
from printsheet.infrastructure.cv.colors import FALLBACK_COLOR
from printsheet.infrastructure.cv.image_process import banner_geometry, draw_banner, place_image, shape_mask

from conftest import make_config, make_item, solid_image

WHITE = (255, 255, 255)

# A4 coin template, margin 5, spacing 5, diameter 30
MARGIN = mm_to_px(5)
SPACING = mm_to_px(5)
COIN = mm_to_px(30)


def _renderer(config, images=None, backs=None, adjustments=None):
    return PageRenderer(config, images or {}, backs or {}, adjustments or AdjustmentStore())


def _banner_point(col, row=0, size=(COIN, COIN), is_circle=True):
    """A point inside the pill fill, left of the (centred) name text."""
    (x0, y0, x1, y1), *_ = banner_geometry(size, is_circle)
    x = MARGIN + col * (size[0] + SPACING)
    y = MARGIN + row * (size[1] + SPACING)
    return round(x + x0 + (x1 - x0) * 0.1), round(y + (y0 + y1) / 2)


def test_slots_alternate_front_and_back_in_item_order():
    items = [make_item(i) for i in range(3)]
    slots = build_slots(items)
    assert [(s.item.head, s.is_front) for s in slots] == [
        (items[0].head, True), (items[0].head, False),
        (items[1].head, True), (items[1].head, False),
        (items[2].head, True), (items[2].head, False),
    ]


def test_degenerate_layout_fails_before_rendering():
    with pytest.raises(LayoutError):
        _renderer(make_config(3, diameter=250))


def test_zero_and_sub_pixel_footprints_are_rejected_before_rendering():
    with pytest.raises(ValueError):
        make_config(1, diameter=0)
    with pytest.raises(LayoutError):
        _renderer(make_config(1, template_type="card", card_width=0.1, card_height=85))


def test_fifteen_items_fit_one_page():
    pages = _renderer(make_config(15)).render()
    assert len(pages) == 1
    assert len(pages[0].slots) == 30


def test_pagination_is_complete_and_ordered():
    config = make_config(25)
    pages = _renderer(config).render()

    assert len(pages) == 2
    assert [len(p.slots) for p in pages] == [40, 10]
    placed = [slot for page in pages for slot in page.slots]
    assert placed == build_slots(config.items)
    assert [p.index for p in pages] == [0, 1]


def test_pages_are_page_sized_rgb():
    page = _renderer(make_config(1)).render()[0]
    assert page.image.mode == "RGB"
    assert page.image.size == (2480, 3508)
    assert page.to_png()[:8] == b"\x89PNG\r\n\x1a\n"


def test_no_items_renders_no_pages():
    assert _renderer(make_config(0)).render() == []


def test_progress_reaches_100_percent():
    seen = []
    _renderer(make_config(25)).render(progress=lambda pct, msg: seen.append(pct))
    assert seen == [50, 100]


def test_front_image_and_banner_color(blue_with_red_bottom):
    item = make_item(1, image="front.png", name="Al")
    config = make_config(items=[item])
    page = _renderer(config, images={"front.png": blue_with_red_bottom}).render()[0].image

    center = MARGIN + COIN // 2
    assert page.getpixel((center, center)) == (0, 0, 255)
    # banner fill takes the bottom-centre colour of the artwork
    assert page.getpixel(_banner_point(0)) == (255, 0, 0)
    # outside the coin stays white
    assert page.getpixel((MARGIN + 3, MARGIN + 3)) == WHITE


def test_back_uses_series_image():
    item = make_item(1, image="front.png", series="Kirby")
    config = make_config(items=[item])
    images = {"front.png": solid_image((0, 0, 255, 255)), "kirby-back": solid_image((0, 200, 0, 255))}
    page = _renderer(config, images=images, backs={"Kirby": "kirby-back"}).render()[0].image

    back_center = (MARGIN + COIN + SPACING + COIN // 2, MARGIN + COIN // 2)
    assert page.getpixel(back_center) == (0, 200, 0)


def test_missing_front_image_keeps_outline_and_banner():
    item = make_item(1, image="unreachable.png", name="Al")
    page = _renderer(make_config(items=[item])).render()[0].image

    center = MARGIN + COIN // 2
    assert page.getpixel((center, center)) == WHITE
    assert "rgb(%d,%d,%d)" % page.getpixel(_banner_point(0)) == "rgb(107,114,128)"
    assert FALLBACK_COLOR == "#6b7280"
    # outline on the left edge of the coin
    assert page.getpixel((MARGIN, center)) != WHITE


def test_back_offset_moves_image():
    item = make_item(1, image="front.png", series="Kirby")
    images = {"back": solid_image((0, 200, 0, 255))}
    store = AdjustmentStore({BackKey("Kirby"): Adjustment(zoom=0.5, offset_x=0, offset_y=0)})
    page = _renderer(make_config(items=[item]), images=images, backs={"Kirby": "back"},
                     adjustments=store).render()[0].image

    back_x = MARGIN + COIN + SPACING
    cy = MARGIN + COIN // 2
    # zoom 0.5 leaves a white ring inside the coin
    assert page.getpixel((back_x + COIN // 2, cy)) == (0, 200, 0)
    assert page.getpixel((back_x + 20, cy)) == WHITE

    shifted = AdjustmentStore({BackKey("Kirby"): Adjustment(zoom=0.5, offset_x=-25, offset_y=0)})
    page = _renderer(make_config(items=[item]), images=images, backs={"Kirby": "back"},
                     adjustments=shifted).render()[0].image
    assert page.getpixel((back_x + COIN // 2 + COIN // 4 + 20, cy)) == WHITE
    assert page.getpixel((back_x + COIN // 4, cy)) == (0, 200, 0)


def test_card_layout_places_nine_per_page(blue_with_red_bottom):
    items = [make_item(i, image="front.png") for i in range(5)]
    config = make_config(items=items, template_type="card", card_width=54, card_height=85)
    pages = _renderer(config, images={"front.png": blue_with_red_bottom}).render()

    assert [len(p.slots) for p in pages] == [9, 1]
    card = (mm_to_px(54), mm_to_px(85))
    # first card front: image centre and bottom banner
    assert pages[0].image.getpixel((MARGIN + card[0] // 2, MARGIN + card[1] // 2)) == (0, 0, 255)
    (x0, y0, x1, y1), *_ = banner_geometry(card, is_circle=False)
    point = (round(MARGIN + x0 + (x1 - x0) * 0.1), round(MARGIN + (y0 + y1) / 2))
    assert pages[0].image.getpixel(point) == (255, 0, 0)


def test_place_image_crops_before_scaling_at_extreme_zoom():
    tile = solid_image((0, 0, 0, 0), size=(COIN, COIN))
    clip = shape_mask((COIN, COIN), True)
    place_image(tile, solid_image((200, 0, 0, 255), size=(10, 10)), 100000, 0, 0, clip)
    assert tile.getpixel((COIN // 2, COIN // 2)) == (200, 0, 0, 255)
    assert tile.getpixel((0, 0))[3] == 0


def test_place_image_contains_wide_images():
    tile = solid_image((0, 0, 0, 0))
    full = shape_mask((100, 100), False)
    place_image(tile, solid_image((0, 0, 200, 255), size=(200, 100)), 1, 0, 0, full)
    # 100x50 strip centred vertically
    assert tile.getpixel((50, 50)) == (0, 0, 200, 255)
    assert tile.getpixel((50, 10))[3] == 0
    assert tile.getpixel((50, 90))[3] == 0


def test_image_pushed_out_of_frame_leaves_face_empty():
    tile = solid_image((0, 0, 0, 0))
    full = shape_mask((100, 100), False)
    place_image(tile, solid_image((0, 0, 200, 255)), 0.5, 100, 0, full)
    assert tile.getextrema()[3] == (0, 0)


def test_render_at_max_zoom():
    item = make_item(1, image="tiny.png")
    store = AdjustmentStore({BackKey(item.amiibo_series): Adjustment(zoom=MAX_ZOOM)})
    images = {"tiny.png": solid_image((0, 0, 255, 255), size=(10, 10)), "back": solid_image((0, 200, 0, 255), size=(10, 10))}
    page = _renderer(make_config(items=[item]), images=images, backs={item.amiibo_series: "back"},
                     adjustments=store).render()[0].image
    back_x = MARGIN + COIN + SPACING
    assert page.getpixel((back_x + COIN // 2, MARGIN + COIN // 2)) == (0, 200, 0)


def test_banner_name_budget_per_shape():
    assert banner_geometry((COIN, COIN), is_circle=True)[3] == 12
    assert banner_geometry((mm_to_px(54), mm_to_px(85)), is_circle=False)[3] == 18


@pytest.mark.parametrize("is_circle,size,budget", [
    (True, (COIN, COIN), 12),
    (False, (mm_to_px(54), mm_to_px(85)), 18),
])
def test_long_names_are_cut_to_the_budget(is_circle, size, budget):
    name = "Captain Toad Treasure Tracker Edition"

    def banner(text):
        tile = solid_image((0, 0, 0, 0), size=size)
        draw_banner(tile, text, "#336699", is_circle, 0)
        return tile.tobytes()

    assert banner(name) == banner(name[:budget])
    assert banner(name) != banner(name[:budget - 1])
