import pytest

from printsheet.delivery.schemas.body import MAX_ZOOM, Adjustment
from printsheet.domain.adjustments import (
    COVER_FIT_MAX_ZOOM,
    DEFAULT_ZOOM,
    AdjustmentStore,
    back_key,
    cover_fit_zoom,
    front_key,
)
from printsheet.domain.keys import BackKey, FrontKey, parse_wire_key

from conftest import make_config, make_item


def test_policy_constants():
    assert DEFAULT_ZOOM == 1.2
    assert COVER_FIT_MAX_ZOOM == 2.0


@pytest.mark.parametrize("w,h", [(800, 400), (400, 800)])
def test_cover_fit_scenario_d_is_capped(w, h):
    assert cover_fit_zoom(w, h) == 2.0


@pytest.mark.parametrize("w,h,expected", [(300, 200, 1.5), (200, 300, 1.5), (100, 100, 1.0), (150, 100, 1.5)])
def test_cover_fit_is_max_of_aspect_and_inverse(w, h, expected):
    assert cover_fit_zoom(w, h) == pytest.approx(expected)
    assert cover_fit_zoom(w, h, max_zoom=10) == pytest.approx(max(w / h, h / w))


@pytest.mark.parametrize("w,h", [(1000, 100), (10, 990), (3, 1)])
def test_cover_fit_never_exceeds_cap(w, h):
    assert cover_fit_zoom(w, h) <= COVER_FIT_MAX_ZOOM


def test_cover_fit_cap_is_overridable():
    assert cover_fit_zoom(1000, 100, max_zoom=4) == 4


def test_cover_fit_rejects_empty_image():
    with pytest.raises(ValueError):
        cover_fit_zoom(0, 100)


def test_missing_adjustment_uses_default():
    store = AdjustmentStore()
    adj = store.get(FrontKey("00000001", "000003e9"))
    assert (adj.zoom, adj.offset_x, adj.offset_y) == (1.2, 0, 0)


def test_backs_are_shared_per_series():
    store = AdjustmentStore()
    a = make_item(1, series="Kirby")
    b = make_item(2, series="Kirby")
    store.set(back_key(a), Adjustment(zoom=1.5, offset_x=10, offset_y=-20))

    assert store.for_slot(b, is_front=False).zoom == 1.5
    assert store.for_slot(b, is_front=True).zoom == 1.2


def test_wire_keys_round_trip():
    raw = {
        "00000001-000003e9": Adjustment(zoom=1.4, offset_x=5, offset_y=0),
        "back-Super Mario Bros.": Adjustment(zoom=2.0, offset_x=0, offset_y=-3),
    }
    store = AdjustmentStore.from_wire(raw)
    assert FrontKey("00000001", "000003e9") in store
    assert BackKey("Super Mario Bros.") in store
    assert store.to_wire() == raw


def test_back_prefix_wins_over_front_shape():
    assert parse_wire_key("back-0000-0000") == BackKey("0000-0000")
    assert parse_wire_key("abcd0001-ef000002") == FrontKey("abcd0001", "ef000002")


def test_malformed_wire_key():
    with pytest.raises(ValueError):
        parse_wire_key("nodash")


def test_apply_cover_fit_resets_offsets():
    item = make_item(7)
    store = AdjustmentStore({front_key(item): Adjustment(zoom=1.0, offset_x=40, offset_y=40)})
    adj = store.apply_cover_fit(front_key(item), 300, 200)
    assert (adj.zoom, adj.offset_x, adj.offset_y) == (1.5, 0, 0)
    assert store.get(front_key(item)) == adj


def test_adjustment_offsets_are_bounded():
    with pytest.raises(ValueError):
        Adjustment(zoom=1, offset_x=150, offset_y=0)
    with pytest.raises(ValueError):
        Adjustment(zoom=-1)
    with pytest.raises(ValueError):
        Adjustment(zoom=MAX_ZOOM + 0.01)
    assert Adjustment(zoom=MAX_ZOOM).zoom == MAX_ZOOM


def test_config_rejects_malformed_adjustment_keys():
    with pytest.raises(ValueError, match="nodash"):
        make_config(1, image_adjustments={"nodash": Adjustment(zoom=1)})
    config = make_config(1, image_adjustments={"back-Kirby": Adjustment(zoom=1)})
    assert list(config.image_adjustments) == ["back-Kirby"]
