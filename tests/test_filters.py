"""Unit tests for the filter catalog and preview rendering."""

import numpy as np
import pytest
from PIL import Image

from stillframe.core.filters import (
    DEFAULT_FILTER,
    FILTER_PRESETS,
    FILTERS_BY_ID,
    get_filter,
    render_adjustments,
    render_filter_thumbnails,
)
from stillframe.core.models import AdjustmentValues


@pytest.fixture
def image():
    img = Image.new("RGB", (40, 30), (180, 90, 60))
    img.paste((20, 200, 120), (0, 0, 20, 30))
    return img


class TestCatalog:

    def test_exactly_one_noop_default(self):
        noops = [f for f in FILTER_PRESETS if f.adjustments.is_neutral]
        assert noops == [DEFAULT_FILTER]
        assert DEFAULT_FILTER.id == "none"

    def test_ids_unique(self):
        assert len(FILTERS_BY_ID) == len(FILTER_PRESETS) == 10

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            FILTERS_BY_ID["custom"] = DEFAULT_FILTER

    def test_unknown_filter(self):
        with pytest.raises(KeyError):
            get_filter("sparkle")


class TestRendering:

    def test_neutral_is_unchanged(self, image):
        out = render_adjustments(image, AdjustmentValues())
        assert np.array_equal(np.asarray(out), np.asarray(image))

    def test_full_desaturation_is_gray(self, image):
        out = np.asarray(render_adjustments(image, AdjustmentValues(saturation=-1.0))).astype(int)
        assert np.abs(out[:, :, 0] - out[:, :, 1]).max() <= 1
        assert np.abs(out[:, :, 1] - out[:, :, 2]).max() <= 1

    def test_brightness_darkens(self, image):
        out = render_adjustments(image, AdjustmentValues(brightness=-0.5))
        assert np.asarray(out).mean() < np.asarray(image).mean()

    def test_vignette_darkens_corners_only(self):
        img = Image.new("RGB", (101, 101), (200, 200, 200))
        out = np.asarray(render_adjustments(img, AdjustmentValues(vignette=1.0)))
        assert tuple(out[50, 50]) == (200, 200, 200)
        assert out[0, 0, 0] < 100

    def test_hue_rotate_full_turn_is_identity(self, image):
        out = render_adjustments(image, AdjustmentValues(hue_rotate_degrees=360))
        diff = np.abs(np.asarray(out).astype(int) - np.asarray(image).astype(int))
        assert diff.max() <= 1

    def test_sepia_warms(self):
        img = Image.new("RGB", (4, 4), (100, 100, 100))
        r, g, b = render_adjustments(img, AdjustmentValues(sepia=1.0)).getpixel((0, 0))
        assert r > g > b

    def test_thumbnails_for_every_preset(self, image):
        thumbs = render_filter_thumbnails(image, size=16)
        assert set(thumbs) == set(FILTERS_BY_ID)
        assert all(max(t.size) <= 16 for t in thumbs.values())
