"""Unit tests for preview -> source coordinate mapping."""

import pytest

from stillframe.core.errors import ExportGeometryDegenerate
from stillframe.core.geometry import (
    apply_crop_rect,
    apply_zoom_pan,
    clamp_to_image,
    cover_fit,
    map_to_source,
    round_half_up,
    to_pixel_crop,
    visible_image_window,
)
from stillframe.core.models import (
    FULL_CROP,
    ImageDimensions,
    NormalizedCropRect,
    PixelRect,
    PreviewLayout,
)

SIZES = [
    (375, 667, 1920, 1080),
    (375, 667, 1080, 1920),
    (800, 600, 640, 480),
    (100, 100, 3000, 50),
    (1, 1000, 1000, 1),
]


class TestCoverFit:

    @pytest.mark.parametrize("cw,ch,iw,ih", SIZES)
    def test_covers_without_gaps(self, cw, ch, iw, ih):
        scale = cover_fit(cw, ch, iw, ih)
        # one axis matches exactly, the other overflows
        if cw / iw >= ch / ih:
            assert scale * iw == pytest.approx(cw)
            assert scale * ih >= ch - 1e-9
        else:
            assert scale * ih == pytest.approx(ch)
            assert scale * iw >= cw - 1e-9

    def test_rejects_empty_image(self):
        with pytest.raises(ValueError):
            cover_fit(375, 667, 0, 1080)


class TestVisibleWindow:

    @pytest.mark.parametrize("cw,ch,iw,ih", SIZES)
    def test_inside_image(self, cw, ch, iw, ih):
        w = visible_image_window(cw, ch, iw, ih)
        assert w.x >= -1e-9
        assert w.y >= -1e-9
        assert w.right <= iw + 1e-9
        assert w.bottom <= ih + 1e-9

    def test_centers_overflow(self):
        w = visible_image_window(375, 667, 1920, 1080)
        assert w.y == pytest.approx(0)
        assert w.height == pytest.approx(1080)
        assert w.width == pytest.approx(607.2, abs=0.1)
        assert w.x == pytest.approx((1920 - w.width) / 2)


class TestZoomPan:

    def test_zoom_shrinks_around_center(self):
        window = PixelRect(100, 0, 600, 1000)
        z = apply_zoom_pan(window, 2.0, 0, 0, cover_scale=0.5)
        assert z.width == pytest.approx(300)
        assert z.height == pytest.approx(500)
        assert z.x + z.width / 2 == pytest.approx(400)
        assert z.y + z.height / 2 == pytest.approx(500)

    def test_pan_right_reveals_left_side(self):
        window = PixelRect(0, 0, 600, 1000)
        z = apply_zoom_pan(window, 2.0, 50, -20, cover_scale=0.5)
        # 50 screen px at 2x zoom and 0.5 cover scale = 50 image px
        assert z.x == pytest.approx(150 - 50)
        assert z.y == pytest.approx(250 + 20)

    def test_identity_pipeline_is_cover_window(self):
        layout = PreviewLayout(375, 667)
        dims = ImageDimensions(1920, 1080)
        window = visible_image_window(375, 667, 1920, 1080)
        scale = cover_fit(375, 667, 1920, 1080)
        zoomed = apply_zoom_pan(window, 1.0, 0, 0, scale)
        cropped = apply_crop_rect(zoomed, FULL_CROP)
        for a, b in ((cropped.x, window.x), (cropped.y, window.y),
                     (cropped.width, window.width), (cropped.height, window.height)):
            assert a == pytest.approx(b)
        mapped = map_to_source(layout, dims, 1.0, 0, 0, FULL_CROP)
        assert mapped.x == pytest.approx(window.x)
        assert mapped.width == pytest.approx(window.width)


class TestCropAndClamp:

    def test_crop_is_relative_to_window(self):
        window = PixelRect(100, 50, 400, 200)
        r = apply_crop_rect(window, NormalizedCropRect(0.5, 0.25, 0.5, 0.5))
        assert (r.x, r.y, r.width, r.height) == (300, 100, 200, 100)

    def test_clamp_intersects_with_image(self):
        r = clamp_to_image(PixelRect(-10, 20, 100, 500), 50, 300)
        assert (r.x, r.y, r.width, r.height) == (0, 20, 50, 280)

    def test_clamp_fully_outside_is_empty(self):
        r = clamp_to_image(PixelRect(500, 10, 100, 10), 50, 300)
        assert r.width == 0

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(807.4) == 807

    def test_pixel_crop_stays_in_image(self):
        crop = to_pixel_crop(PixelRect(99.6, 0, 100.6, 10), 200, 10)
        assert crop.x + crop.width <= 200

    def test_empty_crop_is_degenerate(self):
        with pytest.raises(ExportGeometryDegenerate):
            to_pixel_crop(PixelRect(10, 10, 0.2, 5), 100, 100)


def test_portrait_preview_of_landscape_crop_middle_half():
    rect = map_to_source(
        PreviewLayout(375, 667), ImageDimensions(1920, 1080),
        crop_rect=NormalizedCropRect(0.25, 0, 0.5, 1),
    )
    crop = to_pixel_crop(rect, 1920, 1080)
    assert (crop.x, crop.y, crop.width, crop.height) == (808, 0, 304, 1080)
