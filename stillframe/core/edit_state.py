# core/edit_state.py
import logging
from typing import Optional

from stillframe.core.common import clamp
from stillframe.core.filters import DEFAULT_FILTER, get_filter
from stillframe.core.models import (
    ADJUSTMENT_RANGES,
    NEUTRAL_ADJUSTMENTS,
    AdjustmentValues,
    EditSnapshot,
    FilterPreset,
    NormalizedCropRect,
    ZoomPan,
)

logger = logging.getLogger(__name__)


def effective_adjustments(selected_filter: FilterPreset, manual: AdjustmentValues) -> AdjustmentValues:
    """Combines a preset with the manual slider deltas.

    The weights are fixed stylistic constants. Warmth only ever adds sepia,
    while it rotates hue in both directions.
    """
    f = selected_filter.adjustments
    warm_sepia = manual.warmth * 0.5 if manual.warmth > 0 else 0.0
    return AdjustmentValues(
        brightness=clamp(f.brightness + manual.brightness
                         + manual.exposure * 0.5 + manual.highlights * 0.2, -1.0, 1.0),
        contrast=clamp(f.contrast + manual.contrast + manual.shadows * 0.3, -1.0, 1.0),
        saturation=clamp(f.saturation + manual.saturation, -1.0, 1.0),
        sepia=clamp(f.sepia + warm_sepia, 0.0, 1.0),
        hue_rotate_degrees=f.hue_rotate_degrees + manual.warmth * 30,
        vignette=clamp(manual.vignette, 0.0, 1.0),
    )


class EditState:
    """Current edit intent for the displayed frame."""

    def __init__(self):
        self.selected_filter: FilterPreset = DEFAULT_FILTER
        self.manual_adjustments: AdjustmentValues = NEUTRAL_ADJUSTMENTS
        self.crop_rect: Optional[NormalizedCropRect] = None
        self.zoom_pan: ZoomPan = ZoomPan()
        self.flip_horizontal: bool = False
        self.rotation_steps: int = 0

    @property
    def effective_adjustments(self) -> AdjustmentValues:
        return effective_adjustments(self.selected_filter, self.manual_adjustments)

    @property
    def zoom_scale(self) -> float:
        return self.zoom_pan.zoom_scale

    @property
    def has_edits(self) -> bool:
        return (
            self.selected_filter is not DEFAULT_FILTER
            or not self.manual_adjustments.is_neutral
            or self.crop_rect is not None
            or self.zoom_pan != ZoomPan()
            or self.flip_horizontal
            or self.rotation_steps != 0
        )

    # --- Filters / sliders ---

    def select_filter(self, preset) -> FilterPreset:
        """Accepts a preset or its id. Manual deltas are kept."""
        if isinstance(preset, str):
            preset = get_filter(preset)
        self.selected_filter = preset
        return preset

    def set_adjustment(self, key: str, value: float) -> float:
        if key not in ADJUSTMENT_RANGES:
            raise KeyError(f"'{key}' is not a manual adjustment")
        lo, hi = ADJUSTMENT_RANGES[key]
        value = clamp(float(value), lo, hi)
        self.manual_adjustments = self.manual_adjustments.with_value(key, value)
        return value

    # --- Geometry ---

    def set_crop_rect(self, rect: Optional[NormalizedCropRect]):
        self.crop_rect = rect

    def set_zoom_pan(self, zoom_pan: ZoomPan):
        if zoom_pan.zoom_scale < 1:
            raise ValueError(f"zoom scale must be >= 1, got {zoom_pan.zoom_scale}")
        self.zoom_pan = zoom_pan

    def rotate_clockwise(self) -> int:
        self.rotation_steps = (self.rotation_steps + 1) % 4
        return self.rotation_steps

    def toggle_flip(self) -> bool:
        self.flip_horizontal = not self.flip_horizontal
        return self.flip_horizontal

    def clear_geometry(self):
        """Crop and zoom refer to the old video's framing; drop them."""
        self.crop_rect = None
        self.zoom_pan = ZoomPan()

    def reset(self):
        self.selected_filter = DEFAULT_FILTER
        self.manual_adjustments = NEUTRAL_ADJUSTMENTS
        self.crop_rect = None
        self.zoom_pan = ZoomPan()
        self.flip_horizontal = False
        self.rotation_steps = 0
        logger.debug("Edit state reset")

    def snapshot(self) -> EditSnapshot:
        return EditSnapshot(
            selected_filter=self.selected_filter,
            manual_adjustments=self.manual_adjustments,
            effective_adjustments=self.effective_adjustments,
            crop_rect=self.crop_rect,
            zoom_scale=self.zoom_pan.zoom_scale,
            pan_x=self.zoom_pan.pan_x,
            pan_y=self.zoom_pan.pan_y,
            flip_horizontal=self.flip_horizontal,
            rotation_steps=self.rotation_steps,
        )
