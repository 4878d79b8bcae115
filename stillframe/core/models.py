# core/models.py
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Tuple, Union

from stillframe.core.common import MIN_FRACTION

_EPS = 1e-9


@dataclass(frozen=True)
class VideoSource:
    uri: str
    duration_ms: float

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0


@dataclass(frozen=True)
class SampledFrame:
    uri: str
    timestamp_ms: float
    width: int = 0
    height: int = 0


@dataclass
class SamplingRun:
    """One sampling sweep over a video. Owned and mutated by the pipeline only."""
    source: VideoSource
    generation: int
    target_count: int
    interval_ms: float
    completed_batches: int = 0
    frames: List[SampledFrame] = field(default_factory=list)
    done: bool = False
    cancelled: bool = False

    @property
    def timestamps(self) -> List[float]:
        return [i * self.interval_ms for i in range(self.target_count)]


@dataclass(frozen=True)
class NormalizedCropRect:
    """Crop in fractions of the visible preview area."""
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            v = getattr(self, name)
            if v < -_EPS or v > 1 + _EPS:
                raise ValueError(f"crop {name}={v} outside [0, 1]")
        if self.x + self.width > 1 + _EPS or self.y + self.height > 1 + _EPS:
            raise ValueError(f"crop {self} extends past the preview")
        if self.width < MIN_FRACTION - _EPS or self.height < MIN_FRACTION - _EPS:
            raise ValueError(f"crop {self} smaller than {MIN_FRACTION}")

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> "NormalizedCropRect":
        return cls(x=left, y=top, width=right - left, height=bottom - top)

    @property
    def edges(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def is_identity(self) -> bool:
        return not (self.x > 0 or self.y > 0 or self.width < 1 or self.height < 1)


FULL_CROP = NormalizedCropRect()


@dataclass(frozen=True)
class AdjustmentValues:
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    exposure: float = 0.0
    highlights: float = 0.0
    shadows: float = 0.0
    warmth: float = 0.0
    vignette: float = 0.0
    # Filter presets only
    sepia: float = 0.0
    hue_rotate_degrees: float = 0.0

    @property
    def is_neutral(self) -> bool:
        return all(getattr(self, f.name) == 0 for f in fields(self))

    def with_value(self, key: str, value: float) -> "AdjustmentValues":
        return replace(self, **{key: value})


NEUTRAL_ADJUSTMENTS = AdjustmentValues()

# Slider ranges for user-settable values
ADJUSTMENT_RANGES = {
    "brightness": (-1.0, 1.0),
    "contrast": (-1.0, 1.0),
    "saturation": (-1.0, 1.0),
    "exposure": (-1.0, 1.0),
    "highlights": (-1.0, 1.0),
    "shadows": (-1.0, 1.0),
    "warmth": (-1.0, 1.0),
    "vignette": (0.0, 1.0),
}
MANUAL_KEYS = tuple(ADJUSTMENT_RANGES)


@dataclass(frozen=True)
class FilterPreset:
    id: str
    name: str
    adjustments: AdjustmentValues


@dataclass(frozen=True)
class ZoomPan:
    zoom_scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


@dataclass(frozen=True)
class PreviewLayout:
    width_px: float
    height_px: float

    @property
    def is_measured(self) -> bool:
        return self.width_px > 0 and self.height_px > 0


@dataclass(frozen=True)
class ImageDimensions:
    width: int
    height: int

    def rotated(self, rotation_steps: int) -> "ImageDimensions":
        if rotation_steps % 2:
            return ImageDimensions(self.height, self.width)
        return self


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in source image pixels (fractional)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class PixelCrop:
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow expects it."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class ImageHandle:
    uri: str
    width: int
    height: int

    @property
    def dimensions(self) -> ImageDimensions:
        return ImageDimensions(self.width, self.height)


@dataclass(frozen=True)
class AssetHandle:
    uri: str


# --- Export actions, applied in order ---


@dataclass(frozen=True)
class RotateAction:
    degrees: int  # clockwise


@dataclass(frozen=True)
class FlipAction:
    horizontal: bool = True


@dataclass(frozen=True)
class CropAction:
    crop: PixelCrop


@dataclass(frozen=True)
class AdjustAction:
    adjustments: AdjustmentValues


ExportAction = Union[RotateAction, FlipAction, CropAction, AdjustAction]


@dataclass(frozen=True)
class EditSnapshot:
    """Immutable copy of the edit state taken when export starts."""
    selected_filter: FilterPreset
    manual_adjustments: AdjustmentValues
    effective_adjustments: AdjustmentValues
    crop_rect: Optional[NormalizedCropRect] = None
    zoom_scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    flip_horizontal: bool = False
    rotation_steps: int = 0
