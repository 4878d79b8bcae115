# core/export.py
"""
Export: turn the edit snapshot into an ordered action list against the
full-resolution frame, then process and save it.

Action order is rotate, flip, crop (then colour adjustments). Rotation and
flip do not commute, and the crop is computed on the rotated dimensions
because that is the orientation the preview shows.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from stillframe.core.common import DEFAULT_OUTPUT_FORMAT, EXPORT_QUALITY
from stillframe.core.errors import (
    ExportGeometryDegenerate,
    ExportServiceFailure,
    PermissionDenied,
)
from stillframe.core.geometry import map_to_source, to_pixel_crop
from stillframe.core.models import (
    AdjustAction,
    AdjustmentValues,
    AssetHandle,
    CropAction,
    EditSnapshot,
    ExportAction,
    FlipAction,
    ImageDimensions,
    PixelCrop,
    PreviewLayout,
    RotateAction,
    VideoSource,
)
from stillframe.core.services import ImageProcessor, LibraryWriter, PermissionGate, ThumbnailService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPlan:
    rotate_degrees: Optional[int] = None
    flip_horizontal: bool = False
    crop: Optional[PixelCrop] = None
    adjustments: Optional[AdjustmentValues] = None

    def actions(self) -> List[ExportAction]:
        actions: List[ExportAction] = []
        if self.rotate_degrees:
            actions.append(RotateAction(self.rotate_degrees))
        if self.flip_horizontal:
            actions.append(FlipAction())
        if self.crop is not None:
            actions.append(CropAction(self.crop))
        if self.adjustments is not None:
            actions.append(AdjustAction(self.adjustments))
        return actions


def compute_export_plan(snapshot: EditSnapshot, layout: PreviewLayout,
                        source: ImageDimensions, include_adjustments: bool = True) -> ExportPlan:
    steps = snapshot.rotation_steps % 4
    rotate_degrees = steps * 90 if steps else None
    dims = source.rotated(steps)

    adjustments = None
    if include_adjustments and not snapshot.effective_adjustments.is_neutral:
        adjustments = snapshot.effective_adjustments

    has_zoom = snapshot.zoom_scale > 1
    crop_rect = snapshot.crop_rect
    has_crop = crop_rect is not None and not crop_rect.is_identity

    crop = None
    if (has_zoom or has_crop) and not layout.is_measured:
        logger.warning(
            "Preview layout not measured (%sx%s); exporting full frame",
            layout.width_px, layout.height_px,
        )
    elif has_zoom or has_crop:
        rect = map_to_source(
            layout, dims,
            zoom_scale=snapshot.zoom_scale if has_zoom else 1.0,
            pan_x=snapshot.pan_x, pan_y=snapshot.pan_y,
            crop_rect=crop_rect if has_crop else None,
        )
        try:
            crop = to_pixel_crop(rect, dims.width, dims.height)
        except ExportGeometryDegenerate as e:
            logger.warning("Dropping crop: %s", e)

    return ExportPlan(
        rotate_degrees=rotate_degrees,
        flip_horizontal=snapshot.flip_horizontal,
        crop=crop,
        adjustments=adjustments,
    )


class ExportCompositor:
    """Runs one export at a time. Never mutates edit or sampling state."""

    def __init__(self, thumbnails: ThumbnailService, processor: ImageProcessor,
                 writer: LibraryWriter, permissions: PermissionGate,
                 output_format: str = DEFAULT_OUTPUT_FORMAT, include_adjustments: bool = True):
        self.thumbnails = thumbnails
        self.processor = processor
        self.writer = writer
        self.permissions = permissions
        self.output_format = output_format
        self.include_adjustments = include_adjustments
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def export(self, source: VideoSource, timestamp_ms: float, snapshot: EditSnapshot,
                     layout: PreviewLayout) -> Optional[AssetHandle]:
        """
        Returns the saved asset, or None when another export is in flight.

        Raises PermissionDenied or ExportServiceFailure; nothing is written
        on failure.
        """
        if self._busy:
            logger.info("Export already in progress; ignoring request")
            return None
        self._busy = True
        try:
            return await self._export(source, timestamp_ms, snapshot, layout)
        finally:
            self._busy = False

    async def _export(self, source, timestamp_ms, snapshot, layout) -> AssetHandle:
        try:
            granted = await self.permissions.request()
        except Exception as e:
            raise ExportServiceFailure(f"permission check failed: {e}") from e
        if not granted:
            raise PermissionDenied("library write permission not granted")

        ts = round(timestamp_ms)
        try:
            frame = await self.thumbnails.sample(source.uri, ts, EXPORT_QUALITY)
        except Exception as e:
            raise ExportServiceFailure(f"could not fetch frame at {ts} ms: {e}") from e

        plan = compute_export_plan(snapshot, layout, frame.dimensions, self.include_adjustments)
        logger.info("Exporting %s @ %d ms with %s", source.uri, ts, plan)

        try:
            result = await self.processor.apply(frame, plan.actions(), self.output_format)
        except Exception as e:
            raise ExportServiceFailure(f"image processing failed: {e}") from e

        try:
            asset = await self.writer.save(result)
        except Exception as e:
            raise ExportServiceFailure(f"saving to library failed: {e}") from e

        logger.info("Saved %s", asset.uri)
        return asset
