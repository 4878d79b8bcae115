#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
from typing import Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

# Core & Workers
from stillframe.core.common import (
    DEFAULT_OUTPUT_FORMAT,
    FILTER_THUMB_BUCKET_MS,
    FILTER_THUMB_QUALITY,
    Image,
)
from stillframe.core.edit_state import EditState
from stillframe.core.errors import ExportError, VideoSourceError
from stillframe.core.export import ExportCompositor
from stillframe.core.filters import render_filter_thumbnails
from stillframe.core.gestures import DragMode, drag_crop, hit_test, pan_by, pinch
from stillframe.core.models import (
    FULL_CROP,
    AdjustAction,
    AssetHandle,
    FlipAction,
    NormalizedCropRect,
    PreviewLayout,
    RotateAction,
    SampledFrame,
    SamplingRun,
    VideoSource,
)
from stillframe.core.services import (
    ImageProcessor,
    LibraryWriter,
    PermissionGate,
    ThumbnailService,
    VideoPicker,
)
from stillframe.workers.sampling import SamplingPipeline, displayed_timestamp, frame_at, scrub_timestamp
from stillframe.workers.tasks import apply_actions

logger = logging.getLogger(__name__)


class EditorViewModel(QObject):
    # Signals to update the UI
    source_changed = pyqtSignal(str)
    source_error = pyqtSignal(str)
    frames_changed = pyqtSignal(list)
    progress_changed = pyqtSignal(float)
    sampling_finished = pyqtSignal()
    edits_changed = pyqtSignal()
    export_started = pyqtSignal()
    export_succeeded = pyqtSignal(str)
    export_failed = pyqtSignal(str)  # user-visible message

    def __init__(self, thumbnails: ThumbnailService, processor: ImageProcessor,
                 writer: LibraryWriter, permissions: PermissionGate,
                 output_format: str = DEFAULT_OUTPUT_FORMAT, include_adjustments: bool = True):
        super().__init__()
        self.thumbnails = thumbnails
        self.edit_state = EditState()
        self.pipeline = SamplingPipeline(
            thumbnails,
            on_frames=self._on_frames,
            on_progress=self.progress_changed.emit,
            on_finished=self._on_sampling_finished,
        )
        self.compositor = ExportCompositor(
            thumbnails, processor, writer, permissions,
            output_format=output_format, include_adjustments=include_adjustments,
        )
        self.source: Optional[VideoSource] = None
        self.frames: List[SampledFrame] = []
        self.current_timestamp: float = 0.0
        self.preview_layout = PreviewLayout(0, 0)
        self._drag_start: Optional[NormalizedCropRect] = None
        self._drag_mode = DragMode.NONE
        self._filter_thumbs: Dict[Tuple[str, int], Dict[str, Image.Image]] = {}

    # --- Source / sampling ---

    async def open_video(self, picker: VideoPicker) -> Optional[VideoSource]:
        try:
            source = await picker.pick()
        except VideoSourceError as e:
            logger.error("Could not open video: %s", e)
            self.source_error.emit(str(e))
            return None
        if source is None:
            return None
        self.set_source(source)
        return source

    def set_source(self, source: VideoSource):
        if source == self.source:
            return
        self.source = source
        self.current_timestamp = 0.0
        self.frames = []
        self.edit_state.clear_geometry()
        self.pipeline.start(source)
        self.source_changed.emit(source.uri)
        self.edits_changed.emit()

    async def wait_for_frames(self):
        await self.pipeline.join()

    def _on_frames(self, frames: List[SampledFrame]):
        self.frames = frames
        self.frames_changed.emit(frames)

    def _on_sampling_finished(self, run: SamplingRun):
        self.sampling_finished.emit()

    @property
    def duration_ms(self) -> float:
        return self.source.duration_ms if self.source else 0.0

    # --- Scrubbing ---

    def scrub(self, timestamp_ms: float):
        self.current_timestamp = min(max(0.0, timestamp_ms), self.duration_ms)

    def scrub_to_offset(self, offset_px: float, content_width_px: float):
        self.scrub(scrub_timestamp(offset_px, content_width_px, self.duration_ms))

    @property
    def current_frame(self) -> Optional[SampledFrame]:
        return frame_at(self.frames, self.current_timestamp, self.duration_ms)

    @property
    def displayed_timestamp(self) -> float:
        return displayed_timestamp(self.frames, self.current_timestamp, self.duration_ms)

    # --- Edits ---

    def select_filter(self, filter_id: str):
        self.edit_state.select_filter(filter_id)
        self.edits_changed.emit()

    def set_adjustment(self, key: str, value: float):
        self.edit_state.set_adjustment(key, value)
        self.edits_changed.emit()

    def set_crop_rect(self, rect: Optional[NormalizedCropRect]):
        self.edit_state.set_crop_rect(rect)
        self.edits_changed.emit()

    def begin_crop_drag(self, nx: float, ny: float) -> DragMode:
        self._drag_start = self.edit_state.crop_rect or FULL_CROP
        self._drag_mode = hit_test(self._drag_start, nx, ny)
        return self._drag_mode

    def update_crop_drag(self, dx: float, dy: float):
        if self._drag_start is None or self._drag_mode is DragMode.NONE:
            return
        self.set_crop_rect(drag_crop(self._drag_start, self._drag_mode, dx, dy))

    def end_crop_drag(self):
        self._drag_start = None
        self._drag_mode = DragMode.NONE

    def set_preview_layout(self, width_px: float, height_px: float):
        self.preview_layout = PreviewLayout(width_px, height_px)

    def pinch(self, factor: float):
        self.edit_state.set_zoom_pan(pinch(self.edit_state.zoom_pan, factor, self.preview_layout))
        self.edits_changed.emit()

    def pan(self, dx: float, dy: float):
        self.edit_state.set_zoom_pan(pan_by(self.edit_state.zoom_pan, dx, dy, self.preview_layout))
        self.edits_changed.emit()

    def rotate(self):
        self.edit_state.rotate_clockwise()
        self.edits_changed.emit()

    def flip(self):
        self.edit_state.toggle_flip()
        self.edits_changed.emit()

    def reset(self):
        self.edit_state.reset()
        self.end_crop_drag()
        self.edits_changed.emit()

    # --- Preview ---

    def render_preview(self) -> Optional[Image.Image]:
        """Current thumbnail with orientation and colour edits applied."""
        frame = self.current_frame
        if frame is None:
            return None
        state = self.edit_state
        actions = []
        if state.rotation_steps:
            actions.append(RotateAction(state.rotation_steps * 90))
        if state.flip_horizontal:
            actions.append(FlipAction())
        actions.append(AdjustAction(state.effective_adjustments))
        with Image.open(frame.uri) as img:
            return apply_actions(img, actions)

    async def filter_thumbnails(self) -> Dict[str, Image.Image]:
        """Filter picker previews of the displayed frame, one sample per half second."""
        if self.source is None:
            return {}
        bucket = int(self.displayed_timestamp // FILTER_THUMB_BUCKET_MS) * FILTER_THUMB_BUCKET_MS
        key = (self.source.uri, bucket)
        if key not in self._filter_thumbs:
            try:
                handle = await self.thumbnails.sample(self.source.uri, bucket, FILTER_THUMB_QUALITY)
                with Image.open(handle.uri) as img:
                    thumbs = render_filter_thumbnails(img)
            except Exception as e:
                logger.warning("No filter preview at %d ms: %s", bucket, e)
                return {}
            # only the latest bucket is kept
            self._filter_thumbs = {key: thumbs}
        return self._filter_thumbs[key]

    # --- Export ---

    async def export(self) -> Optional[AssetHandle]:
        if self.source is None:
            logger.warning("Export requested with no video loaded")
            return None
        if self.compositor.busy:
            logger.info("Export already running")
            return None

        self.export_started.emit()
        try:
            asset = await self.compositor.export(
                self.source,
                self.displayed_timestamp,
                self.edit_state.snapshot(),
                self.preview_layout,
            )
        except ExportError as e:
            logger.error("Export failed: %s", e)
            self.export_failed.emit(e.user_message)
            return None

        if asset is not None:
            self.export_succeeded.emit(asset.uri)
        return asset
