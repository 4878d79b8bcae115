#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Progressive thumbnail sampling for the film strip.

A run samples `target_count` evenly spaced frames in batches of
`batch_size` concurrent requests. Every batch is awaited as a whole before
the next one starts. A frame at t=0 is requested up front so the preview is
never blank while the sweep runs.

Replacing the source cancels the previous run by bumping a generation
counter. In-flight requests of the old run are not aborted; their results
are dropped because every publish checks the generation it was started with.
"""

import asyncio
import bisect
import logging
import math
from enum import Enum
from typing import Callable, List, Optional, Sequence

from stillframe.core.common import (
    BATCH_SIZE,
    MAX_COUNT,
    MIN_COUNT,
    PREVIEW_QUALITY,
    SAMPLES_PER_SECOND,
    clamp,
)
from stillframe.core.models import SampledFrame, SamplingRun, VideoSource
from stillframe.core.services import ThumbnailService

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


def target_count_for(duration_ms: float, min_count: int = MIN_COUNT, max_count: int = MAX_COUNT) -> int:
    count = math.floor(duration_ms / 1000.0 * SAMPLES_PER_SECOND)
    return int(clamp(count, min_count, max_count))


class SamplingPipeline:
    def __init__(self, thumbnails: ThumbnailService,
                 batch_size: int = BATCH_SIZE,
                 max_count: int = MAX_COUNT,
                 quality: float = PREVIEW_QUALITY,
                 on_frames: Optional[Callable[[List[SampledFrame]], None]] = None,
                 on_progress: Optional[Callable[[float], None]] = None,
                 on_finished: Optional[Callable[[SamplingRun], None]] = None):
        self.thumbnails = thumbnails
        self.batch_size = max(1, int(batch_size))
        self.max_count = max_count
        self.quality = quality
        self.on_frames = on_frames
        self.on_progress = on_progress
        self.on_finished = on_finished

        self.state = PipelineState.IDLE
        self._generation = 0
        self._run: Optional[SamplingRun] = None
        self._progress = 0.0
        self._tasks = set()

    # --- Read-only views ---

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current_run(self) -> Optional[SamplingRun]:
        return self._run

    @property
    def frames(self) -> List[SampledFrame]:
        if self._run is None or self._run.cancelled:
            return []
        return list(self._run.frames)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def loading(self) -> bool:
        return self.state is PipelineState.SAMPLING

    # --- Control ---

    def start(self, source: VideoSource) -> SamplingRun:
        """Begin sampling `source`. Must be called from a running event loop."""
        run = self._run
        if run is not None and not run.cancelled and run.source == source:
            return run
        if run is not None and self.state is PipelineState.SAMPLING:
            self.cancel()

        if source.duration_ms <= 0:
            logger.warning("Video %s reports no duration; sampling t=0 only", source.uri)

        self._generation += 1
        count = target_count_for(source.duration_ms, max_count=self.max_count)
        run = SamplingRun(
            source=source,
            generation=self._generation,
            target_count=count,
            interval_ms=source.duration_ms / count,
        )
        self._run = run
        self.state = PipelineState.SAMPLING
        self._set_progress(0.0)
        self._publish(run)
        logger.info(
            "Sampling %d frames from %s every %.1f ms (generation %d)",
            count, source.uri, run.interval_ms, run.generation,
        )

        self._spawn(self._first_frame(run))
        self._spawn(self._sweep(run))
        return run

    def cancel(self) -> bool:
        run = self._run
        if run is None or run.cancelled or run.done:
            return False
        run.cancelled = True
        self._generation += 1
        self.state = PipelineState.CANCELLED
        logger.info("Cancelled sampling of %s after %d batches", run.source.uri, run.completed_batches)
        return True

    async def join(self):
        """Wait for every background run, including superseded ones."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # --- Internals ---

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_current(self, run: SamplingRun) -> bool:
        return not run.cancelled and run.generation == self._generation

    async def _sample(self, run: SamplingRun, timestamp_ms: float) -> Optional[SampledFrame]:
        try:
            handle = await self.thumbnails.sample(run.source.uri, timestamp_ms, self.quality)
        except Exception as e:
            logger.debug("Thumbnail at %.0f ms failed: %s", timestamp_ms, e)
            return None
        return SampledFrame(uri=handle.uri, timestamp_ms=timestamp_ms,
                            width=handle.width, height=handle.height)

    async def _first_frame(self, run: SamplingRun):
        frame = await self._sample(run, 0.0)
        if frame is None or not self._is_current(run):
            return
        stamps = [f.timestamp_ms for f in run.frames]
        if frame.timestamp_ms in stamps:
            return
        run.frames.insert(bisect.bisect_left(stamps, frame.timestamp_ms), frame)
        self._publish(run)

    async def _sweep(self, run: SamplingRun):
        timestamps: Sequence[float] = run.timestamps
        for start in range(0, run.target_count, self.batch_size):
            if not self._is_current(run):
                return
            batch = timestamps[start:start + self.batch_size]
            results = await asyncio.gather(*(self._sample(run, ts) for ts in batch))

            if not self._is_current(run):
                logger.debug("Discarding batch %d of superseded run", run.completed_batches)
                return

            seen = {f.timestamp_ms for f in run.frames}
            for frame in results:
                if frame is not None and frame.timestamp_ms not in seen:
                    run.frames.append(frame)
                    seen.add(frame.timestamp_ms)
            run.completed_batches += 1
            attempted = min(start + len(batch), run.target_count)
            self._set_progress(attempted / float(run.target_count))
            self._publish(run)

        if not self._is_current(run):
            return
        run.done = True
        self.state = PipelineState.COMPLETE
        self._set_progress(1.0)
        logger.info(
            "Sampled %d/%d frames from %s",
            len(run.frames), run.target_count, run.source.uri,
        )
        if self.on_finished:
            self.on_finished(run)

    def _set_progress(self, value: float):
        self._progress = value
        if self.on_progress:
            self.on_progress(value)

    def _publish(self, run: SamplingRun):
        if self.on_frames:
            self.on_frames(list(run.frames))


# --- Scrubbing helpers ---


def frame_at(frames: Sequence[SampledFrame], timestamp_ms: float,
             duration_ms: float) -> Optional[SampledFrame]:
    """Frame the preview shows for a scrub position."""
    if not frames:
        return None
    ratio = timestamp_ms / duration_ms if duration_ms > 0 else 0.0
    index = min(max(0, math.floor(ratio * len(frames))), len(frames) - 1)
    return frames[index]


def displayed_timestamp(frames: Sequence[SampledFrame], timestamp_ms: float,
                        duration_ms: float) -> float:
    frame = frame_at(frames, timestamp_ms, duration_ms)
    return frame.timestamp_ms if frame is not None else timestamp_ms


def scrub_timestamp(offset_px: float, content_width_px: float, duration_ms: float) -> float:
    """Film strip scroll offset to a timestamp."""
    if content_width_px <= 0 or duration_ms <= 0:
        return 0.0
    return clamp(offset_px / content_width_px, 0.0, 1.0) * duration_ms


def format_time(ms: float) -> str:
    total = max(0, int(ms // 1000))
    return f"{total // 60}:{total % 60:02d}"
