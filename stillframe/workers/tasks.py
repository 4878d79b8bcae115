#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import asyncio
import hashlib
import logging
import os
import shutil
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

import cv2

# --- Core Imports ---
from stillframe.core.common import (
    FMT_TO_EXT,
    Image,
    ImageOps,
    JPEG_EXPORT_QUALITY,
    SUPPORTED_OUTPUT_FORMATS,
    SUPPORTED_VIDEO_EXTS,
    THUMBNAIL_MAX_SIDE,
)
from stillframe.core.errors import SampleFailure, VideoSourceError
from stillframe.core.filters import render_adjustments
from stillframe.core.models import (
    AdjustAction,
    AssetHandle,
    CropAction,
    ExportAction,
    FlipAction,
    ImageHandle,
    RotateAction,
    VideoSource,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class _ScratchDir:
    """Output folder for an adapter. Without an explicit path a temporary
    directory is created and removed again by `close()`."""

    def __init__(self, path: Optional[PathLike], prefix: str):
        self._tmp: Optional[tempfile.TemporaryDirectory] = None
        if path is None:
            self._tmp = tempfile.TemporaryDirectory(prefix=prefix)
            self.path = Path(self._tmp.name)
        else:
            self.path = Path(path)
            self.path.mkdir(parents=True, exist_ok=True)

    def close(self):
        if self._tmp is not None:
            logger.debug("Removing %s", self.path)
            self._tmp.cleanup()
            self._tmp = None


def probe_video(path: PathLike) -> VideoSource:
    """Returns the video's duration from its frame count and fps."""
    p = Path(path)
    if p.suffix.lower() not in SUPPORTED_VIDEO_EXTS:
        raise VideoSourceError(f"Unsupported video type: {p.suffix or p.name}")
    cap = cv2.VideoCapture(str(p))
    try:
        if not cap.isOpened():
            raise VideoSourceError(f"Cannot open video: {p}")
        frames = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        fps = cap.get(cv2.CAP_PROP_FPS)
    finally:
        cap.release()
    duration_ms = (frames / fps) * 1000.0 if fps > 0 else 0.0
    return VideoSource(uri=str(p), duration_ms=duration_ms)


# --- 1. Thumbnails (OpenCV) ---


class OpenCVThumbnailService:
    """
    Decodes single frames with OpenCV.

    quality < 1: downscaled JPEG preview (quality maps to JPEG quality).
    quality == 1: full-resolution lossless PNG, used for export.
    """

    def __init__(self, cache_dir: Optional[PathLike] = None, max_side: int = THUMBNAIL_MAX_SIDE):
        self._scratch = _ScratchDir(cache_dir, "stillframe_thumbs_")
        self.cache_dir = self._scratch.path
        self.max_side = max_side

    def close(self):
        """Deletes cached thumbnails if the cache folder is a temporary one."""
        self._scratch.close()

    async def sample(self, video_uri: str, timestamp_ms: float, quality: float) -> ImageHandle:
        return await asyncio.to_thread(self._sample_sync, video_uri, timestamp_ms, quality)

    def _sample_sync(self, video_uri: str, timestamp_ms: float, quality: float) -> ImageHandle:
        cap = cv2.VideoCapture(video_uri)
        try:
            if not cap.isOpened():
                raise SampleFailure(f"Cannot open video: {video_uri}")
            cap.set(cv2.CAP_PROP_POS_MSEC, float(timestamp_ms))
            ok, frame_bgr = cap.read()
        finally:
            cap.release()
        if not ok or frame_bgr is None:
            raise SampleFailure(f"No frame at {timestamp_ms:.0f} ms in {video_uri}")

        img = Image.fromarray(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
        key = hashlib.md5(video_uri.encode("utf-8")).hexdigest()[:12]
        stem = f"{key}_{int(round(timestamp_ms))}_{int(round(quality * 100))}"

        if quality < 1:
            img.thumbnail((self.max_side, self.max_side), Image.Resampling.BILINEAR)
            out = self.cache_dir / f"{stem}.jpg"
            img.save(out, "JPEG", quality=max(1, int(round(quality * 100))))
        else:
            out = self.cache_dir / f"{stem}.png"
            img.save(out, "PNG")
        return ImageHandle(uri=str(out), width=img.width, height=img.height)


# --- 2. Image processing (Pillow) ---


def _rotate_clockwise(img: Image.Image, degrees: int) -> Image.Image:
    degrees %= 360
    if degrees == 90:
        return img.transpose(Image.Transpose.ROTATE_270)
    if degrees == 180:
        return img.transpose(Image.Transpose.ROTATE_180)
    if degrees == 270:
        return img.transpose(Image.Transpose.ROTATE_90)
    if degrees == 0:
        return img
    # PIL rotates counter-clockwise
    return img.rotate(-degrees, expand=True, resample=Image.Resampling.BICUBIC)


def apply_actions(img: Image.Image, actions: Sequence[ExportAction]) -> Image.Image:
    img = img.convert("RGB")
    for action in actions:
        if isinstance(action, RotateAction):
            img = _rotate_clockwise(img, action.degrees)
        elif isinstance(action, FlipAction):
            img = ImageOps.mirror(img) if action.horizontal else ImageOps.flip(img)
        elif isinstance(action, CropAction):
            img = img.crop(action.crop.box)
        elif isinstance(action, AdjustAction):
            img = render_adjustments(img, action.adjustments)
        else:
            raise TypeError(f"Unknown action: {action!r}")
    return img


class PillowImageProcessor:
    def __init__(self, output_dir: Optional[PathLike] = None):
        self._scratch = _ScratchDir(output_dir, "stillframe_render_")
        self.output_dir = self._scratch.path

    def close(self):
        self._scratch.close()

    async def apply(self, image: ImageHandle, actions: Sequence[ExportAction],
                    output_format: str) -> ImageHandle:
        return await asyncio.to_thread(self._apply_sync, image, list(actions), output_format)

    def _apply_sync(self, image: ImageHandle, actions, output_format: str) -> ImageHandle:
        fmt = output_format.upper()
        if fmt not in SUPPORTED_OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format: {output_format}")

        with Image.open(image.uri) as src:
            result = apply_actions(src, actions)

        out = self.output_dir / f"{Path(image.uri).stem}_{uuid.uuid4().hex[:8]}{FMT_TO_EXT[fmt]}"
        if fmt == "JPEG":
            result.save(out, fmt, quality=JPEG_EXPORT_QUALITY)
        else:
            result.save(out, fmt)
        return ImageHandle(uri=str(out), width=result.width, height=result.height)


# --- 3. Library (filesystem) ---


class FolderLibraryWriter:
    """Saves exported stills into a folder under a unique timestamped name."""

    def __init__(self, folder: PathLike):
        self.folder = Path(folder)

    async def save(self, image: ImageHandle) -> AssetHandle:
        return await asyncio.to_thread(self._save_sync, image)

    def _save_sync(self, image: ImageHandle) -> AssetHandle:
        self.folder.mkdir(parents=True, exist_ok=True)
        src = Path(image.uri)
        base = f"frame_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        dest = self.folder / f"{base}{src.suffix}"
        n = 1
        while dest.exists():
            dest = self.folder / f"{base}_{n}{src.suffix}"
            n += 1
        shutil.copy2(src, dest)
        return AssetHandle(uri=str(dest))


class FolderPermissionGate:
    """'Permission' to save means the output folder exists and is writable."""

    def __init__(self, folder: PathLike):
        self.folder = Path(folder)

    async def request(self) -> bool:
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create %s: %s", self.folder, e)
            return False
        return os.access(self.folder, os.W_OK)


# --- 4. Video picking ---


class PathVideoPicker:
    """Picker over an already chosen path; None means the user cancelled."""

    def __init__(self, path: Optional[PathLike]):
        self.path = path

    async def pick(self) -> Optional[VideoSource]:
        if self.path is None:
            return None
        return await asyncio.to_thread(probe_video, self.path)
