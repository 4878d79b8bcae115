#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from datetime import datetime
from pathlib import Path

# PIL Imports (Critical for filters/export)
from PIL import Image, ImageOps, ImageEnhance

# --- Constants ---
FMT_TO_EXT = {"JPEG": ".jpg", "PNG": ".png"}
SUPPORTED_OUTPUT_FORMATS = ("PNG", "JPEG")
SUPPORTED_VIDEO_EXTS = {".mov", ".mp4", ".m4v", ".avi"}

# Frame sampling
MIN_COUNT = 20
MAX_COUNT = 120
SAMPLES_PER_SECOND = 10
BATCH_SIZE = 5
PREVIEW_QUALITY = 0.3
FILTER_THUMB_QUALITY = 0.4
EXPORT_QUALITY = 1.0
THUMBNAIL_MAX_SIDE = 320
FILTER_THUMB_BUCKET_MS = 500

# Crop / zoom
MIN_FRACTION = 0.1
EDGE_THRESHOLD = 0.08
MAX_ZOOM = 5.0

# Export
DEFAULT_OUTPUT_FORMAT = "PNG"
DEFAULT_OUTPUT_DIR = Path.home() / "Pictures" / "StillFrame"
JPEG_EXPORT_QUALITY = 95

# Video library
LIBRARY_PAGE_SIZE = 30

# --- Messages ---
MSG_PERMISSION_DENIED = "Photo library access is required to save"
MSG_EXPORT_FAILED = "Failed to save"

# --- Utils ---


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def _fmt_ts_local(ts: float) -> str:
    """Formats a timestamp into a readable string."""
    try:
        dt = datetime.fromtimestamp(ts)
        return dt.strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "-"
