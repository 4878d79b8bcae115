#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mapping from the cover-scaled preview to source image pixels.

Order is fixed: cover window -> zoom/pan -> manual crop -> clamp.
Rotation is handled by the caller, which passes the already-rotated
image dimensions (width and height swapped for 90 and 270 degrees).
"""

import math
from typing import Optional

from stillframe.core.errors import ExportGeometryDegenerate
from stillframe.core.models import (
    ImageDimensions,
    NormalizedCropRect,
    PixelCrop,
    PixelRect,
    PreviewLayout,
)


def cover_fit(container_w: float, container_h: float, image_w: float, image_h: float) -> float:
    """Smallest scale at which the image covers the container on both axes."""
    if image_w <= 0 or image_h <= 0:
        raise ValueError(f"image dimensions must be positive, got {image_w}x{image_h}")
    return max(container_w / float(image_w), container_h / float(image_h))


def visible_image_window(container_w: float, container_h: float,
                         image_w: float, image_h: float) -> PixelRect:
    scale = cover_fit(container_w, container_h, image_w, image_h)
    visible_w = container_w / scale
    visible_h = container_h / scale
    # cover always centers the overflow
    return PixelRect(
        x=(image_w - visible_w) / 2.0,
        y=(image_h - visible_h) / 2.0,
        width=visible_w,
        height=visible_h,
    )


def apply_zoom_pan(window: PixelRect, zoom_scale: float, pan_x: float, pan_y: float,
                   cover_scale: float) -> PixelRect:
    """
    Window left visible after zooming by zoom_scale around the center and
    translating the picture by (pan_x, pan_y) screen pixels.
    """
    w = window.width / zoom_scale
    h = window.height / zoom_scale
    cx = window.x + window.width / 2.0
    cy = window.y + window.height / 2.0
    px_per_image_px = zoom_scale * cover_scale
    # picture moves right -> window moves left
    cx -= pan_x / px_per_image_px
    cy -= pan_y / px_per_image_px
    return PixelRect(x=cx - w / 2.0, y=cy - h / 2.0, width=w, height=h)


def apply_crop_rect(window: PixelRect, crop_rect: NormalizedCropRect) -> PixelRect:
    return PixelRect(
        x=window.x + crop_rect.x * window.width,
        y=window.y + crop_rect.y * window.height,
        width=crop_rect.width * window.width,
        height=crop_rect.height * window.height,
    )


def clamp_to_image(rect: PixelRect, image_w: float, image_h: float) -> PixelRect:
    x1 = min(max(0.0, rect.x), image_w)
    y1 = min(max(0.0, rect.y), image_h)
    x2 = min(max(x1, rect.right), image_w)
    y2 = min(max(y1, rect.bottom), image_h)
    return PixelRect(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def map_to_source(layout: PreviewLayout, image: ImageDimensions,
                  zoom_scale: float = 1.0, pan_x: float = 0.0, pan_y: float = 0.0,
                  crop_rect: Optional[NormalizedCropRect] = None) -> PixelRect:
    """Runs the full pipeline. Zoom is skipped at 1x, crop when not given."""
    cw, ch = layout.width_px, layout.height_px
    scale = cover_fit(cw, ch, image.width, image.height)
    rect = visible_image_window(cw, ch, image.width, image.height)
    if zoom_scale > 1:
        rect = apply_zoom_pan(rect, zoom_scale, pan_x, pan_y, scale)
    if crop_rect is not None:
        rect = apply_crop_rect(rect, crop_rect)
    return clamp_to_image(rect, image.width, image.height)


def round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def to_pixel_crop(rect: PixelRect, image_w: int, image_h: int) -> PixelCrop:
    """Rounds to whole pixels, keeping the result inside the image."""
    x = min(max(0, round_half_up(rect.x)), image_w)
    y = min(max(0, round_half_up(rect.y)), image_h)
    w = min(round_half_up(rect.width), image_w - x)
    h = min(round_half_up(rect.height), image_h - y)
    if w <= 0 or h <= 0:
        raise ExportGeometryDegenerate(f"empty crop {w}x{h} from {rect}")
    return PixelCrop(x=x, y=y, width=w, height=h)
