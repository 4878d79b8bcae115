# core/gestures.py
"""
Pure gesture -> state transitions for the crop box and the zoom/pan view.

Each gesture sample produces a new value; nothing here keeps state between
calls. Coordinates for the crop box are fractions of the preview, zoom/pan
works in preview pixels.
"""

from enum import Enum

from stillframe.core.common import EDGE_THRESHOLD, MAX_ZOOM, MIN_FRACTION, clamp
from stillframe.core.models import NormalizedCropRect, PreviewLayout, ZoomPan


class DragMode(Enum):
    NONE = 0
    LEFT = 1
    RIGHT = 2
    TOP = 3
    BOTTOM = 4
    LEFT_TOP = 5
    LEFT_BOTTOM = 6
    RIGHT_TOP = 7
    RIGHT_BOTTOM = 8
    MOVE = 9


_MOVES_LEFT = {DragMode.LEFT, DragMode.LEFT_TOP, DragMode.LEFT_BOTTOM}
_MOVES_RIGHT = {DragMode.RIGHT, DragMode.RIGHT_TOP, DragMode.RIGHT_BOTTOM}
_MOVES_TOP = {DragMode.TOP, DragMode.LEFT_TOP, DragMode.RIGHT_TOP}
_MOVES_BOTTOM = {DragMode.BOTTOM, DragMode.LEFT_BOTTOM, DragMode.RIGHT_BOTTOM}


def hit_test(rect: NormalizedCropRect, nx: float, ny: float,
             edge_threshold: float = EDGE_THRESHOLD) -> DragMode:
    """Decides what a drag starting at (nx, ny) manipulates."""
    left, top, right, bottom = rect.edges
    d_left = abs(nx - left)
    d_right = abs(nx - right)
    d_top = abs(ny - top)
    d_bottom = abs(ny - bottom)

    near_left = d_left < edge_threshold
    near_right = d_right < edge_threshold
    near_top = d_top < edge_threshold
    near_bottom = d_bottom < edge_threshold

    # Corners win over edges
    if near_left and near_top:
        return DragMode.LEFT_TOP
    if near_left and near_bottom:
        return DragMode.LEFT_BOTTOM
    if near_right and near_top:
        return DragMode.RIGHT_TOP
    if near_right and near_bottom:
        return DragMode.RIGHT_BOTTOM
    if near_left:
        return DragMode.LEFT
    if near_right:
        return DragMode.RIGHT
    if near_top:
        return DragMode.TOP
    if near_bottom:
        return DragMode.BOTTOM

    inside_h = left + edge_threshold < nx < right - edge_threshold
    inside_v = top + edge_threshold < ny < bottom - edge_threshold
    if inside_h and inside_v:
        return DragMode.MOVE

    # Outside the box: closest edge
    if min(d_left, d_right) < min(d_top, d_bottom):
        return DragMode.LEFT if d_left < d_right else DragMode.RIGHT
    return DragMode.TOP if d_top < d_bottom else DragMode.BOTTOM


def drag_crop(start: NormalizedCropRect, mode: DragMode, dx: float, dy: float,
              min_fraction: float = MIN_FRACTION) -> NormalizedCropRect:
    """
    Crop box after dragging by (dx, dy) preview fractions from `start`.
    """
    left, top, right, bottom = start.edges

    if mode is DragMode.MOVE:
        dx = clamp(dx, -left, 1.0 - right)
        dy = clamp(dy, -top, 1.0 - bottom)
        return NormalizedCropRect.from_edges(left + dx, top + dy, right + dx, bottom + dy)

    if mode in _MOVES_LEFT:
        left = max(0.0, min(left + dx, right - min_fraction))
    if mode in _MOVES_RIGHT:
        right = min(1.0, max(right + dx, left + min_fraction))
    if mode in _MOVES_TOP:
        top = max(0.0, min(top + dy, bottom - min_fraction))
    if mode in _MOVES_BOTTOM:
        bottom = min(1.0, max(bottom + dy, top + min_fraction))
    return NormalizedCropRect.from_edges(left, top, right, bottom)


def _clamp_pan(zoom: float, pan_x: float, pan_y: float, layout: PreviewLayout) -> ZoomPan:
    # zoomed picture must keep covering the preview
    max_x = (zoom - 1.0) * layout.width_px / 2.0
    max_y = (zoom - 1.0) * layout.height_px / 2.0
    return ZoomPan(
        zoom_scale=zoom,
        pan_x=clamp(pan_x, -max_x, max_x),
        pan_y=clamp(pan_y, -max_y, max_y),
    )


def pinch(current: ZoomPan, factor: float, layout: PreviewLayout,
          max_zoom: float = MAX_ZOOM) -> ZoomPan:
    zoom = clamp(current.zoom_scale * factor, 1.0, max_zoom)
    if zoom == 1.0:
        return ZoomPan()
    return _clamp_pan(zoom, current.pan_x, current.pan_y, layout)


def pan_by(current: ZoomPan, dx: float, dy: float, layout: PreviewLayout) -> ZoomPan:
    if current.zoom_scale <= 1.0:
        return ZoomPan()
    return _clamp_pan(current.zoom_scale, current.pan_x + dx, current.pan_y + dy, layout)
