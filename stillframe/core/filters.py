#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import math
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

import numpy as np

from stillframe.core.common import Image, ImageEnhance
from stillframe.core.models import AdjustmentValues, FilterPreset


def _preset(id_: str, name: str, **adjustments) -> FilterPreset:
    return FilterPreset(id=id_, name=name, adjustments=AdjustmentValues(**adjustments))


FILTER_PRESETS: Tuple[FilterPreset, ...] = (
    _preset("none", "Original"),
    _preset("vivid", "Vivid", brightness=0.15, contrast=0.5, saturation=0.8),
    _preset("vivid-warm", "Vivid Warm", brightness=0.2, contrast=0.5, saturation=0.7,
            sepia=0.35, hue_rotate_degrees=15),
    _preset("vivid-cool", "Vivid Cool", brightness=0.1, contrast=0.5, saturation=0.8,
            hue_rotate_degrees=-20),
    _preset("dramatic", "Dramatic", brightness=-0.15, contrast=0.7, saturation=0.2),
    _preset("dramatic-warm", "Dramatic Warm", brightness=-0.1, contrast=0.7, saturation=0.1,
            sepia=0.4, hue_rotate_degrees=10),
    _preset("dramatic-cool", "Dramatic Cool", brightness=-0.2, contrast=0.7, saturation=-0.2,
            hue_rotate_degrees=-25),
    _preset("mono", "Mono", brightness=0.05, contrast=0.2, saturation=-1),
    _preset("silvertone", "Silvertone", brightness=0.25, contrast=-0.1, saturation=-1),
    _preset("noir", "Noir", brightness=-0.2, contrast=0.8, saturation=-1),
)

FILTERS_BY_ID: Mapping[str, FilterPreset] = MappingProxyType({f.id: f for f in FILTER_PRESETS})
DEFAULT_FILTER = FILTERS_BY_ID["none"]


def get_filter(filter_id: str) -> FilterPreset:
    try:
        return FILTERS_BY_ID[filter_id]
    except KeyError:
        raise KeyError(f"Unknown filter '{filter_id}'") from None


# --- Rendering ---

_SEPIA = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)


def _sepia_matrix(amount: float):
    amount = max(0.0, min(1.0, amount))
    return (1.0 - amount) * np.eye(3, dtype=np.float32) + amount * _SEPIA


def _hue_rotate_matrix(degrees: float):
    a = math.radians(degrees)
    c, s = math.cos(a), math.sin(a)
    return np.array(
        [
            [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
            [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
            [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
        ],
        dtype=np.float32,
    )


def _apply_matrix(img: Image.Image, m) -> Image.Image:
    arr = np.asarray(img, dtype=np.float32)
    out = arr @ m.T
    return Image.fromarray(np.clip(out, 0, 255).astype(np.uint8))


def _apply_vignette(img: Image.Image, amount: float) -> Image.Image:
    """Radial darkening: clear inside 40% of the radius, amount*0.8 at the edge."""
    w, h = img.size
    ys = (np.arange(h, dtype=np.float32) + 0.5 - h / 2.0) / (h / 2.0)
    xs = (np.arange(w, dtype=np.float32) + 0.5 - w / 2.0) / (w / 2.0)
    dist = np.sqrt(xs[None, :] ** 2 + ys[:, None] ** 2)
    ramp = np.clip((dist - 0.4) / 0.6, 0.0, 1.0)
    opacity = ramp * (amount * 0.8)
    arr = np.asarray(img, dtype=np.float32) * (1.0 - opacity)[:, :, None]
    return Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8))


def render_adjustments(img: Image.Image, adj: AdjustmentValues) -> Image.Image:
    """
    Applies effective adjustments to an image, in the order the preview
    composes them: brightness, contrast, saturation, grayscale, sepia,
    hue rotation, vignette.
    """
    im = img.convert("RGB")
    if adj.brightness != 0:
        im = ImageEnhance.Brightness(im).enhance(1.0 + adj.brightness)
    if adj.contrast != 0:
        im = ImageEnhance.Contrast(im).enhance(1.0 + adj.contrast)
    if adj.saturation != 0:
        im = ImageEnhance.Color(im).enhance(1.0 + adj.saturation)
    if adj.saturation < 0:
        gray = im.convert("L").convert("RGB")
        im = Image.blend(im, gray, min(1.0, abs(adj.saturation)))
    if adj.sepia > 0:
        im = _apply_matrix(im, _sepia_matrix(adj.sepia))
    if adj.hue_rotate_degrees != 0:
        im = _apply_matrix(im, _hue_rotate_matrix(adj.hue_rotate_degrees))
    if adj.vignette > 0:
        im = _apply_vignette(im, adj.vignette)
    return im


def render_filter_thumbnails(img: Image.Image, size: int = 64) -> Dict[str, Image.Image]:
    """Small preview of every preset, keyed by filter id."""
    thumb = img.convert("RGB")
    thumb.thumbnail((size, size))
    return {f.id: render_adjustments(thumb, f.adjustments) for f in FILTER_PRESETS}
