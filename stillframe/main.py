#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from PyQt6.QtCore import QCoreApplication

from stillframe.core.common import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_FORMAT,
    LIBRARY_PAGE_SIZE,
    SUPPORTED_OUTPUT_FORMATS,
)
from stillframe.core.logger import setup_logging
from stillframe.core.models import ADJUSTMENT_RANGES, NormalizedCropRect, ZoomPan
from stillframe.viewmodels.editor_vm import EditorViewModel
from stillframe.workers.library import VideoLibrary
from stillframe.workers.sampling import format_time
from stillframe.workers.tasks import (
    FolderLibraryWriter,
    FolderPermissionGate,
    OpenCVThumbnailService,
    PathVideoPicker,
    PillowImageProcessor,
)

logger = logging.getLogger("stillframe.main")


def _floats(text: str, n: int):
    parts = [float(p) for p in text.replace("x", ",").split(",")]
    if len(parts) != n:
        raise argparse.ArgumentTypeError(f"expected {n} comma separated numbers, got '{text}'")
    return parts


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stillframe",
        description="Export an edited still frame from a video.",
    )
    p.add_argument("video", nargs="?", help="video file (.mov, .mp4, .m4v, .avi)")
    p.add_argument("--list", metavar="DIR", help="list the videos in DIR, newest first, and exit")
    p.add_argument("--page-size", type=int, default=LIBRARY_PAGE_SIZE, help="videos per listed page")
    p.add_argument("--at", type=float, default=0.0, help="timestamp in seconds")
    p.add_argument("--filter", default="none", help="filter preset id")
    for key in ADJUSTMENT_RANGES:
        p.add_argument(f"--{key}", type=float, default=0.0)
    p.add_argument("--crop", type=lambda s: _floats(s, 4), help="x,y,w,h as preview fractions")
    p.add_argument("--zoom", type=float, default=1.0)
    p.add_argument("--pan", type=lambda s: _floats(s, 2), default=[0.0, 0.0], help="x,y preview pixels")
    p.add_argument("--rotate", type=int, default=0, help="clockwise quarter turns")
    p.add_argument("--flip", action="store_true", help="flip horizontally")
    p.add_argument("--preview", type=lambda s: _floats(s, 2), default=[375.0, 667.0],
                   help="preview size WxH the crop refers to")
    p.add_argument("--out", default=str(DEFAULT_OUTPUT_DIR), help="output folder")
    p.add_argument("--format", default=DEFAULT_OUTPUT_FORMAT, type=str.upper,
                   choices=SUPPORTED_OUTPUT_FORMATS)
    p.add_argument("--log-level", default="INFO")
    return p


async def list_videos(folder: str, page_size: int) -> int:
    library = VideoLibrary(folder, page_size=page_size)
    page_no = 0
    while library.has_more:
        page = await library.load_more()
        if not page:
            break
        page_no += 1
        print(f"-- page {page_no} --")
        for entry in page:
            print(entry.label)
    if not library.videos:
        logger.warning("No videos found in %s", folder)
    return 0


async def run(args: argparse.Namespace) -> int:
    thumbnails = OpenCVThumbnailService()
    processor = PillowImageProcessor()
    vm = EditorViewModel(
        thumbnails,
        processor,
        FolderLibraryWriter(args.out),
        FolderPermissionGate(args.out),
        output_format=args.format,
    )
    try:
        return await _edit_and_export(vm, args)
    finally:
        vm.pipeline.cancel()
        await vm.wait_for_frames()
        thumbnails.close()
        processor.close()


async def _edit_and_export(vm: EditorViewModel, args: argparse.Namespace) -> int:
    source = await vm.open_video(PathVideoPicker(args.video))
    if source is None:
        return 1

    vm.progress_changed.connect(lambda v: logger.debug("Sampling %.0f%%", v * 100))
    await vm.wait_for_frames()
    if not vm.frames:
        logger.error("No frames could be decoded from %s", args.video)
        return 1

    vm.set_preview_layout(*args.preview)
    vm.scrub(args.at * 1000.0)
    vm.select_filter(args.filter)
    for key in ADJUSTMENT_RANGES:
        value = getattr(args, key)
        if value:
            vm.set_adjustment(key, value)
    if args.crop:
        vm.set_crop_rect(NormalizedCropRect(*args.crop))
    if args.zoom > 1:
        vm.edit_state.set_zoom_pan(ZoomPan(args.zoom, *args.pan))
    for _ in range(args.rotate % 4):
        vm.rotate()
    if args.flip:
        vm.flip()

    failures = []
    vm.export_failed.connect(failures.append)
    logger.info("Exporting frame at %s", format_time(vm.displayed_timestamp))
    asset = await vm.export()
    if asset is None:
        print(failures[0] if failures else "Nothing exported", file=sys.stderr)
        return 1
    print(asset.uri)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.video is None and args.list is None:
        parser.error("a video file or --list DIR is required")
    setup_logging(args.log_level)
    if args.list is not None:
        return asyncio.run(list_videos(args.list, args.page_size))
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("StillFrame")
    try:
        return asyncio.run(run(args))
    except (KeyError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
