"""Command line entry point."""

import cv2
import numpy as np
import pytest
from PIL import Image

from stillframe.main import build_parser, main


def test_parser_defaults():
    args = build_parser().parse_args(["clip.mp4"])
    assert args.at == 0.0
    assert args.filter == "none"
    assert args.preview == [375.0, 667.0]
    assert args.format == "PNG"
    assert args.crop is None
    assert args.warmth == 0.0


def test_parser_geometry():
    args = build_parser().parse_args(
        ["clip.mp4", "--crop", "0.25,0,0.5,1", "--preview", "375x667", "--format", "jpeg"])
    assert args.crop == [0.25, 0.0, 0.5, 1.0]
    assert args.preview == [375.0, 667.0]
    assert args.format == "JPEG"


def test_parser_rejects_short_crop():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["clip.mp4", "--crop", "0.1,0.2"])


def test_unsupported_video(tmp_path):
    assert main([str(tmp_path / "notes.txt"), "--out", str(tmp_path / "out")]) == 1


def test_unknown_filter_exits_2(tmp_path):
    video = _write_video(tmp_path)
    assert main([str(video), "--filter", "sparkle", "--out", str(tmp_path / "out")]) == 2


def test_exports_cropped_frame(tmp_path, capsys):
    video = _write_video(tmp_path)
    out = tmp_path / "out"

    code = main([str(video), "--at", "0.5", "--crop", "0,0,0.5,1", "--preview", "64x48",
                 "--rotate", "4", "--out", str(out), "--log-level", "WARNING"])

    assert code == 0
    saved = capsys.readouterr().out.strip()
    assert saved.startswith(str(out))
    with Image.open(saved) as img:
        assert img.size == (32, 48)


def _write_video(tmp_path):
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG")
    for i in range(10):
        writer.write(np.full((48, 64, 3), 40 + i * 10, dtype=np.uint8))
    writer.release()
    return path


def test_requires_video_or_list():
    with pytest.raises(SystemExit):
        main([])


def test_lists_videos_page_by_page(tmp_path, capsys):
    for name in ("a.mp4", "b.mov", "c.avi", "notes.txt"):
        (tmp_path / name).write_bytes(b"")

    assert main(["--list", str(tmp_path), "--page-size", "2", "--log-level", "WARNING"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines.count("-- page 1 --") == 1
    assert lines.count("-- page 2 --") == 1
    labels = [line for line in lines if not line.startswith("--")]
    assert sorted(label.split(" ")[0] for label in labels) == ["a.mp4", "b.mov", "c.avi"]
