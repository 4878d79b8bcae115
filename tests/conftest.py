"""Pytest fixtures and in-memory service fakes."""

import asyncio
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import pytest
from PIL import Image

from stillframe.core.errors import SampleFailure
from stillframe.core.models import AssetHandle, ImageHandle


class FakeThumbnails:
    """Thumbnail service that records calls and can block, fail or write real images."""

    def __init__(self, width: int = 640, height: int = 360, fail_at: Iterable[float] = (),
                 gate: Optional[asyncio.Event] = None,
                 gated: Callable[[str, float], bool] = lambda uri, ts: True,
                 image_dir: Optional[Path] = None):
        self.width = width
        self.height = height
        self.fail_at = set(fail_at)
        self.gate = gate
        self.gated = gated
        self.image_dir = image_dir
        self.calls: List[tuple] = []
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._seq = 0

    async def sample(self, video_uri, timestamp_ms, quality):
        call_id = len(self.calls)
        self.calls.append((video_uri, timestamp_ms, quality))
        self.events.append(("start", call_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.gate is not None and self.gated(video_uri, timestamp_ms):
                await self.gate.wait()
            if timestamp_ms in self.fail_at:
                raise SampleFailure(f"no frame at {timestamp_ms}")
            return self._handle(video_uri, timestamp_ms, quality)
        finally:
            self.in_flight -= 1
            self.events.append(("end", call_id))

    def _handle(self, video_uri, timestamp_ms, quality) -> ImageHandle:
        if self.image_dir is None:
            return ImageHandle(f"{video_uri}#{timestamp_ms:.0f}", self.width, self.height)
        self._seq += 1
        path = self.image_dir / f"frame_{self._seq}.png"
        img = Image.new("RGB", (self.width, self.height), (200, 120, 40))
        # mark the top-left corner so orientation can be checked
        img.paste((255, 0, 0), (0, 0, 10, 10))
        img.save(path, "PNG")
        return ImageHandle(str(path), self.width, self.height)


class FakeProcessor:
    def __init__(self, fail: bool = False, gate: Optional[asyncio.Event] = None):
        self.fail = fail
        self.gate = gate
        self.calls = []

    async def apply(self, image, actions, output_format):
        self.calls.append((image, list(actions), output_format))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("encoder exploded")
        return ImageHandle(image.uri + ".out", image.width, image.height)


class FakeWriter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []

    async def save(self, image):
        if self.fail:
            raise OSError("disk full")
        self.saved.append(image)
        return AssetHandle(f"asset://{len(self.saved)}")


class FakePermissions:
    def __init__(self, granted: bool = True, error: Optional[Exception] = None):
        self.granted = granted
        self.error = error
        self.requests = 0

    async def request(self):
        self.requests += 1
        if self.error is not None:
            raise self.error
        return self.granted


@pytest.fixture
def thumbnails():
    return FakeThumbnails()


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def permissions():
    return FakePermissions()


@pytest.fixture(scope="session")
def qt_core_app():
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
