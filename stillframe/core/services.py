# core/services.py
"""
Narrow async interfaces to the services the editor delegates to.

Adapters backed by OpenCV, Pillow and the filesystem live in
stillframe.workers.tasks; tests substitute in-memory fakes.
"""

from typing import Optional, Protocol, Sequence

from stillframe.core.models import AssetHandle, ExportAction, ImageHandle, VideoSource


class ThumbnailService(Protocol):
    async def sample(self, video_uri: str, timestamp_ms: float, quality: float) -> ImageHandle:
        """Decode one frame. quality < 1 means a small preview, 1 means full resolution."""
        ...


class ImageProcessor(Protocol):
    async def apply(self, image: ImageHandle, actions: Sequence[ExportAction],
                    output_format: str) -> ImageHandle:
        """Apply actions in the order given and encode the result."""
        ...


class LibraryWriter(Protocol):
    async def save(self, image: ImageHandle) -> AssetHandle:
        ...


class PermissionGate(Protocol):
    async def request(self) -> bool:
        ...


class VideoPicker(Protocol):
    async def pick(self) -> Optional[VideoSource]:
        """A new source, or None when the user cancelled."""
        ...
