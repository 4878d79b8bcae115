# workers/library.py
"""Paged listing of the videos in a folder, newest first."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from stillframe.core.common import LIBRARY_PAGE_SIZE, SUPPORTED_VIDEO_EXTS, _fmt_ts_local
from stillframe.core.models import VideoSource
from stillframe.workers.tasks import probe_video

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoEntry:
    path: str
    modified: float

    @property
    def label(self) -> str:
        return f"{Path(self.path).name} ({_fmt_ts_local(self.modified)})"


def scan_videos(folder: Path) -> List[VideoEntry]:
    entries = []
    for p in folder.rglob("*"):
        if not p.is_file():
            continue
        if p.name.startswith("."):
            continue
        # Skip anything inside a "deleted" folder
        if "deleted" in (part.lower() for part in p.relative_to(folder).parts):
            continue
        if p.suffix.lower() in SUPPORTED_VIDEO_EXTS:
            try:
                entries.append(VideoEntry(str(p), p.stat().st_mtime))
            except OSError as e:
                logger.debug("Skipping %s: %s", p, e)
    entries.sort(key=lambda e: (-e.modified, e.path.lower()))
    return entries


class VideoLibrary:
    def __init__(self, folder, page_size: int = LIBRARY_PAGE_SIZE):
        self.folder = Path(folder)
        self.page_size = page_size
        self.videos: List[VideoEntry] = []
        self._all: Optional[List[VideoEntry]] = None

    @property
    def has_more(self) -> bool:
        return self._all is None or len(self.videos) < len(self._all)

    async def load_more(self) -> List[VideoEntry]:
        """Appends the next page and returns it."""
        if self._all is None:
            if not self.folder.is_dir():
                logger.warning("Video folder %s does not exist", self.folder)
                self._all = []
            else:
                self._all = await asyncio.to_thread(scan_videos, self.folder)
        start = len(self.videos)
        page = self._all[start:start + self.page_size]
        self.videos.extend(page)
        return page

    async def refresh(self) -> List[VideoEntry]:
        self.videos = []
        self._all = None
        return await self.load_more()

    async def source_for(self, entry: VideoEntry) -> VideoSource:
        return await asyncio.to_thread(probe_video, entry.path)
