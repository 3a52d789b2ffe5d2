"""
Frame image loading for multimodal prompts.

A loader resolves a frame ``path`` to raw bytes. Loaders never raise: a frame
whose image cannot be read yields an ImageLoadResult with an error, and the
analyze pipeline falls back to text for it.
"""
from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import httpx
import structlog

from ..config import settings

logger = structlog.get_logger()


@dataclass
class ImageLoadResult:
    data: Optional[bytes] = None
    mime_type: str = "image/jpeg"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None and self.error is None


class ImageLoader(Protocol):
    async def load(self, path: str) -> ImageLoadResult:
        ...


def _guess_mime(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime if mime and mime.startswith("image/") else "image/jpeg"


class LocalImageLoader:
    """Reads frame images from under a root directory, or over HTTP when allowed.

    Paths come from stored frame metadata, so anything resolving outside
    ``root`` is refused and URLs are only fetched with ``allow_remote``.
    """

    def __init__(
        self,
        root: str | None = None,
        timeout: float = 10.0,
        allow_remote: bool | None = None,
    ):
        self.root = Path(root or settings.FRAME_IMAGE_ROOT)
        self.timeout = timeout
        self.allow_remote = (
            settings.FRAME_IMAGE_ALLOW_REMOTE if allow_remote is None else allow_remote
        )

    def _resolve(self, path: str) -> Optional[Path]:
        """Absolute file path inside the root, or None when it escapes it."""
        root = self.root.resolve()
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = root / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(root):
            return None
        return resolved

    async def _fetch(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def _read(self, path: str) -> bytes:
        resolved = self._resolve(path)
        if resolved is None:
            raise PermissionError(f"{path} is outside the frame image root")
        return await asyncio.to_thread(resolved.read_bytes)

    async def load(self, path: str) -> ImageLoadResult:
        if not path:
            return ImageLoadResult(error="empty path")
        remote = path.startswith(("http://", "https://"))
        if remote and not self.allow_remote:
            return ImageLoadResult(error="remote frame images are disabled")
        try:
            data = await (self._fetch(path) if remote else self._read(path))
        except Exception as e:
            # Bad paths (NUL bytes, malformed URLs) must not abort analyze
            logger.warning(
                "Failed to load frame image",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ImageLoadResult(error=str(e) or type(e).__name__)
        if not data:
            return ImageLoadResult(error="image is empty")
        return ImageLoadResult(data=data, mime_type=_guess_mime(path))
