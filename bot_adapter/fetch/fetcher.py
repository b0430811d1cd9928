"""Fetch a remote image (or accept an in-memory one) and hand back its bytes.

The download is streamed but always fully materialized before returning;
there is no streaming contract with the downstream processing call.
"""
from __future__ import annotations

import logging
import mimetypes
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

import httpx

from bot_adapter.core.config import Settings
from bot_adapter.core.errors import FetchError

logger = logging.getLogger(__name__)

BytesLike = bytes | bytearray | memoryview

_MAGIC: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"%PDF-", "application/pdf"),
)


class FetchMode(str, Enum):
    BUFFER = "buffer"
    FILE = "file"


@dataclass(frozen=True)
class BufferedResource:
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class FileResource:
    path: Path
    content_type: str | None = None


FetchedResource = BufferedResource | FileResource


def sniff_content_type(data: bytes) -> str | None:
    """Guess a MIME type from the leading magic bytes."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    for magic, mime in _MAGIC:
        if data.startswith(magic):
            return mime
    return None


def _header_content_type(response: httpx.Response) -> str | None:
    raw = response.headers.get("content-type", "")
    value = raw.split(";", 1)[0].strip().lower()
    return value or None


def _write_temp_file(data: bytes, content_type: str | None) -> Path:
    suffix = mimetypes.guess_extension(content_type) if content_type else None
    try:
        with tempfile.NamedTemporaryFile(prefix="bot-fetch-", suffix=suffix or "", delete=False) as fh:
            fh.write(data)
    except OSError as exc:
        raise FetchError(f"Could not write temporary file: {exc}") from exc
    return Path(fh.name)


async def _download(url: str, client: httpx.AsyncClient, max_bytes: int) -> tuple[bytes, str | None]:
    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise FetchError(
                    f"GET {url} returned HTTP {response.status_code}",
                    source=url,
                    status_code=response.status_code,
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise FetchError(f"Payload of {declared} bytes exceeds limit of {max_bytes}", source=url)

            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_bytes:
                    raise FetchError(f"Payload exceeds limit of {max_bytes} bytes", source=url)
                chunks.append(chunk)

            content_type = _header_content_type(response)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(f"GET {url} failed: {exc}", source=url) from exc

    data = b"".join(chunks)
    if content_type is None:
        content_type = mimetypes.guess_type(urlparse(url).path)[0]
    return data, content_type


async def fetch_to_buffer_or_file(
    source: str | BytesLike,
    *,
    mode: FetchMode | str = FetchMode.BUFFER,
    client: httpx.AsyncClient | None = None,
    max_bytes: int | None = None,
) -> FetchedResource:
    """Return the bytes behind *source* either in memory or in a temp file.

    *source* is an http(s) URL or a bytes-like object. In ``file`` mode the
    caller owns the returned path and is responsible for deleting it.
    """
    mode = FetchMode(mode)

    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        content_type = sniff_content_type(data)
    elif isinstance(source, str):
        try:
            scheme = urlparse(source).scheme.lower()
        except ValueError as exc:
            raise FetchError(f"Malformed URL {source!r}", source=source) from exc
        if scheme not in ("http", "https"):
            raise FetchError(f"Unsupported URL scheme {scheme!r}", source=source)

        cfg = Settings()
        limit = max_bytes if max_bytes is not None else cfg.fetch_max_bytes
        if client is None:
            async with httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": cfg.fetch_user_agent},
            ) as owned:
                data, content_type = await _download(source, owned, limit)
        else:
            data, content_type = await _download(source, client, limit)
    else:
        raise FetchError(f"Unsupported source type {type(source).__name__}")

    logger.info(
        "resource_fetched",
        extra={"bytes": len(data), "content_type": content_type, "mode": mode.value},
    )

    if mode is FetchMode.FILE:
        return FileResource(path=_write_temp_file(data, content_type), content_type=content_type)
    return BufferedResource(data=data, content_type=content_type)
