"""
Output Download - Save generated media to disk.

Node outputs reference their media by URL (http(s) or data: URIs). This
module writes them to a directory with safe file names, and fills in
missing image metadata (dimensions, format, size) by probing the bytes.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import time
from io import BytesIO
from pathlib import Path
from urllib.parse import unquote, urlparse

import aiohttp
from PIL import Image, UnidentifiedImageError

from creative_canvas.core.graph import NodeOutput, OutputMetadata

logger = logging.getLogger(__name__)


DEFAULT_OUTPUT_DIR = Path.home() / ".local" / "share" / "creative_canvas" / "outputs"

_MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "model/gltf-binary": ".glb",
    "text/plain": ".txt",
    "application/json": ".json",
}

_KNOWN_EXTENSIONS = set(_MIME_EXTENSIONS.values()) | {
    ".jpeg", ".mov", ".ogg", ".obj", ".fbx", ".gltf", ".usdz",
}

# Fallback extension per output type
_TYPE_EXTENSIONS = {
    "image": ".png",
    "video": ".mp4",
    "audio": ".mp3",
    "mesh3d": ".glb",
    "text": ".txt",
    "data": ".json",
}

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class DownloadError(Exception):
    """A media URL could not be fetched or decoded."""
    pass


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """
    Make a string safe to use as a file name.

    Invalid characters become underscores, whitespace runs collapse to a
    single underscore, and leading/trailing dots and underscores are
    stripped. An empty result becomes "output".
    """
    cleaned = _INVALID_CHARS.sub("_", name)
    cleaned = re.sub(r"\s+", "_", cleaned)
    cleaned = re.sub(r"_+", "_", cleaned).strip("._")
    cleaned = cleaned[:max_length].rstrip("._")
    return cleaned or "output"


def extension_from_url(url: str, default: str | None = None) -> str | None:
    """
    Infer a file extension (with dot) from a URL or data URI.

    Returns `default` if nothing recognizable is found.
    """
    if url.startswith("data:"):
        mime = url[5:].split(";", 1)[0].split(",", 1)[0].strip().lower()
        return _MIME_EXTENSIONS.get(mime, default)

    path = unquote(urlparse(url).path)
    suffix = Path(path).suffix.lower()
    if suffix == ".jpeg":
        return ".jpg"
    if suffix in _KNOWN_EXTENSIONS:
        return suffix
    return default


def probe_image_metadata(data: bytes) -> OutputMetadata | None:
    """Read width, height and format from image bytes, or None if not an image."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            fmt = (img.format or "").lower() or None
    except (UnidentifiedImageError, OSError):
        return None
    return OutputMetadata(width=width, height=height, format=fmt, file_size=len(data))


def decode_data_uri(uri: str) -> bytes:
    """Decode a base64 (or plain) data: URI."""
    try:
        header, payload = uri.split(",", 1)
    except ValueError as e:
        raise DownloadError("Malformed data URI") from e
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload)
        except (binascii.Error, ValueError) as e:
            raise DownloadError("Invalid base64 in data URI") from e
    return unquote(payload).encode()


async def fetch_bytes(url: str, session: aiohttp.ClientSession) -> bytes:
    """Get the bytes behind a URL or data URI."""
    if url.startswith("data:"):
        return decode_data_uri(url)

    if not url.startswith(("http://", "https://")):
        raise DownloadError(f"Unsupported URL scheme: {url[:40]}")

    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                raise DownloadError(f"Failed to download {url}: HTTP {resp.status}")
            return await resp.read()
    except aiohttp.ClientError as e:
        raise DownloadError(f"Failed to download {url}: {e}") from e


def _unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    counter = 2
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


async def download_output(
    output: NodeOutput,
    directory: Path,
    *,
    filename: str | None = None,
    add_timestamp: bool = False,
    session: aiohttp.ClientSession | None = None,
) -> list[Path]:
    """
    Write every media file of an output to `directory`.

    Text and data outputs without URLs are written as .txt / .json files.
    Image metadata missing from `output.metadata` is filled in from the
    first downloaded image.

    Args:
        output: The node output to save
        directory: Destination directory (created if needed)
        filename: Base file name; defaults to the output type
        add_timestamp: Append a YYYYMMDD_HHMMSS stamp to the name
        session: Reuse an aiohttp session; one is created if omitted

    Returns:
        Paths of the written files, in URL order.

    Raises:
        DownloadError: If a URL cannot be fetched or decoded.
    """
    directory.mkdir(parents=True, exist_ok=True)
    base = sanitize_filename(filename or output.type)
    if add_timestamp:
        base = f"{base}_{time.strftime('%Y%m%d_%H%M%S')}"

    urls = output.all_urls
    if not urls:
        return _write_inline(output, directory, base)

    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession()

    paths: list[Path] = []
    try:
        for index, url in enumerate(urls):
            data = await fetch_bytes(url, session)
            ext = extension_from_url(url, _TYPE_EXTENSIONS.get(output.type, ".bin"))
            name = base if len(urls) == 1 else f"{base}_{index + 1}"
            path = _unique_path(directory / f"{name}{ext}")
            path.write_bytes(data)
            paths.append(path)
            logger.info("Saved %s (%d bytes)", path, len(data))

            if index == 0 and output.type == "image":
                _fill_metadata(output, data)
    finally:
        if owns_session:
            await session.close()

    return paths


def _write_inline(output: NodeOutput, directory: Path, base: str) -> list[Path]:
    if output.text is not None:
        path = _unique_path(directory / f"{base}.txt")
        path.write_text(output.text, encoding="utf-8")
    elif output.data is not None:
        path = _unique_path(directory / f"{base}.json")
        path.write_text(json.dumps(output.data, indent=2), encoding="utf-8")
    else:
        logger.warning("Output of type %s has nothing to save", output.type)
        return []
    logger.info("Saved %s", path)
    return [path]


def _fill_metadata(output: NodeOutput, data: bytes) -> None:
    probed = probe_image_metadata(data)
    if probed is None:
        return
    if output.metadata is None:
        output.metadata = probed
        return
    meta = output.metadata
    meta.width = meta.width if meta.width is not None else probed.width
    meta.height = meta.height if meta.height is not None else probed.height
    meta.format = meta.format or probed.format
    meta.file_size = meta.file_size if meta.file_size is not None else probed.file_size
