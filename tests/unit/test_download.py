"""
Tests for saving node outputs to disk.
"""

import asyncio
import base64
import json
from io import BytesIO

import pytest
from PIL import Image

from creative_canvas.core.graph import NodeOutput, OutputMetadata
from creative_canvas.providers.download import (
    DownloadError,
    decode_data_uri,
    download_output,
    extension_from_url,
    probe_image_metadata,
    sanitize_filename,
)


def _png_bytes(width=4, height=3):
    buffer = BytesIO()
    Image.new("RGB", (width, height), (200, 40, 40)).save(buffer, "PNG")
    return buffer.getvalue()


def _data_uri(data, mime="image/png"):
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


class TestHelpers:
    """Tests for file name and URL helpers."""

    def test_sanitize_filename(self):
        assert sanitize_filename('Hero: "Final" cut?') == "Hero_Final_cut"
        assert sanitize_filename("  a   b  ") == "a_b"
        assert sanitize_filename("...") == "output"
        assert len(sanitize_filename("x" * 300)) == 100

    def test_extension_from_url(self):
        assert extension_from_url("https://cdn.example.com/a/b.PNG?sig=1") == ".png"
        assert extension_from_url("https://cdn.example.com/clip.jpeg") == ".jpg"
        assert extension_from_url("data:video/mp4;base64,AAAA") == ".mp4"
        assert extension_from_url("https://cdn.example.com/blob", ".bin") == ".bin"

    def test_probe_png(self):
        meta = probe_image_metadata(_png_bytes(8, 5))

        assert (meta.width, meta.height, meta.format) == (8, 5, "png")
        assert meta.file_size > 0

    def test_probe_non_image(self):
        assert probe_image_metadata(b"not an image") is None

    def test_decode_plain_data_uri(self):
        assert decode_data_uri("data:text/plain,hello%20world") == b"hello world"

    def test_decode_malformed_data_uri(self):
        with pytest.raises(DownloadError):
            decode_data_uri("data:image/png;base64")


class TestDownloadOutput:
    """Tests for download_output."""

    def test_image_from_data_uri(self, tmp_path):
        data = _png_bytes(6, 4)
        output = NodeOutput(type="image", url=_data_uri(data))

        paths = asyncio.run(download_output(output, tmp_path, filename="hero shot"))

        assert [p.name for p in paths] == ["hero_shot.png"]
        assert paths[0].read_bytes() == data
        assert (output.metadata.width, output.metadata.height) == (6, 4)

    def test_reported_metadata_is_kept(self, tmp_path):
        output = NodeOutput(
            type="image", url=_data_uri(_png_bytes(6, 4)),
            metadata=OutputMetadata(width=1024, height=1024),
        )

        asyncio.run(download_output(output, tmp_path))

        assert output.metadata.width == 1024
        assert output.metadata.format == "png"

    def test_multiple_urls_are_numbered(self, tmp_path):
        uri = _data_uri(_png_bytes())
        output = NodeOutput(type="image", urls=[uri, uri])

        paths = asyncio.run(download_output(output, tmp_path, filename="set"))

        assert [p.name for p in paths] == ["set_1.png", "set_2.png"]

    def test_existing_files_are_not_overwritten(self, tmp_path):
        (tmp_path / "image.png").write_bytes(b"old")
        output = NodeOutput(type="image", url=_data_uri(_png_bytes()))

        paths = asyncio.run(download_output(output, tmp_path))

        assert paths[0].name == "image_2.png"
        assert (tmp_path / "image.png").read_bytes() == b"old"

    def test_text_output(self, tmp_path):
        output = NodeOutput(type="text", text="A red fox at dawn")

        paths = asyncio.run(download_output(output, tmp_path, filename="prompt"))

        assert paths[0].name == "prompt.txt"
        assert paths[0].read_text() == "A red fox at dawn"

    def test_data_output(self, tmp_path):
        output = NodeOutput(type="data", data={"scenes": 3})

        paths = asyncio.run(download_output(output, tmp_path / "out"))

        assert json.loads(paths[0].read_text()) == {"scenes": 3}

    def test_unsupported_scheme(self, tmp_path):
        output = NodeOutput(type="image", url="ftp://example.com/a.png")

        with pytest.raises(DownloadError):
            asyncio.run(download_output(output, tmp_path))
