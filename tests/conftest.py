"""Shared fixtures: an upload root per test and in-memory uploads."""

import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from ferry.http.forms import UploadFile
from ferry.resolver import StaticPathResolver


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "upload"
    root.mkdir()
    return root


@pytest.fixture
def resolver(upload_root: Path) -> StaticPathResolver:
    return StaticPathResolver(upload_root=upload_root, module="demo")


@pytest.fixture
def make_file() -> Callable[..., UploadFile]:
    """Build an ``UploadFile`` from a name and optional content."""

    def factory(
        filename: str,
        content: bytes = b"hello",
        content_type: str = "application/octet-stream",
    ) -> UploadFile:
        return UploadFile(
            filename=filename,
            content_type=content_type,
            size=len(content),
            content=content,
        )

    return factory


@pytest.fixture
def make_image(make_file: Callable[..., UploadFile]) -> Callable[..., UploadFile]:
    """Build a PNG ``UploadFile`` of the given dimensions."""

    def factory(filename: str = "photo.png", width: int = 100, height: int = 80) -> UploadFile:
        buf = io.BytesIO()
        Image.new("RGB", (width, height), color=(200, 30, 30)).save(buf, format="PNG")
        return make_file(filename, buf.getvalue(), "image/png")

    return factory
