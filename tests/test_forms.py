"""Tests for form data parsing and multi-file grouping."""

from pathlib import Path

import pytest

from ferry.http.forms import FormData, UploadFile, field_name, parse_form_data

BOUNDARY = "----ferryboundary"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"


def _multipart(*parts: tuple[str, str | None, bytes]) -> bytes:
    """Encode ``(field, filename, content)`` parts; ``filename=None`` is a text field."""
    chunks: list[bytes] = []
    for name, filename, content in parts:
        disposition = f'form-data; name="{name}"'
        headers = ""
        if filename is not None:
            disposition += f'; filename="{filename}"'
            headers = "Content-Type: application/octet-stream\r\n"
        chunks.append(
            f"--{BOUNDARY}\r\nContent-Disposition: {disposition}\r\n{headers}\r\n".encode()
            + content
            + b"\r\n"
        )
    chunks.append(f"--{BOUNDARY}--\r\n".encode())
    return b"".join(chunks)


class TestUploadFile:
    def test_stem_and_extension(self) -> None:
        upload = UploadFile("Holiday.Photo.JPG", "image/jpeg", 3, b"abc")
        assert upload.stem == "Holiday.Photo"
        assert upload.extension == "jpg"

    def test_no_extension(self) -> None:
        assert UploadFile("README", "text/plain", 0, b"").extension == ""

    def test_read_and_save(self, tmp_path: Path) -> None:
        upload = UploadFile("a.txt", "text/plain", 5, b"hello")
        assert upload.read() == b"hello"
        upload.save(tmp_path / "a.txt")
        assert (tmp_path / "a.txt").read_bytes() == b"hello"

    def test_repr_hides_content(self) -> None:
        upload = UploadFile("a.txt", "text/plain", 5, b"secret")
        assert "secret" not in repr(upload)
        assert "5 bytes" in repr(upload)


class TestFormData:
    def test_getitem_returns_first(self) -> None:
        form = FormData({"color": ["red", "blue"]})
        assert form["color"] == "red"
        assert form.get_list("color") == ["red", "blue"]

    def test_get_default(self) -> None:
        assert FormData({}).get("missing", "x") == "x"

    def test_files_empty_by_default(self) -> None:
        files = FormData({"x": ["1"]}).files
        assert len(files) == 0
        assert files.multiple == frozenset()


class TestFieldName:
    def test_strips_brackets(self) -> None:
        assert field_name("photos[]") == "photos"

    def test_plain_name(self) -> None:
        assert field_name("avatar") == "avatar"


class TestParseFormData:
    async def test_urlencoded(self) -> None:
        form = await parse_form_data(b"title=Hello&tag=a&tag=b", "application/x-www-form-urlencoded")
        assert form["title"] == "Hello"
        assert form.get_list("tag") == ["a", "b"]

    async def test_unsupported_content_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            await parse_form_data(b"{}", "application/json")

    async def test_missing_boundary(self) -> None:
        with pytest.raises(ValueError, match="boundary"):
            await parse_form_data(b"", "multipart/form-data")

    async def test_single_file_and_field(self) -> None:
        body = _multipart(("title", None, b"Hi"), ("avatar", "me.png", b"PNGDATA"))
        form = await parse_form_data(body, CONTENT_TYPE)

        assert form["title"] == "Hi"
        [avatar] = form.files["avatar"]
        assert avatar.filename == "me.png"
        assert avatar.size == 7
        assert avatar.content == b"PNGDATA"

    async def test_bracket_field_groups_files(self) -> None:
        body = _multipart(("photos[]", "a.jpg", b"A"), ("photos[]", "b.jpg", b"B"))
        form = await parse_form_data(body, CONTENT_TYPE)

        assert [f.filename for f in form.files["photos"]] == ["a.jpg", "b.jpg"]
        assert form.files.multiple == {"photos"}

    async def test_bracket_field_with_one_file_stays_multiple(self) -> None:
        body = _multipart(("photos[]", "a.jpg", b"A"), ("avatar", "me.png", b"M"))
        form = await parse_form_data(body, CONTENT_TYPE)

        assert len(form.files["photos"]) == 1
        assert form.files.multiple == {"photos"}

    async def test_repeated_field_groups_files(self) -> None:
        body = _multipart(("docs", "a.txt", b"A"), ("docs", "b.txt", b"B"))
        form = await parse_form_data(body, CONTENT_TYPE)

        assert len(form.files["docs"]) == 2

    async def test_empty_file_input_skipped(self) -> None:
        body = _multipart(("avatar", "", b""))
        form = await parse_form_data(body, CONTENT_TYPE)

        assert "avatar" not in form.files
