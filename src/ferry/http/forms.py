"""Form data parsing — URL-encoded and multipart.

Uploaded files are grouped by form field. A field that receives more
than one file, either through repeated parts or the ``photos[]`` naming
convention, keeps every file in declaration order.

``python-multipart`` parses ``multipart/form-data``. URL-encoded forms
use stdlib ``urllib.parse``.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from python_multipart.multipart import MultipartParser, parse_options_header


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    Immutable metadata with the content held in memory as bytes
    (suitable for typical web uploads bounded by request size).
    """

    filename: str
    content_type: str
    size: int
    content: bytes = field(repr=False)

    @property
    def stem(self) -> str:
        """Source filename without its extension."""
        return Path(self.filename).stem

    @property
    def extension(self) -> str:
        """Lower-cased extension without the dot, ``""`` when absent."""
        return Path(self.filename).suffix[1:].lower()

    def read(self) -> bytes:
        """Return the file content as bytes."""
        return self.content

    def save(self, path: Path) -> None:
        """Write the file content to disk.

        Args:
            path: Destination file path. Parent directories must exist.
        """
        path.write_bytes(self.content)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FileFields(dict[str, list[UploadFile]]):
    """Uploaded files by field name.

    ``multiple`` names the fields posted with the ``name[]`` convention;
    they stay multi-file fields even when a single file arrived.
    """

    __slots__ = ("multiple",)

    def __init__(
        self,
        files: Mapping[str, list[UploadFile]] | None = None,
        multiple: Iterable[str] = (),
    ) -> None:
        super().__init__(files or {})
        self.multiple = frozenset(multiple)


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key (string fields only).
    ``files`` maps each field name to the list of files it received.

    Usage::

        form = await parse_form_data(body, content_type)
        title = form["title"]
        photos = form.files.get("photos", [])
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: Mapping[str, list[UploadFile]] | None = None,
    ) -> None:
        if not isinstance(files, FileFields):
            files = FileFields(files)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_files", files)

    @property
    def files(self) -> FileFields:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}}, files={sorted(self._files)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def field_name(raw: str) -> str:
    """Strip the ``[]`` multi-file suffix from a form field name."""
    if raw.endswith("[]"):
        return raw[:-2]
    return raw


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse form body into FormData.

    Supports:
    - ``application/x-www-form-urlencoded`` (stdlib)
    - ``multipart/form-data`` (``python-multipart``)

    Raises:
        ValueError: If content type is not a supported form encoding,
            or a multipart body has no boundary.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        return _parse_urlencoded(body)

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_urlencoded(body: bytes) -> FormData:
    from urllib.parse import parse_qs

    parsed = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    return FormData(parsed)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, list[UploadFile]] = {}
    multiple: set[str] = set()

    current_headers: dict[str, str] = {}
    current_data = bytearray()
    current_field_name: str | None = None
    current_filename: str | None = None

    def on_part_begin() -> None:
        nonlocal current_headers, current_data, current_field_name, current_filename
        current_headers = {}
        current_data = bytearray()
        current_field_name = None
        current_filename = None

    def on_part_data(data_chunk: bytes, start: int, end: int) -> None:
        current_data.extend(data_chunk[start:end])

    def on_part_end() -> None:
        if current_field_name is None:
            return

        if current_filename is not None:
            # Browsers send an empty part for an untouched file input
            if not current_filename and not current_data:
                return
            ct = current_headers.get("content-type", "application/octet-stream")
            content = bytes(current_data)
            name = field_name(current_field_name)
            if name != current_field_name:
                multiple.add(name)
            files.setdefault(name, []).append(
                UploadFile(
                    filename=current_filename,
                    content_type=ct,
                    size=len(content),
                    content=content,
                )
            )
        else:
            value = current_data.decode("utf-8", errors="replace")
            data.setdefault(current_field_name, []).append(value)

    def on_header_field(hdata: bytes, start: int, end: int) -> None:
        current_headers["_pending_field"] = hdata[start:end].decode("latin-1").lower()

    def on_header_value(hdata: bytes, start: int, end: int) -> None:
        nonlocal current_field_name, current_filename
        header = current_headers.pop("_pending_field", "")
        value = hdata[start:end].decode("latin-1")
        current_headers[header] = value

        if header == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            name = params.get(b"name")
            if name is not None:
                current_field_name = name.decode("utf-8")
            fname = params.get(b"filename")
            if fname is not None:
                current_filename = fname.decode("utf-8")

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()

    return FormData(data, FileFields(files, multiple))
