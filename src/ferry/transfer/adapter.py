"""Transfer adapters — hold the filter and validator pipelines and move bytes.

``HttpAdapter`` works on files already parsed from a multipart request
body. Multi-file fields are listed as one group entry plus one member
entry per file::

    {
        "avatar":   {"name": "me.png", ...},
        "photos":   {"multifiles": ["photos_0", "photos_1"]},
        "photos_0": {"name": "a.jpg", ...},
        "photos_1": {"name": "b.jpg", ...},
    }
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol, TypedDict

from ferry.errors import ConfigurationError, PathError
from ferry.filesystem import ensure_dir
from ferry.http.forms import FileFields, UploadFile, field_name
from ferry.transfer.filters import safe_basename
from ferry.validation import FileValidator, build_validator, normalize_name, validate_files

logger = logging.getLogger("ferry.transfer")


class FileInfo(TypedDict, total=False):
    """One entry of ``get_file_list()``."""

    name: str
    type: str
    size: int
    filename: str
    received: bool
    multifiles: list[str]


class TransferFilter(Protocol):
    """A named filter applied to a file's source name before storage."""

    name: str

    def filter(self, original_name: str) -> str: ...


class TransferAdapter(Protocol):
    """The operations the upload configurator relies on."""

    def set_destination(self, path: str | Path) -> None: ...

    def get_destination(self) -> Path | None: ...

    def add_filter(self, flt: TransferFilter) -> None: ...

    def remove_filter(self, name: str) -> None: ...

    def add_validator(self, name: str, break_chain_on_failure: bool, options: Any) -> None: ...

    def get_file_list(self) -> Mapping[str, FileInfo]: ...

    def get_file_name(self, name: str, path: bool = False) -> str | dict[str, str] | None: ...

    def is_valid(self) -> bool: ...

    def get_messages(self) -> dict[str, list[str]]: ...

    def receive(self) -> bool: ...

    def is_received(self) -> bool: ...


class HttpAdapter:
    """Adapter for files uploaded with an HTTP multipart request.

    Usage::

        form = await parse_form_data(body, content_type)
        adapter = HttpAdapter(form.files)
        adapter.set_destination("/var/www/upload/avatars")
        adapter.add_validator("extension", False, "jpg,png")
        if adapter.receive():
            stored = adapter.get_file_name("avatar")
    """

    __slots__ = (
        "_destination",
        "_files",
        "_filters",
        "_groups",
        "_messages",
        "_received",
        "_stored",
        "_validators",
        "overwrite",
    )

    def __init__(
        self,
        files: Mapping[str, UploadFile | list[UploadFile]] | None = None,
        *,
        overwrite: bool = True,
    ) -> None:
        self.overwrite = overwrite
        self._destination: Path | None = None
        self._filters: dict[str, TransferFilter] = {}
        self._validators: dict[str, tuple[FileValidator, bool]] = {}
        self._messages: dict[str, list[str]] = {}
        self._stored: dict[str, Path] = {}
        self._received = False
        # Member name -> file, and group name -> member names
        self._files: dict[str, UploadFile] = {}
        self._groups: dict[str, list[str]] = {}
        multiple = files.multiple if isinstance(files, FileFields) else frozenset()
        for raw_name, value in (files or {}).items():
            name = field_name(raw_name)
            uploads = value if isinstance(value, list) else [value]
            if len(uploads) == 1 and name == raw_name and name not in multiple:
                entries: dict[str, UploadFile] = {name: uploads[0]}
                groups: dict[str, list[str]] = {}
            else:
                members = [f"{name}_{i}" for i in range(len(uploads))]
                entries = dict(zip(members, uploads, strict=True))
                groups = {name: members}
            taken = self._files.keys() | self._groups.keys()
            clash = (entries.keys() | groups.keys()) & taken
            if clash:
                msg = (
                    f"Upload field(s) {', '.join(sorted(clash))} "
                    "collide with multi-file member names"
                )
                raise ConfigurationError(msg)
            self._files.update(entries)
            self._groups.update(groups)

    # -- Destination -------------------------------------------------------

    def set_destination(self, path: str | Path) -> None:
        """Set the directory files are stored in; it is created on ``receive()``."""
        self._destination = Path(path)

    def get_destination(self) -> Path | None:
        return self._destination

    # -- Filters and validators -------------------------------------------

    def add_filter(self, flt: TransferFilter) -> None:
        """Register *flt*, replacing any filter with the same name."""
        self._filters[flt.name] = flt

    def remove_filter(self, name: str) -> None:
        """Remove the filter called *name*; missing filters are ignored."""
        self._filters.pop(name, None)

    def get_filter(self, name: str) -> TransferFilter | None:
        return self._filters.get(name)

    def add_validator(self, name: str, break_chain_on_failure: bool, options: Any) -> None:
        """Register a named validator, replacing an earlier one of that name.

        Raises:
            ConfigurationError: If the validator name is unknown.
        """
        key = normalize_name(name)
        self._validators[key] = (build_validator(key, options), break_chain_on_failure)

    def add_validator_callable(
        self,
        name: str,
        validator: Callable[[UploadFile], str | None],
        break_chain_on_failure: bool = False,
    ) -> None:
        """Register a custom ``(UploadFile) -> str | None`` validator."""
        self._validators[normalize_name(name)] = (validator, break_chain_on_failure)

    def remove_validator(self, name: str) -> None:
        self._validators.pop(normalize_name(name), None)

    def has_validator(self, name: str) -> bool:
        return normalize_name(name) in self._validators

    # -- File list ---------------------------------------------------------

    def get_file_list(self) -> dict[str, FileInfo]:
        """Describe every group and member in form order."""
        result: dict[str, FileInfo] = {}
        grouped = {m: g for g, members in self._groups.items() for m in members}
        for member, upload in self._files.items():
            group = grouped.get(member)
            if group is not None and group not in result:
                result[group] = {"multifiles": list(self._groups[group])}
            info: FileInfo = {
                "name": upload.filename,
                "type": upload.content_type,
                "size": upload.size,
                "received": member in self._stored,
            }
            stored = self._stored.get(member)
            if stored is not None:
                info["filename"] = str(stored)
            result[member] = info
        return result

    def get_file_name(self, name: str, path: bool = False) -> str | dict[str, str] | None:
        """Return the stored name for *name*.

        A multi-file group yields a ``member -> stored name`` mapping.
        Files not yet received yield ``None``.
        """
        members = self._groups.get(name)
        if members is not None:
            names: dict[str, str] = {}
            for member in members:
                stored = self._stored_name(member, path)
                if stored is not None:
                    names[member] = stored
            return names
        if name not in self._files:
            msg = f"No uploaded file named {name!r}"
            raise ConfigurationError(msg)
        return self._stored_name(name, path)

    def _stored_name(self, member: str, path: bool) -> str | None:
        stored = self._stored.get(member)
        if stored is None:
            return None
        return str(stored) if path else stored.name

    # -- Transfer ----------------------------------------------------------

    def _field_files(self) -> dict[str, list[UploadFile]]:
        grouped = {m for members in self._groups.values() for m in members}
        fields: dict[str, list[UploadFile]] = {
            name: [upload] for name, upload in self._files.items() if name not in grouped
        }
        for group, members in self._groups.items():
            fields[group] = [self._files[m] for m in members]
        return fields

    def is_valid(self) -> bool:
        """Run every validator against every file and collect messages."""
        if not self._files:
            self._messages = {"": ["No file was uploaded"]}
            return False
        result = validate_files(self._field_files(), self._validators)
        self._messages = result.errors
        if not result:
            logger.warning("Upload validation failed: %s", result.errors)
        return result.is_valid

    def get_messages(self) -> dict[str, list[str]]:
        """Validation messages from the last ``is_valid()`` or ``receive()``."""
        return {k: list(v) for k, v in self._messages.items()}

    def receive(self) -> bool:
        """Validate, filter, and store every file.

        Returns False (with messages) when validation fails. Every target
        name is computed before the first write; if a write fails, the
        files already stored by this call are removed.

        Raises:
            PathError: If no destination is set, a filename cannot be
                stored inside it, or a file cannot be written.
            RenameError: If the rename filter fails.
        """
        if self._destination is None:
            msg = "No upload destination set"
            raise PathError(msg)
        if not self.is_valid():
            return False

        destination = ensure_dir(self._destination)
        targets: dict[str, Path] = {}
        for member, upload in self._files.items():
            target = destination / self._stored_filename(upload)
            targets[member] = self._available(target, set(targets.values()))

        written: list[Path] = []
        for member, target in targets.items():
            upload = self._files[member]
            try:
                upload.save(target)
            except OSError as exc:
                self._discard(written)
                msg = f"Cannot store uploaded file {upload.filename!r} at {target}: {exc}"
                raise PathError(msg, str(target)) from exc
            written.append(target)
            logger.debug("Stored upload %s as %s", member, target)

        self._stored.update(targets)
        self._received = True
        return True

    def is_received(self) -> bool:
        return self._received

    def _stored_filename(self, upload: UploadFile) -> str:
        # Client-supplied names lose any directory part before and after filtering
        name = safe_basename(upload.filename)
        for flt in self._filters.values():
            name = safe_basename(flt.filter(name))
        if name in {"", ".", ".."}:
            msg = f"Uploaded file {upload.filename!r} has no usable filename"
            raise PathError(msg, upload.filename)
        return name

    def _available(self, target: Path, reserved: set[Path]) -> Path:
        if target not in reserved and (self.overwrite or not target.exists()):
            return target
        counter = 1
        while True:
            candidate = target.with_name(f"{target.stem}-{counter}{target.suffix}")
            if candidate not in reserved and (self.overwrite or not candidate.exists()):
                return candidate
            counter += 1

    def _discard(self, written: list[Path]) -> None:
        for path in written:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove partial upload %s: %s", path, exc)


# Registry of adapters by identifier
ADAPTERS: dict[str, type[HttpAdapter]] = {
    "http": HttpAdapter,
}


def create_adapter(
    identifier: str,
    files: Mapping[str, UploadFile | list[UploadFile]] | None,
    *,
    overwrite: bool = True,
) -> HttpAdapter:
    """Instantiate the adapter registered as *identifier* (case-insensitive).

    Raises:
        ConfigurationError: If no adapter is registered under *identifier*.
    """
    cls = ADAPTERS.get(identifier.lower())
    if cls is None:
        available = ", ".join(sorted(ADAPTERS))
        msg = f"Unknown transfer adapter {identifier!r}. Available: {available}"
        raise ConfigurationError(msg)
    return cls(files, overwrite=overwrite)
