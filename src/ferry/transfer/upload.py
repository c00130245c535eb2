"""File upload configurator.

Wraps a transfer adapter with destination resolution, a rename strategy,
and validators. Straightforward usage::

    form = await parse_form_data(body, content_type)
    uploader = Upload(form.files, resolver=resolver)
    if uploader.receive():
        saved = uploader.get_uploaded("avatar")
    else:
        errors = uploader.get_messages()

Destination defaults to ``<upload root>/<current module>``::

    uploader.set_destination("folder/subfolder")   # <upload root>/folder/subfolder
    uploader.set_destination("/folder/subfolder")  # /folder/subfolder

Limits::

    uploader.set_extension("jpg,png,gif")
    uploader.set_size(1024)
    uploader.set_image_size({"minWidth": 80, "minHeight": 60, "maxWidth": 800, "maxHeight": 600})

Renaming (see ``ferry.transfer.filters`` for the pattern tags)::

    Upload(form.files, {"rename": "prefix.%random%"}, resolver=resolver)
    uploader.set_rename("%term%-%date:l%")
    uploader.set_rename(lambda name: "new_" + name)
    uploader.set_rename(False)  # keep source names
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Self

from ferry.config import (
    UNSET,
    ImageSizeLimits,
    SizeLimits,
    SizeValue,
    UploadConfig,
    UploadOptions,
)
from ferry.filesystem import ensure_dir, is_absolute_path, resolve_under
from ferry.http.forms import UploadFile
from ferry.resolver import PathResolver
from ferry.transfer.adapter import TransferAdapter, create_adapter
from ferry.transfer.filters import Rename, RenameStrategy

logger = logging.getLogger("ferry.upload")


class Upload:
    """Configures one request's upload and reports the stored filenames.

    Constructed once per request, configured through the setters, then
    discarded when the request completes.
    """

    __slots__ = ("_adapter", "_destination", "_resolved", "config", "resolver")

    def __init__(
        self,
        files: Mapping[str, UploadFile | list[UploadFile]] | None = None,
        options: UploadOptions | Mapping[str, Any] | None = None,
        adapter: str | TransferAdapter | None = None,
        *,
        resolver: PathResolver,
        config: UploadConfig | None = None,
    ) -> None:
        self.config = config or UploadConfig()
        self.resolver = resolver
        if options is None:
            options = UploadOptions()
        elif not isinstance(options, UploadOptions):
            options = UploadOptions.from_mapping(options)

        if adapter is None:
            adapter = self.config.adapter
        if isinstance(adapter, str):
            adapter = create_adapter(adapter, files, overwrite=self.config.overwrite)
        self._adapter: TransferAdapter = adapter
        self._destination: str | Path = ""
        self._resolved: Path | None = None

        destination = options.destination
        if destination is UNSET or not destination:
            destination = resolver.current_module()
        rename = self.config.rename if options.rename is UNSET else options.rename

        self.set_destination(destination)
        self.set_rename(rename)

        if options.extension is not UNSET:
            self.set_extension(options.extension)
        if options.exclude_extension is not UNSET:
            self.set_exclude_extension(options.exclude_extension)
        if options.size is not UNSET:
            self.set_size(options.size)
        if options.image_size is not UNSET:
            self.set_image_size(options.image_size)

    def get_adapter(self) -> TransferAdapter:
        return self._adapter

    # -- Destination -------------------------------------------------------

    def set_destination(self, value: str | Path, verify: bool = True) -> Self:
        """Set the upload destination.

        Args:
            value: Absolute path to store files, or a path relative to
                the resolver's upload root.
            verify: Ensure an absolute destination exists. Relative
                destinations are always created.

        Raises:
            PathError: If the directory cannot be created, or a relative
                value points outside the upload root.
        """
        if is_absolute_path(value):
            path = Path(value)
            if verify:
                ensure_dir(path)
        else:
            path = ensure_dir(resolve_under(self.resolver.upload_path(), value))
        self._destination = value
        self._resolved = path
        self._adapter.set_destination(path)
        logger.debug("Upload destination %s resolved to %s", value, path)
        return self

    def get_destination(self) -> str | Path:
        """Return the destination exactly as it was set (relative or absolute)."""
        return self._destination

    def get_destination_path(self) -> Path | None:
        """Return the resolved absolute destination directory."""
        return self._resolved

    # -- Rename ------------------------------------------------------------

    def set_rename(self, value: str | Callable[[str], str] | RenameStrategy | bool) -> Self:
        """Set the rename strategy; ``False`` keeps source filenames."""
        self._adapter.remove_filter("rename")
        if value is not False:
            self._adapter.add_filter(Rename(value))  # type: ignore[arg-type]
        return self

    # -- Validators --------------------------------------------------------

    def set_extension(self, value: str | list[str]) -> Self:
        """Allow only the given extensions (``"jpg,png"`` or a list)."""
        self._adapter.add_validator("extension", False, value)
        return self

    def set_exclude_extension(self, value: str | list[str]) -> Self:
        """Reject the given extensions (``"exe,php"`` or a list)."""
        self._adapter.add_validator("excludeextension", False, value)
        return self

    def set_size(self, value: SizeLimits | SizeValue | Mapping[str, Any]) -> Self:
        """Limit file size.

        An integer or byte string is the maximum size. A mapping or
        ``SizeLimits`` accepts ``min``, ``max`` and ``use_byte_string``
        (byte strings rather than raw numbers in messages).
        """
        self._adapter.add_validator("size", False, value)
        return self

    def set_image_size(self, value: ImageSizeLimits | Mapping[str, Any]) -> Self:
        """Limit image dimensions: ``min_width``, ``min_height``, ``max_width``, ``max_height``."""
        self._adapter.add_validator("imagesize", False, value)
        return self

    # -- Transfer ----------------------------------------------------------

    def is_valid(self) -> bool:
        return self._adapter.is_valid()

    def get_messages(self) -> dict[str, list[str]]:
        return self._adapter.get_messages()

    def receive(self) -> bool:
        return self._adapter.receive()

    def get_uploaded(
        self, name: str | None = None, path: bool = False
    ) -> str | list[str] | dict[str, str | list[str]] | None:
        """Get stored filename(s).

        Args:
            name: Form field name. A multi-file field yields a list of
                names in upload order. Omitted, every field is returned
                keyed by name; members of a multi-file field appear only
                inside their group.
            path: Return full paths instead of base filenames.

        Before a successful ``receive()`` this returns ``{}`` (no name)
        or ``None`` (with a name).
        """
        if not self._adapter.is_received():
            return None if name else {}

        files = self._adapter.get_file_list()
        if name:
            result = self._adapter.get_file_name(name, path)
            if isinstance(result, dict) and "multifiles" in files.get(name, {}):
                return list(result.values())
            return result

        multiples = {member for data in files.values() for member in data.get("multifiles", [])}
        return {
            key: self.get_uploaded(key, path)  # type: ignore[misc]
            for key in files
            if key not in multiples
        }
