"""Path/module resolution for upload destinations.

The configurator receives a resolver explicitly instead of looking one up
from a process-wide registry, so tests and multi-site hosts can supply
their own.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ferry.config import UploadConfig


class PathResolver(Protocol):
    """Supplies the upload root and the default destination subpath."""

    def upload_path(self) -> Path: ...

    def current_module(self) -> str: ...


@dataclass(frozen=True, slots=True)
class StaticPathResolver:
    """A resolver with a fixed upload root and module name."""

    upload_root: Path
    module: str = "system"

    @classmethod
    def from_config(cls, config: UploadConfig, module: str | None = None) -> "StaticPathResolver":
        """Build a resolver from ``UploadConfig``, optionally overriding the module."""
        return cls(
            upload_root=Path(config.upload_root).absolute(),
            module=module or config.default_module,
        )

    def upload_path(self) -> Path:
        return self.upload_root

    def current_module(self) -> str:
        return self.module
