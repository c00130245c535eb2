"""Route table import resolution — ``"module:attribute"`` strings to tables."""

import importlib
from collections.abc import Iterable, Mapping
from typing import Any

DEFAULT_TABLE = "ferry.routing.table:ROUTES"


def resolve_table(import_string: str | None) -> Any:
    """Resolve an import string to a route table.

    Accepts ``"module:attribute"`` format. When the attribute portion is
    omitted, defaults to ``"ROUTES"``. Callables are called (table
    factories).

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a mapping or sequence.
    """
    module_path, _, attr_name = (import_string or DEFAULT_TABLE).partition(":")
    if not attr_name:
        attr_name = "ROUTES"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if isinstance(obj, (str, bytes)) or not isinstance(obj, (Mapping, Iterable)):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a route table"
        raise TypeError(msg)

    return obj
