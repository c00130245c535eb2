"""Ferry — upload handling and route tables for content sites.

Upload usage::

    from ferry import StaticPathResolver, Upload
    from ferry.http.forms import parse_form_data

    form = await parse_form_data(body, content_type)
    uploader = Upload(form.files, {"rename": "%term%-%date:l%"},
                      resolver=StaticPathResolver(Path("/var/www/upload")))
    uploader.set_extension("jpg,png")
    if uploader.receive():
        saved = uploader.get_uploaded("photo")

Routing usage::

    from ferry import load_routes
    from ferry.routing.table import ROUTES

    router = load_routes(ROUTES)
    match = router.match("/admin/blog/article/edit/id-5")
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "FerryError",
    "NotFound",
    "PathError",
    "RenameError",
    "RouteDescriptor",
    "RouteLoadError",
    "RouteMatch",
    "Router",
    "StaticPathResolver",
    "UNSET",
    "Upload",
    "UploadConfig",
    "UploadFile",
    "UploadOptions",
    "load_routes",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import ferry`` fast while providing a clean top-level API.
    """
    if name == "Upload":
        from ferry.transfer.upload import Upload

        return Upload

    if name in ("UNSET", "UploadConfig", "UploadOptions"):
        from ferry import config as _config

        return getattr(_config, name)

    if name == "StaticPathResolver":
        from ferry.resolver import StaticPathResolver

        return StaticPathResolver

    if name == "UploadFile":
        from ferry.http.forms import UploadFile

        return UploadFile

    if name in ("RouteDescriptor", "RouteMatch"):
        from ferry.routing import route as _route

        return getattr(_route, name)

    if name in ("Router", "load_routes"):
        from ferry.routing import router as _router

        return getattr(_router, name)

    if name in (
        "ConfigurationError",
        "FerryError",
        "NotFound",
        "PathError",
        "RenameError",
        "RouteLoadError",
    ):
        from ferry import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
