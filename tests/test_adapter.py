"""Tests for ferry.transfer.adapter — HttpAdapter file list, validation, receive."""

from collections.abc import Callable
from pathlib import Path

import pytest

from ferry.errors import ConfigurationError, PathError, RenameError
from ferry.http.forms import FileFields, UploadFile
from ferry.transfer.adapter import ADAPTERS, HttpAdapter, create_adapter
from ferry.transfer.filters import Rename

MakeFile = Callable[..., UploadFile]


@pytest.fixture
def files(make_file: MakeFile) -> dict[str, list[UploadFile]]:
    return {
        "photos": [make_file("a.jpg", b"A"), make_file("b.jpg", b"B")],
        "avatar": [make_file("me.png", b"ME")],
    }


class TestFileList:
    def test_multi_file_group_and_members(self, files: dict[str, list[UploadFile]]) -> None:
        listing = HttpAdapter(files).get_file_list()

        assert list(listing) == ["photos", "photos_0", "photos_1", "avatar"]
        assert listing["photos"] == {"multifiles": ["photos_0", "photos_1"]}
        assert listing["photos_0"]["name"] == "a.jpg"
        assert listing["avatar"]["name"] == "me.png"
        assert listing["avatar"]["received"] is False

    def test_single_upload_file_value(self, make_file: MakeFile) -> None:
        listing = HttpAdapter({"doc": make_file("a.txt")}).get_file_list()
        assert "multifiles" not in listing["doc"]

    def test_bracket_field_with_one_file_is_group(self, make_file: MakeFile) -> None:
        files = FileFields({"photos": [make_file("a.jpg")]}, multiple={"photos"})
        listing = HttpAdapter(files).get_file_list()

        assert listing["photos"] == {"multifiles": ["photos_0"]}
        assert listing["photos_0"]["name"] == "a.jpg"

    def test_bracket_key_in_plain_mapping(self, make_file: MakeFile) -> None:
        listing = HttpAdapter({"photos[]": [make_file("a.jpg")]}).get_file_list()
        assert listing["photos"] == {"multifiles": ["photos_0"]}

    @pytest.mark.parametrize("order", ["group_first", "field_first"])
    def test_member_name_collision(self, make_file: MakeFile, order: str) -> None:
        group = ("photos", [make_file("a.jpg"), make_file("b.jpg")])
        field = ("photos_0", [make_file("real.txt")])
        entries = [group, field] if order == "group_first" else [field, group]

        with pytest.raises(ConfigurationError, match="photos_0"):
            HttpAdapter(dict(entries))


class TestFilters:
    def test_add_replaces_same_name(self) -> None:
        adapter = HttpAdapter()
        adapter.add_filter(Rename("one"))
        second = Rename("two")
        adapter.add_filter(second)
        assert adapter.get_filter("rename") is second

    def test_remove_missing_is_ignored(self) -> None:
        HttpAdapter().remove_filter("rename")


class TestValidators:
    def test_unknown_validator(self) -> None:
        with pytest.raises(ConfigurationError):
            HttpAdapter().add_validator("virus", False, None)

    def test_same_name_replaces(self, make_file: MakeFile) -> None:
        adapter = HttpAdapter({"doc": [make_file("a.txt")]})
        adapter.add_validator("extension", False, "jpg")
        adapter.add_validator("extension", False, "txt")
        assert adapter.is_valid() is True

    def test_messages_by_field(self, files: dict[str, list[UploadFile]]) -> None:
        adapter = HttpAdapter(files)
        adapter.add_validator("extension", False, "jpg")

        assert adapter.is_valid() is False
        assert adapter.get_messages() == {"avatar": ["File 'me.png' has a false extension"]}

    def test_custom_validator(self, make_file: MakeFile) -> None:
        adapter = HttpAdapter({"doc": [make_file("a.txt", b"")]})
        adapter.add_validator_callable("notempty", lambda f: None if f.size else "Empty file")

        assert adapter.has_validator("notempty")
        assert adapter.is_valid() is False
        adapter.remove_validator("notempty")
        assert adapter.is_valid() is True

    def test_no_files(self) -> None:
        adapter = HttpAdapter({})
        assert adapter.is_valid() is False
        assert adapter.get_messages() == {"": ["No file was uploaded"]}


class TestReceive:
    def test_requires_destination(self, files: dict[str, list[UploadFile]]) -> None:
        with pytest.raises(PathError, match="destination"):
            HttpAdapter(files).receive()

    def test_stores_files(self, files: dict[str, list[UploadFile]], tmp_path: Path) -> None:
        adapter = HttpAdapter(files)
        adapter.set_destination(tmp_path / "out")

        assert adapter.receive() is True
        assert adapter.is_received() is True
        assert (tmp_path / "out" / "me.png").read_bytes() == b"ME"
        assert adapter.get_file_name("avatar") == "me.png"
        assert adapter.get_file_name("avatar", path=True) == str(tmp_path / "out" / "me.png")
        assert adapter.get_file_name("photos") == {"photos_0": "a.jpg", "photos_1": "b.jpg"}
        assert adapter.get_file_list()["avatar"]["received"] is True

    def test_invalid_stores_nothing(self, files: dict[str, list[UploadFile]], tmp_path: Path) -> None:
        adapter = HttpAdapter(files)
        adapter.set_destination(tmp_path)
        adapter.add_validator("size", False, 1)

        assert adapter.receive() is False
        assert adapter.is_received() is False
        assert list(tmp_path.iterdir()) == []

    def test_applies_rename(self, make_file: MakeFile, tmp_path: Path) -> None:
        adapter = HttpAdapter({"avatar": [make_file("me.png")]})
        adapter.set_destination(tmp_path)
        adapter.add_filter(Rename("user42"))

        adapter.receive()
        assert adapter.get_file_name("avatar") == "user42.png"

    def test_rename_failure_propagates(self, make_file: MakeFile, tmp_path: Path) -> None:
        adapter = HttpAdapter({"avatar": [make_file("me.png")]})
        adapter.set_destination(tmp_path)
        adapter.add_filter(Rename(lambda name: 1 / 0))  # type: ignore[arg-type,return-value]

        with pytest.raises(RenameError):
            adapter.receive()

    def test_overwrite(self, make_file: MakeFile, tmp_path: Path) -> None:
        (tmp_path / "me.png").write_bytes(b"old")
        adapter = HttpAdapter({"avatar": [make_file("me.png", b"new")]})
        adapter.set_destination(tmp_path)

        adapter.receive()
        assert (tmp_path / "me.png").read_bytes() == b"new"

    def test_no_overwrite_suffixes(self, make_file: MakeFile, tmp_path: Path) -> None:
        (tmp_path / "me.png").write_bytes(b"old")
        (tmp_path / "me-1.png").write_bytes(b"older")
        adapter = HttpAdapter({"avatar": [make_file("me.png", b"new")]}, overwrite=False)
        adapter.set_destination(tmp_path)

        adapter.receive()
        assert adapter.get_file_name("avatar") == "me-2.png"
        assert (tmp_path / "me.png").read_bytes() == b"old"

    def test_write_failure(
        self, make_file: MakeFile, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def refuse(self: UploadFile, path: Path) -> None:
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(UploadFile, "save", refuse)
        adapter = HttpAdapter({"avatar": [make_file("me.png")]})
        adapter.set_destination(tmp_path)

        with pytest.raises(PathError, match="No space left"):
            adapter.receive()

    @pytest.mark.parametrize(
        "filename", ["../../escaped.txt", "/etc/escaped.txt", "..\\..\\escaped.txt"]
    )
    def test_source_name_cannot_escape(
        self, make_file: MakeFile, tmp_path: Path, filename: str
    ) -> None:
        destination = tmp_path / "a" / "b"
        adapter = HttpAdapter({"doc": [make_file(filename)]})
        adapter.set_destination(destination)

        assert adapter.receive() is True
        assert adapter.get_file_name("doc", path=True) == str(destination / "escaped.txt")
        assert [p.name for p in destination.iterdir()] == ["escaped.txt"]
        assert not (tmp_path / "escaped.txt").exists()

    @pytest.mark.parametrize("filename", ["..", ".", "", "dir/.."])
    def test_unusable_source_name(self, make_file: MakeFile, tmp_path: Path, filename: str) -> None:
        adapter = HttpAdapter({"doc": [make_file(filename)]})
        adapter.set_destination(tmp_path / "out")

        with pytest.raises(PathError, match="no usable filename"):
            adapter.receive()
        assert list((tmp_path / "out").iterdir()) == []

    def test_same_name_in_one_request(self, make_file: MakeFile, tmp_path: Path) -> None:
        adapter = HttpAdapter({"a": [make_file("x.txt", b"1")], "b": [make_file("x.txt", b"2")]})
        adapter.set_destination(tmp_path)

        adapter.receive()
        assert adapter.get_file_name("a") == "x.txt"
        assert adapter.get_file_name("b") == "x-1.txt"
        assert (tmp_path / "x-1.txt").read_bytes() == b"2"

    def test_rename_failure_writes_nothing(self, make_file: MakeFile, tmp_path: Path) -> None:
        calls: list[str] = []

        def second_fails(name: str) -> str:
            calls.append(name)
            if len(calls) == 2:
                raise RuntimeError("bug")
            return f"x_{len(calls)}.txt"

        adapter = HttpAdapter({"docs": [make_file("a.txt"), make_file("b.txt")]})
        adapter.set_destination(tmp_path)
        adapter.add_filter(Rename(second_fails))

        with pytest.raises(RenameError):
            adapter.receive()
        assert list(tmp_path.iterdir()) == []
        assert adapter.is_received() is False

    def test_write_failure_removes_earlier_files(self, make_file: MakeFile, tmp_path: Path) -> None:
        (tmp_path / "b.txt").mkdir()
        adapter = HttpAdapter({"docs": [make_file("a.txt"), make_file("b.txt")]})
        adapter.set_destination(tmp_path)

        with pytest.raises(PathError):
            adapter.receive()
        assert [p.name for p in tmp_path.iterdir()] == ["b.txt"]
        assert adapter.get_file_name("docs") == {}
        assert adapter.is_received() is False

    def test_file_name_before_receive(self, files: dict[str, list[UploadFile]]) -> None:
        adapter = HttpAdapter(files)
        assert adapter.get_file_name("avatar") is None
        assert adapter.get_file_name("photos") == {}

    def test_unknown_file_name(self) -> None:
        with pytest.raises(ConfigurationError):
            HttpAdapter().get_file_name("nope")


class TestRegistry:
    def test_http_registered(self) -> None:
        assert ADAPTERS["http"] is HttpAdapter

    def test_create_case_insensitive(self) -> None:
        adapter = create_adapter("Http", {}, overwrite=False)
        assert isinstance(adapter, HttpAdapter)
        assert adapter.overwrite is False

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError, match="Ftp"):
            create_adapter("Ftp", {})
