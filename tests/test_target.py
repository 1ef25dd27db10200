import json

import pytest

from notesearch.core.target import (
    BaseTargetResolver,
    FileTargetStore,
    MemoryTargetStore,
    TargetStore,
    is_local_target,
    normalize_target,
)

DEFAULT = "http://127.0.0.1:8080"


class BrokenStore(TargetStore):
    def read(self):
        raise OSError("storage unavailable")

    def write(self, value):
        raise OSError("disk full")


@pytest.mark.parametrize("value, expected", [
    ("http://notes:9000", "http://notes:9000"),
    ("http://notes:9000/", "http://notes:9000"),
    ("http://notes:9000///", "http://notes:9000"),
    ("  http://notes:9000/api/  ", "http://notes:9000/api"),
    ("", ""),
    ("   ", ""),
    ("///", ""),
    (None, ""),
])
def test_normalize_target(value, expected):
    assert normalize_target(value) == expected


def test_override_wins():
    resolver = BaseTargetResolver(MemoryTargetStore("http://stored:1"), default=DEFAULT)
    assert resolver.resolve(" http://override:2/ ") == "http://override:2"


@pytest.mark.parametrize("override", [None, "", "   "])
def test_blank_override_falls_back_to_stored(override):
    resolver = BaseTargetResolver(MemoryTargetStore("http://stored:1/"), default=DEFAULT)
    assert resolver.resolve(override) == "http://stored:1"


@pytest.mark.parametrize("stored", [None, "", "  "])
def test_missing_or_blank_stored_value_uses_default(stored):
    resolver = BaseTargetResolver(MemoryTargetStore(stored), default=DEFAULT + "/")
    assert resolver.resolve() == DEFAULT


def test_read_failure_counts_as_nothing_stored():
    resolver = BaseTargetResolver(BrokenStore(), default=DEFAULT)
    assert resolver.resolve() == DEFAULT


def test_write_failure_is_swallowed():
    resolver = BaseTargetResolver(BrokenStore(), default=DEFAULT)
    resolver.store("http://elsewhere:1")  # must not raise
    assert resolver.resolve() == DEFAULT


def test_store_trims_and_discards_blank():
    store = MemoryTargetStore("http://old:1")
    resolver = BaseTargetResolver(store, default=DEFAULT)

    resolver.store("   ")
    assert store.value == "http://old:1"

    resolver.store("  http://new:2  ")
    assert store.value == "http://new:2"
    assert resolver.resolve() == "http://new:2"


def test_file_store_round_trip(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    resolver = BaseTargetResolver(FileTargetStore(path, key="notesearch.baseUrl"), default=DEFAULT)
    assert resolver.resolve() == DEFAULT

    resolver.store("http://notes:9000")
    assert json.loads(path.read_text()) == {"notesearch.baseUrl": "http://notes:9000"}
    assert BaseTargetResolver(FileTargetStore(path, key="notesearch.baseUrl"), default=DEFAULT).resolve() == "http://notes:9000"


def test_file_store_keeps_other_keys(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"theme": "dark"}))
    FileTargetStore(path, key="notesearch.baseUrl").write("http://notes:9000")
    assert json.loads(path.read_text()) == {"theme": "dark", "notesearch.baseUrl": "http://notes:9000"}


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"notesearch.baseUrl": 42}'])
def test_unreadable_file_resolves_default(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content)
    resolver = BaseTargetResolver(FileTargetStore(path, key="notesearch.baseUrl"), default=DEFAULT)
    assert resolver.resolve() == DEFAULT


def test_store_into_unwritable_location_is_swallowed(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    resolver = BaseTargetResolver(FileTargetStore(blocker / "settings.json"), default=DEFAULT)
    resolver.store("http://notes:9000")
    assert resolver.resolve() == DEFAULT


@pytest.mark.parametrize("url, expected", [
    ("http://127.0.0.1:8080", True),
    ("http://localhost:8080/api", True),
    ("http://[::1]:8080", True),
    ("https://notes.example.com", False),
    ("not a url", False),
    ("http://[broken", False),
])
def test_is_local_target(url, expected):
    assert is_local_target(url) is expected
