"""Tests for LocalFileStorage."""

import io

import pytest

from datamigrate.exceptions import StorageError
from datamigrate.models import FileRecord
from datamigrate.storage import LocalFileStorage


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(tmp_path / "files")


def test_add_copies_stream_and_writes_metadata(storage):
    file_id = storage.add(FileRecord(stream=io.BytesIO(b"hello"), filename="Report.XLSX",
                                     content_type="application/test", metadata={"schema": "people"}))

    path = storage.get_path(file_id)
    assert path.read_bytes() == b"hello"
    assert path.name == f"{file_id}.xlsx"

    metadata = storage.get_metadata(file_id)
    assert metadata["filename"] == "Report.XLSX"
    assert metadata["content_type"] == "application/test"
    assert metadata["length"] == 5
    assert metadata["metadata"] == {"schema": "people"}


def test_ids_are_unique(storage):
    first = storage.add(FileRecord(stream=io.BytesIO(b"a"), filename="a.xlsx"))
    second = storage.add(FileRecord(stream=io.BytesIO(b"b"), filename="a.xlsx"))
    assert first != second


def test_json_file_does_not_clash_with_metadata(storage):
    file_id = storage.add(FileRecord(stream=io.BytesIO(b"[]"), filename="data.json"))
    assert storage.get_path(file_id).read_bytes() == b"[]"
    assert storage.get_metadata(file_id)["filename"] == "data.json"


def test_unknown_id(storage):
    with pytest.raises(StorageError):
        storage.get_path("nope")
    with pytest.raises(StorageError):
        storage.get_metadata("nope")


def test_base_dir_created(tmp_path):
    LocalFileStorage(tmp_path / "a" / "b")
    assert (tmp_path / "a" / "b").is_dir()
