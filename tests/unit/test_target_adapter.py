"""
Tests for TargetAdapter write paths.

These tests verify that the adapter:
1. Inserts through the repository by default
2. Upserts on {valid: 1, unique_key...} and records inserted/updated ids
3. Writes raw copies straight to the collection
"""

from unittest.mock import Mock

import pytest

from datamigrate.database.repository import CollectionRepository
from datamigrate.database.target_adapter import TargetAdapter
from datamigrate.exceptions import ConfigurationError
from datamigrate.models import JobContext


@pytest.fixture
def repository(database):
    return CollectionRepository(database.collection("users"), uid="tester")


class TestPlainInsert:

    def test_insert_goes_through_repository(self, repository):
        adapter = TargetAdapter(repository)
        context = JobContext()
        adapter.add({"email": "a@b.io"}, context)
        adapter.add({"email": "a@b.io"}, context)
        assert repository.list().total == 2
        assert context.inserted == [] and context.updated == []


class TestUpsert:

    def test_match_condition(self, repository):
        adapter = TargetAdapter(repository, unique_key=["email", "org.code"], allow_update=True)
        condition = adapter.match_condition({"email": "a@b.io", "org": {"code": "X"}})
        assert condition == {"valid": 1, "email": "a@b.io", "org.code": "X"}

    def test_second_add_updates(self, repository):
        adapter = TargetAdapter(repository, unique_key=["email"], allow_update=True)
        context = JobContext()
        first = adapter.add({"email": "a@b.io", "name": "Ann"}, context)
        second = adapter.add({"email": "a@b.io", "name": "Anna"}, context)

        assert context.inserted == [first]
        assert context.updated == [first]
        assert second == first
        result = repository.list()
        assert result.total == 1
        assert result.items[0]["name"] == "Anna"

    def test_invalid_records_do_not_match(self, repository, database):
        database.collection("users").add({"email": "a@b.io", "valid": 0})
        adapter = TargetAdapter(repository, unique_key=["email"], allow_update=True)
        context = JobContext()
        adapter.add({"email": "a@b.io"}, context)
        assert len(context.inserted) == 1
        assert context.updated == []

    def test_requires_unique_key(self, repository):
        with pytest.raises(ConfigurationError):
            TargetAdapter(repository, allow_update=True)


class TestRawCopy:

    def test_raw_copy_bypasses_repository(self, database):
        repository = Mock()
        collection = database.collection("users")
        adapter = TargetAdapter(repository, raw_collection=collection, raw_copy=True)
        adapter.add({"_id": "src-1", "name": "Ann"}, JobContext())
        repository.add.assert_not_called()
        stored = collection.find_one({"_id": "src-1"})
        assert stored == {"_id": "src-1", "name": "Ann"}

    def test_raw_copy_requires_collection(self):
        with pytest.raises(ConfigurationError):
            TargetAdapter(raw_copy=True)

    def test_repository_required_otherwise(self):
        with pytest.raises(ConfigurationError):
            TargetAdapter()
