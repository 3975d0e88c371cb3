"""Tests for option, mapping and result models."""

import pytest

from datamigrate.exceptions import ErrorThresholdExceeded
from datamigrate.models import (DocumentSource, ExportOptions, ExportResult, ImportOptions, JobContext,
                                LinkRule, Mapping, SourceType)
from datamigrate.validation import FieldError


class TestMapping:

    def test_field_and_header_fallbacks(self):
        mapping = Mapping(key="profile.name")
        assert mapping.field == "profile.name"
        assert mapping.header == "profile.name"

        mapping = Mapping(key="profile.name", variable="name", title="Name")
        assert mapping.field == "name"
        assert mapping.header == "Name"

    def test_empty_title_is_kept(self):
        assert Mapping(key="a", title="").header == ""

    def test_col_is_one_based(self):
        assert Mapping(key="a", col="2").col == 2
        with pytest.raises(ValueError):
            Mapping(key="a", col=0)

    def test_link_from_dict(self):
        mapping = Mapping.from_dict({"key": "dept", "link": {"repository": "departments"}, "other": 1})
        assert mapping.link == LinkRule(repository="departments")
        assert mapping.link.foreign == "_id"

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            Mapping(key="")


class TestImportOptions:

    @pytest.mark.parametrize("raw,expected", [
        ("excel", SourceType.SPREADSHEET),
        ("csv", SourceType.DELIMITED),
        ("mongodb", SourceType.DOCUMENT),
        ("document", SourceType.DOCUMENT),
        (SourceType.SPREADSHEET, SourceType.SPREADSHEET),
    ])
    def test_source_type_aliases(self, raw, expected):
        assert ImportOptions(schema="s", source_type=raw).source_type == expected

    def test_unknown_source_type(self):
        with pytest.raises(ValueError):
            ImportOptions(schema="s", source_type="ftp")

    def test_source_from_dict(self):
        options = ImportOptions(schema="s", source_type="document",
                                source={"domain": "legacy", "table": "users", "keep_id": True})
        assert options.source == DocumentSource(domain="legacy", table="users", keep_id=True)

    def test_allow_update_requires_unique_key(self):
        with pytest.raises(ValueError):
            ImportOptions(schema="s", allow_update=True)

    def test_negative_allow_error_max(self):
        with pytest.raises(ValueError):
            ImportOptions(schema="s", allow_error_max=-1)

    def test_export_options_validation(self):
        with pytest.raises(ValueError):
            ExportOptions(schema="s", skip=-1)
        with pytest.raises(ValueError):
            ExportOptions(schema="")


class TestJobContext:

    def test_add_errors_tags_rows(self):
        context = JobContext()
        context.add_errors([FieldError(key="a", message="m")], row=3)
        assert context.errors[0].row == 3

    def test_summary_is_frozen_snapshot(self):
        context = JobContext(total=3, success=2)
        context.inserted.append("id1")
        context.error = ErrorThresholdExceeded(3, 2, row=3)
        result = context.summary({"stage_timings": {}})

        context.inserted.append("id2")
        assert result.inserted == ("id1",)
        assert result.failed == 1
        with pytest.raises(AttributeError):
            result.total = 10

        data = result.to_dict()
        assert data["error"] == "Validation errors (3) exceeded allow_error_max=2"
        assert data["inserted"] == ["id1"]

    def test_export_result_to_dict(self):
        assert ExportResult(total=2, file_id="f").to_dict() == {"total": 2, "file_id": "f"}
