"""Tests for the hook registry and HookDispatcher."""

import pytest

from datamigrate.exceptions import ConfigurationError, HookError, SourceReadError
from datamigrate.hooks import (HookDispatcher, MigrationHooks, lookup_hooks, register_hooks,
                               unregister_hooks)
from datamigrate.validation import FieldError, ValidationType


class RecordingHooks(MigrationHooks):

    def __init__(self):
        self.calls = []

    def before(self, rows):
        self.calls.append("before")
        return [dict(r, tagged=True) for r in rows]

    def parse(self, row):
        row["parsed"] = True

    def valid(self, row):
        return "row rejected" if row.get("bad") else None


class FailingHooks(MigrationHooks):

    def init(self, collection):
        raise RuntimeError("boom")

    def end(self, summary):
        raise SourceReadError("already a datamigrate error")


class TestRegistry:

    def teardown_method(self):
        unregister_hooks("recording")

    def test_register_directly(self):
        register_hooks("recording", RecordingHooks)
        assert isinstance(lookup_hooks("recording"), RecordingHooks)

    def test_register_as_decorator(self):
        @register_hooks("recording")
        class Decorated(MigrationHooks):
            pass

        assert isinstance(lookup_hooks("recording"), Decorated)

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            lookup_hooks("never-registered")

    def test_import_path(self):
        hooks = lookup_hooks("datamigrate.hooks:MigrationHooks")
        assert type(hooks) is MigrationHooks
        unregister_hooks("datamigrate.hooks:MigrationHooks")

    def test_bad_import_path(self):
        with pytest.raises(ConfigurationError):
            lookup_hooks("datamigrate.hooks:Nothing")


class TestDispatcher:

    def test_no_hooks_is_a_no_op(self):
        dispatcher = HookDispatcher.resolve(None)
        rows = [{"a": 1}]
        assert not dispatcher.enabled
        assert dispatcher.before(rows) is rows
        assert dispatcher.after(rows) is rows
        assert dispatcher.dump(rows) is rows
        assert dispatcher.valid({}) == []
        dispatcher.init(None)
        dispatcher.parse({})
        dispatcher.end(None)

    def test_resolve_accepts_class_instance_and_name(self):
        register_hooks("recording", RecordingHooks)
        try:
            assert isinstance(HookDispatcher.resolve("recording").hooks, RecordingHooks)
        finally:
            unregister_hooks("recording")
        assert isinstance(HookDispatcher.resolve(RecordingHooks).hooks, RecordingHooks)
        instance = RecordingHooks()
        assert HookDispatcher.resolve(instance).hooks is instance

    def test_replacement_rows(self):
        dispatcher = HookDispatcher(RecordingHooks())
        assert dispatcher.before([{"a": 1}]) == [{"a": 1, "tagged": True}]

    def test_none_keeps_rows(self):
        dispatcher = HookDispatcher(RecordingHooks())
        rows = [{"a": 1}]
        assert dispatcher.after(rows) is rows

    def test_parse_mutates_in_place(self):
        row = {}
        HookDispatcher(RecordingHooks()).parse(row)
        assert row == {"parsed": True}

    def test_valid_normalizes_messages(self):
        errors = HookDispatcher(RecordingHooks()).valid({"bad": True})
        assert len(errors) == 1
        assert isinstance(errors[0], FieldError)
        assert errors[0].message == "row rejected"
        assert errors[0].error_type == ValidationType.CUSTOM

    def test_failures_wrapped_in_hook_error(self):
        with pytest.raises(HookError) as exc_info:
            HookDispatcher(FailingHooks()).init(None)
        assert exc_info.value.hook_name == "init"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_datamigrate_errors_pass_through(self):
        with pytest.raises(SourceReadError):
            HookDispatcher(FailingHooks()).end(None)
