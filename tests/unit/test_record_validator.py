"""
Tests for the RecordValidator.

These tests verify that the validator:
1. Reports sanitize failures recorded by the mapper
2. Applies each declarative rule of the rule set
3. Runs callable rules and tags their entries as cross-field
4. Rejects unknown rules when the job is configured
"""

import pytest

from datamigrate.exceptions import ConfigurationError
from datamigrate.models import Mapping
from datamigrate.validation import FieldError, RecordValidator, ValidationRule, ValidationType


def keys(errors):
    return [e.key for e in errors]


class TestSanitizeChecks:

    def test_failed_sanitize_reported(self):
        validator = RecordValidator(mappings=[Mapping(key="age", sanitize="int")])
        errors = validator.validate({"age": None, "_original": {"age": "abc"}})
        assert len(errors) == 1
        assert errors[0].key == "age"
        assert errors[0].rule == "int"
        assert errors[0].value == "abc"
        assert errors[0].error_type == ValidationType.SANITIZE
        assert errors[0].message == "'abc' is not a valid int"

    def test_blank_raw_value_is_not_an_error(self):
        validator = RecordValidator(mappings=[Mapping(key="age", sanitize="int")])
        assert validator.validate({"age": None, "_original": {"age": ""}}) == []

    def test_successful_sanitize(self):
        validator = RecordValidator(mappings=[Mapping(key="age", sanitize="int")])
        assert validator.validate({"age": 4, "_original": {"age": "4"}}) == []


class TestRules:

    def test_required(self):
        validator = RecordValidator([{"key": "name", "rule": "required"}])
        assert keys(validator.validate({"name": " "})) == ["name"]
        assert validator.validate({"name": "Ann"}) == []

    def test_custom_message(self):
        validator = RecordValidator([ValidationRule("name", "required", message="name please")])
        assert validator.validate({})[0].message == "name please"

    def test_int_and_number(self):
        validator = RecordValidator([{"key": "a", "rule": "int"}, {"key": "b", "rule": "number"}])
        assert keys(validator.validate({"a": "x", "b": "1.5"})) == ["a"]
        assert keys(validator.validate({"a": "2", "b": "y"})) == ["b"]

    def test_min_max(self):
        validator = RecordValidator([{"key": "age", "rule": "min", "option": 18},
                                     {"key": "age", "rule": "max", "option": 65}])
        assert len(validator.validate({"age": 17})) == 1
        assert validator.validate({"age": 18}) == []
        assert validator.validate({"age": 65}) == []
        assert len(validator.validate({"age": 66})) == 1

    def test_length(self):
        validator = RecordValidator([{"key": "code", "rule": "length", "option": {"min": 2, "max": 3}}])
        assert len(validator.validate({"code": "a"})) == 1
        assert validator.validate({"code": "abc"}) == []
        assert len(validator.validate({"code": "abcd"})) == 1

    def test_length_plain_option_is_max(self):
        validator = RecordValidator([{"key": "code", "rule": "length", "option": 2}])
        assert len(validator.validate({"code": "abc"})) == 1

    def test_regex_full_match(self):
        validator = RecordValidator([{"key": "zip", "rule": "regex", "option": r"\d{5}"}])
        assert validator.validate({"zip": "12345"}) == []
        assert len(validator.validate({"zip": "123456"})) == 1

    def test_in(self):
        validator = RecordValidator([{"key": "status", "rule": "in", "option": ["open", "closed"]}])
        assert validator.validate({"status": "open"}) == []
        assert len(validator.validate({"status": "pending"})) == 1

    def test_email(self):
        validator = RecordValidator([{"key": "email", "rule": "email"}])
        assert validator.validate({"email": "a@b.io"}) == []
        assert len(validator.validate({"email": "not-an-email"})) == 1

    def test_date(self):
        validator = RecordValidator([{"key": "born", "rule": "date"}])
        assert validator.validate({"born": "2001-02-03"}) == []
        assert len(validator.validate({"born": "yesterday"})) == 1

    def test_compare(self):
        validator = RecordValidator([{"key": "end", "rule": "compare", "option": {"op": ">=", "other": "start"}}])
        assert validator.validate({"start": 1, "end": 2}) == []
        errors = validator.validate({"start": 3, "end": 2})
        assert errors[0].error_type == ValidationType.CROSS_FIELD

    def test_compare_requires_option(self):
        validator = RecordValidator([{"key": "end", "rule": "compare"}])
        with pytest.raises(ConfigurationError):
            validator.validate({"end": 1})

    def test_optional_fields_skip_format_rules(self):
        validator = RecordValidator([{"key": "email", "rule": "email"}, {"key": "age", "rule": "min", "option": 1}])
        assert validator.validate({}) == []

    def test_unknown_rule_rejected(self):
        with pytest.raises(ConfigurationError):
            RecordValidator([{"key": "a", "rule": "mystery"}])

    def test_unsupported_rule_type_rejected(self):
        with pytest.raises(ConfigurationError):
            RecordValidator([42])


class TestCallableRules:

    def test_callable_message_becomes_cross_field_entry(self):
        validator = RecordValidator([lambda row: "too young" if row.get("age", 0) < 18 else None])
        errors = validator.validate({"age": 3})
        assert len(errors) == 1
        assert errors[0].message == "too young"
        assert errors[0].error_type == ValidationType.CROSS_FIELD
        assert validator.validate({"age": 30}) == []

    def test_entries_keep_rule_order(self):
        validator = RecordValidator(
            [{"key": "a", "rule": "required"}, lambda row: [{"key": "b", "message": "bad b"}]],
            mappings=[Mapping(key="c", sanitize="int")],
        )
        errors = validator.validate({"c": None, "_original": {"c": "x"}})
        assert keys(errors) == ["c", "a", "b"]


class TestFieldError:

    def test_from_message_variants(self):
        assert FieldError.from_message("oops").message == "oops"
        entry = FieldError.from_message({"key": "k", "message": "m", "code": 7})
        assert entry.key == "k"
        assert entry.additional_context == {"code": 7}
        same = FieldError(key="x", message="y")
        assert FieldError.from_message(same) is same

    def test_to_dict_and_str(self):
        entry = FieldError(key="age", message="bad", rule="int", value="abc",
                           error_type=ValidationType.SANITIZE, row=2)
        assert entry.to_dict() == {"key": "age", "message": "bad", "rule": "int", "value": "abc",
                                   "type": "sanitize", "row": 2}
        assert str(entry) == "sanitize row 2 [age]: bad"
