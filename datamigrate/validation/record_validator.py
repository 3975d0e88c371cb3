"""
Record validation for the import pipeline.

The RecordValidator runs after the mapping stage on every row and produces
zero or more FieldError entries:

1. Sanitize checks: a mapped field whose raw value (kept in `_original`)
   was present but whose sanitized value is None failed its sanitizer.
2. Rule set: declarative ValidationRule entries and plain callables
   injected by the job.
"""

import logging
import operator
import re
from typing import Any, Callable, Dict, List, Optional

from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import ConfigurationError, SanitizeError
from ..mapping.sanitizers import to_datetime, to_float, to_integer
from ..models import Mapping
from ..utils import FieldPath, StringUtils
from .validation_models import FieldError, RuleLike, ValidationRule, ValidationType

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

_COMPARE_OPERATORS = {
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}


class RecordValidator:
    """
    Validates records against sanitize results and an injected rule set.

    Args:
        rules: Rule set; each entry is a ValidationRule, a rule dict or a callable
        mappings: Mapping list whose sanitize rules are checked
    """

    def __init__(self, rules: Optional[List[RuleLike]] = None, mappings: Optional[List[Mapping]] = None):
        self.logger = logging.getLogger(__name__)
        self.mappings = [m for m in (mappings or []) if m.sanitize]
        self.rules: List[ValidationRule] = []
        self.callables: List[Callable[[Dict[str, Any]], Any]] = []

        for rule in rules or []:
            if callable(rule):
                self.callables.append(rule)
            elif isinstance(rule, ValidationRule):
                self.rules.append(rule)
            elif isinstance(rule, dict):
                self.rules.append(ValidationRule.from_dict(rule))
            else:
                raise ConfigurationError(f"Unsupported validation rule: {rule!r}")

        for rule in self.rules:
            if rule.rule not in self._CHECKS:
                raise ConfigurationError(f"Unknown validation rule '{rule.rule}' for {rule.key}")

    def validate(self, row: Dict[str, Any]) -> List[FieldError]:
        """Return every error entry for the row, in rule order."""
        errors = self._check_sanitized(row)

        for rule in self.rules:
            error = self._CHECKS[rule.rule](self, row, rule)
            if error is not None:
                errors.append(error)

        for check in self.callables:
            result = check(row)
            if not result:
                continue
            messages = result if isinstance(result, list) else [result]
            for message in messages:
                entry = FieldError.from_message(message)
                entry.error_type = ValidationType.CROSS_FIELD
                errors.append(entry)

        return errors

    def _check_sanitized(self, row: Dict[str, Any]) -> List[FieldError]:
        original = row.get(ProcessingDefaults.ORIGINAL_FIELD) or {}
        errors = []
        for mapping in self.mappings:
            if mapping.field not in original:
                continue
            raw = original[mapping.field]
            if StringUtils.safe_string_check(raw) and FieldPath(mapping.field).get(row) is None:
                errors.append(FieldError(
                    key=mapping.field,
                    message=f"'{raw}' is not a valid {mapping.sanitize}",
                    rule=mapping.sanitize,
                    value=raw,
                    error_type=ValidationType.SANITIZE,
                ))
        return errors

    # -- individual rules -------------------------------------------------

    @staticmethod
    def _error(rule: ValidationRule, value: Any, default_message: str,
               error_type: ValidationType = ValidationType.RULE) -> FieldError:
        return FieldError(key=rule.key, message=rule.message or default_message,
                          rule=rule.rule, value=value, error_type=error_type)

    def _required(self, row, rule):
        value = FieldPath(rule.key).get(row)
        if not StringUtils.safe_string_check(value):
            return self._error(rule, value, f"{rule.key} is required")
        return None

    def _converts(self, row, rule, converter, label):
        value = FieldPath(rule.key).get(row)
        if not StringUtils.safe_string_check(value):
            return None
        try:
            converter(value)
        except SanitizeError:
            return self._error(rule, value, f"{rule.key} must be {label}")
        return None

    def _int(self, row, rule):
        return self._converts(row, rule, to_integer, "an integer")

    def _number(self, row, rule):
        return self._converts(row, rule, to_float, "a number")

    def _date(self, row, rule):
        return self._converts(row, rule, to_datetime, "a date")

    def _bound(self, row, rule, compare, label):
        value = FieldPath(rule.key).get(row)
        if not StringUtils.safe_string_check(value):
            return None
        try:
            number = to_float(value)
        except SanitizeError:
            return self._error(rule, value, f"{rule.key} must be a number")
        if not compare(number, float(rule.option)):
            return self._error(rule, value, f"{rule.key} must be {label} {rule.option}")
        return None

    def _min(self, row, rule):
        return self._bound(row, rule, operator.ge, "at least")

    def _max(self, row, rule):
        return self._bound(row, rule, operator.le, "at most")

    def _length(self, row, rule):
        value = FieldPath(rule.key).get(row)
        if value is None:
            return None
        option = rule.option if isinstance(rule.option, dict) else {'max': rule.option}
        length = len(str(value))
        low, high = option.get('min'), option.get('max')
        if (low is not None and length < int(low)) or (high is not None and length > int(high)):
            return self._error(rule, value, f"{rule.key} length must be between {low or 0} and {high or 'unlimited'}")
        return None

    def _regex(self, row, rule):
        value = FieldPath(rule.key).get(row)
        if not StringUtils.safe_string_check(value):
            return None
        if not re.fullmatch(rule.option, str(value)):
            return self._error(rule, value, f"{rule.key} has an invalid format")
        return None

    def _in(self, row, rule):
        value = FieldPath(rule.key).get(row)
        if value is None:
            return None
        if value not in (rule.option or []):
            return self._error(rule, value, f"{rule.key} must be one of {rule.option}")
        return None

    def _email(self, row, rule):
        value = FieldPath(rule.key).get(row)
        if not StringUtils.safe_string_check(value):
            return None
        if not _EMAIL_PATTERN.match(str(value)):
            return self._error(rule, value, f"{rule.key} must be an email address")
        return None

    def _compare(self, row, rule):
        option = rule.option or {}
        op = _COMPARE_OPERATORS.get(option.get('op'))
        if op is None or not option.get('other'):
            raise ConfigurationError(f"compare rule for {rule.key} needs option {{op, other}}")
        value = FieldPath(rule.key).get(row)
        other = FieldPath(option['other']).get(row)
        if value is None or other is None:
            return None
        try:
            passed = op(value, other)
        except TypeError:
            passed = False
        if not passed:
            return self._error(rule, value, f"{rule.key} must be {option['op']} {option['other']}",
                               ValidationType.CROSS_FIELD)
        return None

    _CHECKS = {
        'required': _required,
        'int': _int,
        'number': _number,
        'date': _date,
        'min': _min,
        'max': _max,
        'length': _length,
        'regex': _regex,
        'in': _in,
        'email': _email,
        'compare': _compare,
    }
