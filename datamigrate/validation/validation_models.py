"""
Validation Data Models and Structures

This module defines the data structures used by the validation engine for
representing rules and the field-level error entries accumulated in a job's
error log.

Key Data Structures:
- ValidationType: Which validation stage produced an entry
- ValidationRule: One declarative rule from an injected rule set
- FieldError: A single error entry, tagged with the row it came from
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union
from enum import Enum


class ValidationType(Enum):
    """Stages that can produce error entries."""
    SANITIZE = "sanitize"
    RULE = "rule"
    CROSS_FIELD = "cross_field"
    CUSTOM = "custom"


@dataclass
class ValidationRule:
    """
    A declarative validation rule.

    Attributes:
        key: Field path the rule checks
        rule: Rule name (required, int, number, min, max, length, regex, in, email, date, compare)
        option: Rule parameter (bound, pattern, choices, {op, other} for compare)
        message: Optional message overriding the generated one
    """
    key: str
    rule: str
    option: Any = None
    message: Optional[str] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("validation rule key cannot be empty")
        if not self.rule:
            raise ValueError("validation rule name cannot be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationRule":
        return cls(key=data.get("key"), rule=data.get("rule"),
                   option=data.get("option"), message=data.get("message"))


RuleLike = Union[ValidationRule, Dict[str, Any], Callable[[Dict[str, Any]], Any]]


@dataclass
class FieldError:
    """
    Represents a single validation issue on one field of one row.

    Attributes:
        key: Field the issue concerns (None for row-level messages)
        message: Human readable description
        rule: Name of the rule or sanitizer that failed
        value: Offending value
        error_type: Stage that produced the entry
        row: 1-based index of the row in the import, set when logged
        additional_context: Extra values supplied by custom hooks
    """
    key: Optional[str]
    message: str
    rule: Optional[str] = None
    value: Any = None
    error_type: ValidationType = ValidationType.RULE
    row: Optional[int] = None
    additional_context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        location = ""
        if self.row is not None:
            location = f" row {self.row}"
        if self.key:
            location += f" [{self.key}]"
        return f"{self.error_type.value}{location}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.additional_context)
        result.update({
            "key": self.key,
            "message": self.message,
            "rule": self.rule,
            "value": self.value if self.value is None or isinstance(self.value, (str, int, float, bool)) else str(self.value),
            "type": self.error_type.value,
            "row": self.row,
        })
        return result

    @classmethod
    def from_message(cls, message: Any) -> "FieldError":
        """Normalize a message returned by a custom hook (string, dict or FieldError)."""
        if isinstance(message, FieldError):
            return message
        if isinstance(message, dict):
            context = {k: v for k, v in message.items()
                       if k not in ("key", "message", "rule", "value", "row")}
            return cls(
                key=message.get("key"),
                message=str(message.get("message", "invalid")),
                rule=message.get("rule"),
                value=message.get("value"),
                error_type=ValidationType.CUSTOM,
                additional_context=context,
            )
        return cls(key=None, message=str(message), error_type=ValidationType.CUSTOM)
