"""
Validation engine for the import pipeline.

- RecordValidator: sanitize checks plus an injected rule set, run per row
- Validation models: FieldError entries and ValidationRule definitions
"""

from .validation_models import FieldError, ValidationRule, ValidationType
from .record_validator import RecordValidator

__all__ = [
    'FieldError',
    'ValidationRule',
    'ValidationType',
    'RecordValidator',
]
