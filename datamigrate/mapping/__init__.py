"""Mapping engine: sanitizers and per-record mapping rules."""

from .field_mapper import FieldMapper
from .sanitizers import sanitize, format_value, register_sanitizer, get_sanitizer, SANITIZERS

__all__ = ['FieldMapper', 'sanitize', 'format_value', 'register_sanitizer', 'get_sanitizer', 'SANITIZERS']
