"""
Utility functions for common patterns across the datamigrate engine.
"""

import re
import uuid
from typing import Any, Dict, List, Optional


class StringUtils:
    """Utility methods for string validation and processing."""

    # Cached regex patterns for performance
    _regex_cache = {
        'numbers_only': re.compile(r'[^0-9]'),
        'numeric_extract': re.compile(r'-?\d+(?:\.\d+)?'),
        'whitespace': re.compile(r'\s+')
    }

    @staticmethod
    def safe_string_check(value: Any) -> bool:
        """
        Standardized string validation.

        Args:
            value: Value to check

        Returns:
            True if value is a non-empty string after stripping whitespace
        """
        return value is not None and str(value).strip() != ''

    @staticmethod
    def extract_numbers_only(value: Any) -> str:
        """
        Extract only numeric characters from value.

        Examples:
            '(555) 555-5555' -> '5555555555'
        """
        if value is None:
            return ''
        return StringUtils._regex_cache['numbers_only'].sub('', str(value))

    @staticmethod
    def extract_numeric_value(text: Any) -> Optional[float]:
        """
        Extract the first number in text, preserving its sign and decimal part.

        Examples:
            'Price: $36.50' -> 36.5
            'Up to 40 units' -> 40.0

        Returns:
            Float of the first numeric sequence, or None if no numbers found
        """
        if not StringUtils.safe_string_check(text):
            return None
        match = StringUtils._regex_cache['numeric_extract'].search(str(text))
        return float(match.group()) if match else None

    @staticmethod
    def normalize_whitespace(value: Any) -> str:
        """Collapse runs of whitespace into single spaces."""
        if value is None:
            return ''
        return StringUtils._regex_cache['whitespace'].sub(' ', str(value).strip())


class FieldPath:
    """
    Dot-notation accessor for nested records.

    Reading walks dicts and fans out over lists ('items.name' on a list of
    items yields the list of names). Writing creates missing intermediate
    dicts, so FieldPath('a.b.c').set({}, 1) produces {'a': {'b': {'c': 1}}}.
    """

    SEPARATOR = '.'

    def __init__(self, path: str):
        if not path:
            raise ValueError("field path cannot be empty")
        self.path = path
        self.parts = path.split(self.SEPARATOR)

    def __repr__(self) -> str:
        return f"FieldPath({self.path!r})"

    def get(self, record: Any, default: Any = None) -> Any:
        """Return the value at this path, or default when any segment is missing."""
        return self._get(record, self.parts, default)

    def _get(self, node: Any, parts: List[str], default: Any) -> Any:
        for i, part in enumerate(parts):
            if isinstance(node, list):
                return [self._get(item, parts[i:], default) for item in node]
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def exists(self, record: Any) -> bool:
        node = record
        for part in self.parts:
            if not isinstance(node, dict) or part not in node:
                return False
            node = node[part]
        return True

    def set(self, record: Dict[str, Any], value: Any) -> None:
        """Assign value at this path, creating intermediate dicts as needed."""
        node = record
        for part in self.parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[self.parts[-1]] = value

    def delete(self, record: Dict[str, Any]) -> bool:
        """Remove the value at this path; returns False when it was absent."""
        node = record
        for part in self.parts[:-1]:
            node = node.get(part) if isinstance(node, dict) else None
            if node is None:
                return False
        if isinstance(node, dict) and self.parts[-1] in node:
            del node[self.parts[-1]]
            return True
        return False


def expand_dotted_keys(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rewrite flat keys such as 'address.city' into nested form in place.

    Keys starting with the separator are left alone.
    """
    for key in [k for k in row if isinstance(k, str) and k.find(FieldPath.SEPARATOR) > 0]:
        value = row.pop(key)
        FieldPath(key).set(row, value)
    return row


def random_suffix(length: int = 8) -> str:
    """Random hex string used to build collision-free temporary names."""
    return uuid.uuid4().hex[:length]
