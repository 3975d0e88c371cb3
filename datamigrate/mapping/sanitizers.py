"""
Named sanitize rules applied to single field values.

Each sanitizer takes a raw value and returns the converted value. Blank input
(None or whitespace-only strings) always converts to None. Input that cannot
be converted raises SanitizeError; the mapping engine records the failure and
the validation engine reports it against the row.
"""

import logging
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Callable, Dict

from ..exceptions import ConfigurationError, SanitizeError
from ..utils import StringUtils

logger = logging.getLogger(__name__)

Sanitizer = Callable[[Any], Any]

_TRUE_VALUES = {'y', 'yes', 'true', 't', '1', 'on'}
_FALSE_VALUES = {'n', 'no', 'false', 'f', '0', 'off'}

_DATETIME_FORMATS = [
    '%Y-%m-%d %H:%M:%S.%f',  # 2023-10-03 16:26:23.886
    '%Y-%m-%d %H:%M:%S',     # 2023-10-03 16:26:23
    '%Y-%m-%dT%H:%M:%S',     # 2023-10-03T16:26:23
    '%Y-%m-%d',              # 2023-10-03
    '%Y/%m/%d',              # 2023/10/03
    '%m/%d/%Y',              # 10/3/2023
    '%m/%d/%Y %H:%M:%S',     # 10/3/2023 16:26:23
    '%m/%d/%Y %I:%M:%S %p',  # 4/2/2020 5:53:20 AM
]


def _fail(name: str, value: Any) -> SanitizeError:
    return SanitizeError(f"Cannot convert '{value}' using sanitizer '{name}'",
                         sanitizer=name, source_value=value)


def _to_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        return Decimal(str(value).strip().replace(',', ''))
    except (InvalidOperation, ValueError):
        raise _fail(name, value)


def to_integer(value: Any) -> int:
    """Convert to int, rounding half up ('36.5' -> 37)."""
    number = _to_decimal('int', value)
    if not number.is_finite():
        raise _fail('int', value)
    return int(number.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def to_float(value: Any) -> float:
    number = _to_decimal('float', value)
    if not number.is_finite():
        raise _fail('float', value)
    return float(number)


def to_decimal(value: Any, precision: int = 2) -> float:
    """Round half up to a fixed number of places (not banker's rounding)."""
    number = _to_decimal('decimal', value)
    if not number.is_finite():
        raise _fail('decimal', value)
    return float(number.quantize(Decimal('0.' + '0' * precision), rounding=ROUND_HALF_UP))


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise _fail('boolean', value)


def to_bit(value: Any) -> int:
    try:
        return 1 if to_boolean(value) else 0
    except SanitizeError:
        raise _fail('bit', value)


def to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        raise _fail('datetime', value)


def to_date(value: Any) -> date:
    try:
        return to_datetime(value).date()
    except SanitizeError:
        raise _fail('date', value)


def to_numbers_only(value: Any) -> str:
    digits = StringUtils.extract_numbers_only(value)
    if not digits:
        raise _fail('numbers_only', value)
    return digits


def to_extracted_number(value: Any) -> float:
    number = StringUtils.extract_numeric_value(value)
    if number is None:
        raise _fail('extract_numeric', value)
    return number


SANITIZERS: Dict[str, Sanitizer] = {
    'int': to_integer,
    'integer': to_integer,
    'float': to_float,
    'number': to_float,
    'decimal': to_decimal,
    'string': lambda value: str(value),
    'trim': lambda value: StringUtils.normalize_whitespace(value),
    'upper': lambda value: str(value).strip().upper(),
    'lower': lambda value: str(value).strip().lower(),
    'boolean': to_boolean,
    'bit': to_bit,
    'date': to_date,
    'datetime': to_datetime,
    'numbers_only': to_numbers_only,
    'extract_numeric': to_extracted_number,
}


def register_sanitizer(name: str, sanitizer: Sanitizer) -> None:
    """Register a custom sanitize rule, replacing any rule of the same name."""
    if not name:
        raise ValueError("sanitizer name cannot be empty")
    SANITIZERS[name] = sanitizer


def get_sanitizer(name: str) -> Sanitizer:
    try:
        return SANITIZERS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown sanitizer: {name}")


def sanitize(value: Any, name: str) -> Any:
    """
    Apply the named sanitizer.

    Raises:
        SanitizeError: If the value cannot be converted
        ConfigurationError: If no sanitizer has that name
    """
    sanitizer = get_sanitizer(name)
    if not StringUtils.safe_string_check(value):
        return None
    try:
        return sanitizer(value)
    except SanitizeError:
        raise
    except (TypeError, ValueError) as e:
        raise SanitizeError(f"Cannot convert '{value}' using sanitizer '{name}': {e}",
                            sanitizer=name, source_value=value)


def format_value(value: Any, name: str) -> Any:
    """Sanitize for display; values that cannot be converted are kept as-is."""
    try:
        return sanitize(value, name)
    except SanitizeError as e:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Keeping unformatted value: {e}")
        return value
