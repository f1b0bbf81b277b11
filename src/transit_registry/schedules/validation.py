"""Field validation for registry inputs.

Dates are integers in YYYYMMDD form and times are minutes of the day.
Malformed values raise InvalidArgumentError; ordering problems raise
InvalidRangeError.
"""

from datetime import date
from enum import Enum
from typing import TypeVar

from .errors import InvalidArgumentError, InvalidRangeError

MINUTES_PER_DAY = 1440

E = TypeVar("E", bound=Enum)


def date_to_int(value: date) -> int:
	"""Convert a date to its YYYYMMDD integer form."""
	return value.year * 10000 + value.month * 100 + value.day


def today() -> int:
	return date_to_int(date.today())


def _require_int(value: object, field: str) -> int:
	# bool is an int subclass; reject it explicitly
	if isinstance(value, bool) or not isinstance(value, int):
		raise InvalidArgumentError(f"{field} must be an integer, got {value!r}")
	return value


def check_date(value: object, field: str) -> int:
	"""Validate a YYYYMMDD calendar date."""
	value = _require_int(value, field)
	year, rest = divmod(value, 10000)
	month, day = divmod(rest, 100)
	if not 1000 <= year <= 9999:
		raise InvalidArgumentError(f"{field} must be YYYYMMDD, got {value}")
	try:
		date(year, month, day)
	except ValueError:
		raise InvalidArgumentError(f"{field} is not a calendar date: {value}") from None
	return value


def check_minute(value: object, field: str) -> int:
	"""Validate a minute-of-day value (0-1439)."""
	value = _require_int(value, field)
	if not 0 <= value < MINUTES_PER_DAY:
		raise InvalidArgumentError(f"{field} must be between 0 and {MINUTES_PER_DAY - 1}, got {value}")
	return value


def check_frequency(value: object, field: str) -> int:
	value = _require_int(value, field)
	if value <= 0:
		raise InvalidArgumentError(f"{field} must be greater than 0, got {value}")
	return value


def check_identifier(value: object, field: str) -> int:
	value = _require_int(value, field)
	if value < 0:
		raise InvalidArgumentError(f"{field} must not be negative, got {value}")
	return value


def check_text(value: object, field: str) -> str:
	if not isinstance(value, str) or not value.strip():
		raise InvalidArgumentError(f"{field} must be a non-empty string")
	return value


def check_order(start: int, end: int, label: str) -> None:
	"""Require start < end."""
	if start >= end:
		raise InvalidRangeError(f"{label}: start {start} must be before end {end}")


def parse_enum(enum_cls: type[E], value: object, field: str) -> E:
	"""Parse an enum member from its value or the member itself."""
	try:
		return enum_cls(value)
	except ValueError:
		allowed = ", ".join(m.value for m in enum_cls)
		raise InvalidArgumentError(f"{field} must be one of: {allowed}; got {value!r}") from None
