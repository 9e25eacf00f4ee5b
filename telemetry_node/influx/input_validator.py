"""
Input validation and escaping utilities for the telemetry store
Numeric checks for incoming speed values and InfluxQL escaping for query fragments
"""
import math
import re
import logging
from datetime import datetime, timezone
from typing import Any, Union

logger = logging.getLogger(__name__)

# Plain decimal notation: optional sign, digits with optional fraction, optional exponent
DECIMAL_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')

# Duration units accepted by InfluxQL GROUP BY time()
GROUP_UNITS = frozenset({'ns', 'u', 'µ', 'ms', 's', 'm', 'h', 'd', 'w'})


def is_numeric(value: Any) -> bool:
    """
    Check whether a raw field value is a finite number.

    Args:
        value: String, int or float from a tracker record

    Returns:
        True if the value converts to a float that is neither NaN nor infinite
    """
    if value is None or isinstance(value, bool):
        return False

    if isinstance(value, (int, float)):
        candidate = value
    else:
        candidate = str(value).strip()
        if not DECIMAL_PATTERN.match(candidate):
            return False

    try:
        # Ints beyond float range raise OverflowError
        return math.isfinite(float(candidate))
    except (ValueError, OverflowError):
        return False


def escape_string_literal(value: Any) -> str:
    """
    Quote a value as an InfluxQL string literal.

    Backslashes and single quotes are escaped so the literal cannot be closed early.
    """
    value_str = str(value)
    value_str = value_str.replace('\\', '\\\\').replace("'", "\\'")
    return f"'{value_str}'"


def escape_measurement(value: Any) -> str:
    """Escape commas and spaces, the separators of a measurement-style token."""
    value_str = str(value)
    return value_str.replace(',', '\\,').replace(' ', '\\ ')


def escape_regex_token(value: Any) -> str:
    """
    Escape a token for interpolation inside an InfluxQL /regex/ literal.

    Measurement escaping plus the slash that would terminate the literal.
    """
    return escape_measurement(value).replace('/', '\\/')


def validate_group_unit(group: Any) -> str:
    """
    Validate a GROUP BY time() unit.

    Args:
        group: Single duration unit such as 'd' or 'h'

    Returns:
        The escaped unit

    Raises:
        ValueError: If the unit is not an InfluxQL duration unit
    """
    group_str = escape_measurement(group).strip()
    if group_str not in GROUP_UNITS:
        logger.warning(f"Invalid group unit: {group!r}")
        raise ValueError(f"Invalid group unit {group!r}, expected one of {sorted(GROUP_UNITS)}")
    return group_str


def format_time_bound(value: Union[str, datetime]) -> str:
    """
    Render a date-range bound as an InfluxQL string literal.

    Datetimes are converted to RFC3339 UTC (naive values are taken as UTC);
    strings are passed through escaped.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
    return escape_string_literal(value)
