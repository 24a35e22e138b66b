"""
Input Validation - sanitization of user-supplied values.

Each validator returns (is_valid, error_message) so callers can decide
whether to surface, log, or raise. The bid workflow lifts failures into
ValidationError at its boundary.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

MAX_STRING_LENGTH = 1024
MAX_AMOUNT_DIGITS = 36

# Constraint names reported with ValidationError
CONSTRAINT_NON_NUMERIC = "non_numeric"
CONSTRAINT_NON_POSITIVE = "non_positive"
CONSTRAINT_BELOW_FLOOR = "below_floor"


# =============================================================================
# Amounts
# =============================================================================


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a user-supplied amount to Decimal.

    Returns None for anything that is not a finite number. bool is
    rejected even though it subclasses int.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite():
        return None
    if len(amount.as_tuple().digits) > MAX_AMOUNT_DIGITS:
        return None
    return amount


def validate_numeric(value: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate that value is a finite number."""
    if to_decimal(value) is None:
        return False, f"{name} must be a finite number, got {value!r}"
    return True, ""


def validate_positive(amount: Decimal, name: str = "amount") -> Tuple[bool, str]:
    """Validate that amount is strictly positive."""
    if amount <= 0:
        return False, f"{name} must be greater than 0, got {amount}"
    return True, ""


def validate_floor(amount: Decimal, floor: Decimal, name: str = "amount") -> Tuple[bool, str]:
    """Validate that amount is no smaller than floor."""
    if amount < floor:
        return False, f"{name} must be at least {floor}, got {amount}"
    return True, ""


# =============================================================================
# Strings
# =============================================================================


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_STRING_LENGTH,
    pattern: Optional[str] = None,
    allow_empty: bool = False,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern
        allow_empty: Whether a blank string is acceptable

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if not allow_empty and not value.strip():
        return False, f"{name} must not be empty"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_hex_string(value: Any, name: str, expected_bytes: Optional[int] = None) -> Tuple[bool, str]:
    """
    Validate a hex string (with or without 0x prefix).

    Args:
        value: Value to validate
        name: Field name
        expected_bytes: Expected byte length when decoded

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    hex_str = value[2:] if value.startswith("0x") else value

    if len(hex_str) % 2 != 0:
        return False, f"{name} has odd length, invalid hex"

    try:
        bytes.fromhex(hex_str)
    except ValueError:
        return False, f"{name} contains invalid hex characters"

    if expected_bytes is not None:
        actual_bytes = len(hex_str) // 2
        if actual_bytes != expected_bytes:
            return False, f"{name} must be {expected_bytes} bytes, got {actual_bytes}"

    return True, ""


# =============================================================================
# Auction Terms
# =============================================================================


def validate_time_bounds(start_time: Any, end_time: Any) -> Tuple[bool, str]:
    """Validate that both bounds are timezone-aware and start < end."""
    for name, value in (("start_time", start_time), ("end_time", end_time)):
        if not isinstance(value, datetime):
            return False, f"{name} must be datetime, got {type(value).__name__}"
        if value.tzinfo is None:
            return False, f"{name} must be timezone-aware"

    if start_time >= end_time:
        return False, "start_time must be before end_time"

    return True, ""


def validate_count(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a non-negative integer counter."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"
    if value < 0:
        return False, f"{name} must be >= 0, got {value}"
    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "to_decimal",
    "validate_numeric",
    "validate_positive",
    "validate_floor",
    "validate_string",
    "validate_hex_string",
    "validate_time_bounds",
    "validate_count",
    "CONSTRAINT_NON_NUMERIC",
    "CONSTRAINT_NON_POSITIVE",
    "CONSTRAINT_BELOW_FLOOR",
]
