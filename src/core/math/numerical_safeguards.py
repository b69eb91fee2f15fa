"""
Numerical Safeguards — Float Guard Primitives

Guards applied to every plain float that enters or leaves the engine:
- NaN/Inf sanitization so invalid values never propagate
- Tolerance-aware comparisons
- Half-up rounding used by the native arithmetic path
- Magnitude bounds for financial values (overflow / underflow)
- Clamping of externally supplied inputs (settings, rates, amounts)

CRITICAL INVARIANTS:
1. NaN/Inf never propagate (replaced by a fallback)
2. Values above MAX_FINANCIAL_VALUE are rejected or capped, never passed on silently
3. Non-zero values below MIN_FINANCIAL_MAGNITUDE are treated as calculation noise
4. All operations are deterministic
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Final

logger = logging.getLogger(__name__)

# =============================================================================
# EPSILON PARAMETERS
# =============================================================================

# Relative tolerance for is_close
EPS_FLOAT_COMPARE_REL: Final[float] = 1e-9

# Absolute tolerance for is_close / is_zero
EPS_FLOAT_COMPARE_ABS: Final[float] = 1e-12

# =============================================================================
# FINANCIAL MAGNITUDE BOUNDS
# =============================================================================

# Anything above 1 quadrillion is treated as a calculation error
MAX_FINANCIAL_VALUE: Final[float] = 1e15

# Above this a result is still accepted but logged
LARGE_FINANCIAL_VALUE: Final[float] = 1e12

# Non-zero results below this magnitude are rejected
MIN_FINANCIAL_MAGNITUDE: Final[float] = 1e-8

# normalize_big_number() zeroes inputs below this magnitude
TINY_INPUT_MAGNITUDE: Final[float] = 1e-10


# =============================================================================
# NaN/Inf SANITIZATION
# =============================================================================


def is_valid_float(value: Any) -> bool:
    """
    Check that value is a finite real number.

    Args:
        value: Value to check (float, int, Decimal or anything else)

    Returns:
        True for finite numbers, False for NaN/Inf and non-numeric values

    Examples:
        >>> is_valid_float(10.0)
        True
        >>> is_valid_float(float('nan'))
        False
        >>> is_valid_float("10")
        False
    """
    if isinstance(value, bool) or isinstance(value, str):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def sanitize_float(value: Any, fallback: float = 0.0) -> float:
    """
    Replace NaN/Inf (or non-numeric values) with a fallback.

    Args:
        value: Source value
        fallback: Replacement for invalid values (default: 0.0)

    Returns:
        float(value) if valid, otherwise fallback

    Examples:
        >>> sanitize_float(10.0)
        10.0
        >>> sanitize_float(float('inf'))
        0.0
        >>> sanitize_float(None, fallback=-1.0)
        -1.0
    """
    if is_valid_float(value):
        return float(value)
    return fallback


# =============================================================================
# TOLERANCE COMPARISONS
# =============================================================================


def is_close(
    a: float,
    b: float,
    rel_tol: float = EPS_FLOAT_COMPARE_REL,
    abs_tol: float = EPS_FLOAT_COMPARE_ABS,
) -> bool:
    """
    Float comparison with relative and absolute tolerance.

    abs(a - b) <= max(rel_tol * max(abs(a), abs(b)), abs_tol)
    """
    return math.isclose(a, b, rel_tol=rel_tol, abs_tol=abs_tol)


def is_zero(value: float, tol: float = EPS_FLOAT_COMPARE_ABS) -> bool:
    """True if abs(value) <= tol."""
    return abs(value) <= tol


# =============================================================================
# ROUNDING AND CLAMPING
# =============================================================================


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round to a fixed number of decimal places, halves away from zero.

    The float goes through its shortest repr, so 2.675 rounds to 2.68
    (builtin round() gives 2.67 because of the binary representation).

    Args:
        value: Value to round (NaN/Inf become 0.0)
        places: Number of decimal places (>= 0)

    Returns:
        Rounded float

    Examples:
        >>> round_half_up(2.675)
        2.68
        >>> round_half_up(-0.125)
        -0.13
        >>> round_half_up(7.5, 0)
        8.0
    """
    if places < 0:
        raise ValueError(f"places must be non-negative, got {places}")

    if not is_valid_float(value):
        return 0.0

    quantum = Decimal(1).scaleb(-places)
    try:
        rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # quantize() fails when the result needs more digits than the context allows
        return float(value)
    return float(rounded)


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """
    Restrict value to [min_value, max_value].

    Examples:
        >>> clamp(5.0, 0.0, 10.0)
        5.0
        >>> clamp(-1.0, 0.0, 10.0)
        0.0
        >>> clamp(15.0, 0.0, 10.0)
        10.0
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result


# =============================================================================
# FINANCIAL BOUNDS
# =============================================================================


def validate_financial_value(value: float) -> bool:
    """
    Check that a calculation result is a plausible financial amount.

    Rejected:
    - NaN / Inf
    - abs(value) > MAX_FINANCIAL_VALUE
    - 0 < abs(value) < MIN_FINANCIAL_MAGNITUDE

    Values above LARGE_FINANCIAL_VALUE pass with a log record.
    """
    if not is_valid_float(value):
        logger.error("Financial calculation resulted in non-finite value: %s", value)
        return False

    magnitude = abs(value)

    if magnitude > MAX_FINANCIAL_VALUE:
        logger.error("Extremely large financial value, likely calculation error: %s", value)
        return False

    if magnitude > LARGE_FINANCIAL_VALUE:
        logger.warning("Very large financial value: %s", value)

    if value != 0 and magnitude < MIN_FINANCIAL_MAGNITUDE:
        logger.warning("Financial calculation resulted in very small value: %s", value)
        return False

    return True


def normalize_big_number(value: float, context: str) -> float:
    """
    Bring an externally supplied value into safe bounds.

    - NaN/Inf → 0
    - abs(value) > MAX_FINANCIAL_VALUE → ±MAX_FINANCIAL_VALUE
    - 0 < abs(value) < TINY_INPUT_MAGNITUDE → 0

    Args:
        value: Value to normalize
        context: Name used in log records

    Returns:
        Normalized value
    """
    if not is_valid_float(value):
        logger.warning("Invalid %s: %s, using 0", context, value)
        return 0.0

    if abs(value) > MAX_FINANCIAL_VALUE:
        logger.warning("Extreme %s: %s, capping at %s", context, value, MAX_FINANCIAL_VALUE)
        return MAX_FINANCIAL_VALUE if value > 0 else -MAX_FINANCIAL_VALUE

    if value != 0 and abs(value) < TINY_INPUT_MAGNITUDE:
        logger.warning("Tiny %s: %s, using 0", context, value)
        return 0.0

    return float(value)


def validate_financial_input(
    value: Any,
    field_name: str,
    min_value: float = 0.0,
    max_value: float = math.inf,
) -> float:
    """
    Coerce a raw input into a finite number within [min_value, max_value].

    - numeric strings are parsed
    - non-numeric / NaN / Inf → min_value
    - out-of-range values are clamped

    Every correction is logged with the field name.

    Examples:
        >>> validate_financial_input("1500", "monthly_expenses")
        1500.0
        >>> validate_financial_input(-5, "monthly_expenses")
        0.0
        >>> validate_financial_input(150, "tax_rate", 0, 100)
        100.0
    """
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            logger.warning("%s is not a number: %r", field_name, value)
            return min_value

    if not is_valid_float(value):
        logger.warning("%s is not finite: %r", field_name, value)
        return min_value

    if value < min_value or value > max_value:
        logger.warning("%s out of range [%s, %s]: %s", field_name, min_value, max_value, value)
        return clamp(float(value), min_value, max_value)

    return float(value)
