"""
Decimal Arithmetic — Precision-Safe Financial Math

Exact decimal kernels plus float-facing wrappers that pick the cheapest safe
arithmetic path:

- NATIVE path: plain float arithmetic rounded half-up to cents. Used when
  every operand is within NATIVE_PATH_THRESHOLD.
- DECIMAL path: 28 significant digits under FINANCIAL_CONTEXT. Used for
  large operands and for every division / percentage.

FINANCIAL_CONTEXT is only ever entered through decimal.localcontext(); the
interpreter-global decimal context is left untouched.

CRITICAL INVARIANTS:
1. Non-finite inputs become 0 before any arithmetic
2. Floats enter Decimal through their shortest repr (0.1 stays 0.1)
3. Division by zero never raises from the public wrappers
4. Decimal-path results go through the financial bounds check
   (non-finite, > 1e15, non-zero < 1e-8 → fallback)
5. Accumulations (sums of products, squared deviations) run in
   WORKING_CONTEXT; only the final result is held to FINANCIAL_CONTEXT's
   exponent range
"""

import logging
import math
from collections.abc import Sequence
from decimal import (
    ROUND_HALF_UP,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from enum import Enum
from typing import Final, Union

from src.core.math.calculation_guard import safe_financial_operation
from src.core.math.numerical_safeguards import round_half_up, sanitize_float

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal, str]

# =============================================================================
# CONTEXT
# =============================================================================

DECIMAL_PRECISION: Final[int] = 28
DECIMAL_EMAX: Final[int] = 15
DECIMAL_EMIN: Final[int] = -12

FINANCIAL_CONTEXT: Final[Context] = Context(
    prec=DECIMAL_PRECISION,
    rounding=ROUND_HALF_UP,
    Emax=DECIMAL_EMAX,
    Emin=DECIMAL_EMIN,
    traps=[Overflow, DivisionByZero, InvalidOperation],
)

# Exponent headroom for intermediates; results are bounded by FINANCIAL_CONTEXT
WORKING_EMAX: Final[int] = 999

WORKING_CONTEXT: Final[Context] = Context(
    prec=DECIMAL_PRECISION,
    rounding=ROUND_HALF_UP,
    Emax=WORKING_EMAX,
    Emin=-WORKING_EMAX,
    traps=[Overflow, DivisionByZero, InvalidOperation],
)

# Operands above this magnitude switch add/subtract/multiply to Decimal
NATIVE_PATH_THRESHOLD: Final[float] = 1_000_000.0

# Native path results are rounded to cents
NATIVE_PATH_PLACES: Final[int] = 2

_ZERO: Final[Decimal] = Decimal(0)
_HUNDRED: Final[Decimal] = Decimal(100)


class ArithmeticPath(str, Enum):
    """Arithmetic strategy for a single operation."""

    NATIVE = "native"
    DECIMAL = "decimal"


# =============================================================================
# CONVERSION
# =============================================================================


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number (or numeric string) to Decimal.

    Non-finite values and unparseable strings become Decimal(0).
    Floats go through repr(), so to_decimal(0.1) == Decimal("0.1").

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal(float('nan'))
        Decimal('0')
        >>> to_decimal("12.50")
        Decimal('12.50')
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() else _ZERO

    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            logger.warning("Cannot convert %r to Decimal, using 0", value)
            return _ZERO
        return parsed if parsed.is_finite() else _ZERO

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Cannot convert %r to Decimal, using 0", value)
        return _ZERO

    if isinstance(value, int):
        return Decimal(value)

    if not math.isfinite(value):
        return _ZERO

    return Decimal(repr(value))


def to_float(value: Decimal | float) -> float:
    """Convert back to float; non-finite results become 0.0."""
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else 0.0
    return sanitize_float(value)


# =============================================================================
# DECIMAL KERNELS
# =============================================================================
#
# Kernels raise decimal.Overflow when a result leaves the context range;
# callers that must stay total go through the safe_* wrappers below.


def _within_financial_range(value: Decimal) -> Decimal:
    """Round a working-context result into FINANCIAL_CONTEXT (Overflow if too large)."""
    with localcontext(FINANCIAL_CONTEXT):
        return +value


def decimal_add(a: Number, b: Number) -> Decimal:
    with localcontext(FINANCIAL_CONTEXT):
        return to_decimal(a) + to_decimal(b)


def decimal_subtract(a: Number, b: Number) -> Decimal:
    with localcontext(FINANCIAL_CONTEXT):
        return to_decimal(a) - to_decimal(b)


def decimal_multiply(a: Number, b: Number) -> Decimal:
    with localcontext(FINANCIAL_CONTEXT):
        return to_decimal(a) * to_decimal(b)


def decimal_divide(a: Number, b: Number, fallback: Decimal = _ZERO) -> Decimal:
    """
    Divide a by b.

    Division by zero returns fallback (Decimal(0) by default) and logs a warning.
    """
    divisor = to_decimal(b)
    if divisor == 0:
        logger.warning("Division by zero attempted: %s / %s", a, b)
        return fallback

    with localcontext(FINANCIAL_CONTEXT):
        return to_decimal(a) / divisor


def decimal_percentage(part: Number, total: Number) -> Decimal:
    """part / total × 100; zero total → 0."""
    total_d = to_decimal(total)
    if total_d == 0:
        return _ZERO

    with localcontext(FINANCIAL_CONTEXT):
        return to_decimal(part) / total_d * _HUNDRED


def decimal_percentage_change(old_value: Number, new_value: Number) -> Decimal:
    """
    (new − old) / |old| × 100.

    A zero base has no defined change: returns 0.
    """
    old_d = to_decimal(old_value)
    if old_d == 0:
        return _ZERO

    with localcontext(FINANCIAL_CONTEXT):
        return (to_decimal(new_value) - old_d) / abs(old_d) * _HUNDRED


def decimal_compound_growth(initial: Number, final: Number, periods: Number) -> Decimal:
    """
    Compound growth rate per period, in percent.

    ((final / initial) ^ (1 / periods) − 1) × 100, evaluated in log space
    (exp((ln final − ln initial) / periods)) so the ratio itself never has to
    fit in the context exponent range.

    Args:
        initial: Starting value
        final: Ending value
        periods: Number of periods (years)

    Returns:
        Growth rate in percent. 0 for zero initial / periods, −100 for a
        zero final value.

    Raises:
        decimal.InvalidOperation: negative initial or final value
        decimal.Overflow: growth too large for the context
    """
    initial_d = to_decimal(initial)
    final_d = to_decimal(final)
    periods_d = to_decimal(periods)

    if initial_d == 0 or periods_d == 0:
        return _ZERO

    if final_d == 0:
        return Decimal(-100)

    if initial_d < 0 or final_d < 0:
        raise InvalidOperation(f"Compound growth undefined for {initial_d} -> {final_d}")

    with localcontext(FINANCIAL_CONTEXT):
        log_ratio = final_d.ln() - initial_d.ln()
        growth_factor = (log_ratio / periods_d).exp()
        return (growth_factor - 1) * _HUNDRED


def decimal_weighted_average(values: Sequence[Number], weights: Sequence[Number]) -> Decimal:
    """
    Σ(vᵢ·wᵢ) / Σwᵢ.

    Mismatched or empty inputs, and a zero weight total, return 0.
    """
    if len(values) != len(weights) or not values:
        return _ZERO

    with localcontext(WORKING_CONTEXT):
        weighted_sum = _ZERO
        weight_total = _ZERO
        for value, weight in zip(values, weights):
            weight_d = to_decimal(weight)
            weighted_sum += to_decimal(value) * weight_d
            weight_total += weight_d

        if weight_total == 0:
            return _ZERO

        average = weighted_sum / weight_total

    return _within_financial_range(average)


def _working_variance(values: Sequence[Number]) -> Decimal:
    with localcontext(WORKING_CONTEXT):
        decimals = [to_decimal(v) for v in values]
        count = Decimal(len(decimals))
        mean = sum(decimals, _ZERO) / count
        return sum(((d - mean) ** 2 for d in decimals), _ZERO) / count


def decimal_variance(values: Sequence[Number]) -> Decimal:
    """Population variance; empty input → 0."""
    if not values:
        return _ZERO
    return _within_financial_range(_working_variance(values))


def decimal_standard_deviation(values: Sequence[Number]) -> Decimal:
    """
    Population standard deviation; empty input → 0.

    The variance may exceed the financial range while its root does not.
    """
    if not values:
        return _ZERO
    with localcontext(WORKING_CONTEXT):
        deviation = _working_variance(values).sqrt()
    return _within_financial_range(deviation)


# =============================================================================
# DUAL-PATH WRAPPERS
# =============================================================================


def select_arithmetic_path(
    *operands: float,
    threshold: float = NATIVE_PATH_THRESHOLD,
) -> ArithmeticPath:
    """
    DECIMAL if any operand exceeds threshold in magnitude, else NATIVE.

    Examples:
        >>> select_arithmetic_path(100.0, 250.5)
        <ArithmeticPath.NATIVE: 'native'>
        >>> select_arithmetic_path(2_500_000.0, 1.0)
        <ArithmeticPath.DECIMAL: 'decimal'>
    """
    if any(abs(operand) > threshold for operand in operands):
        return ArithmeticPath.DECIMAL
    return ArithmeticPath.NATIVE


def safe_add(a: float, b: float, threshold: float = NATIVE_PATH_THRESHOLD) -> float:
    a, b = sanitize_float(a), sanitize_float(b)
    if select_arithmetic_path(a, b, threshold=threshold) is ArithmeticPath.NATIVE:
        return round_half_up(a + b, NATIVE_PATH_PLACES)
    return safe_financial_operation(lambda: decimal_add(a, b), 0.0, "Decimal addition")


def safe_subtract(a: float, b: float, threshold: float = NATIVE_PATH_THRESHOLD) -> float:
    a, b = sanitize_float(a), sanitize_float(b)
    if select_arithmetic_path(a, b, threshold=threshold) is ArithmeticPath.NATIVE:
        return round_half_up(a - b, NATIVE_PATH_PLACES)
    return safe_financial_operation(lambda: decimal_subtract(a, b), 0.0, "Decimal subtraction")


def safe_multiply(a: float, b: float, threshold: float = NATIVE_PATH_THRESHOLD) -> float:
    a, b = sanitize_float(a), sanitize_float(b)
    if select_arithmetic_path(a, b, threshold=threshold) is ArithmeticPath.NATIVE:
        return round_half_up(a * b, NATIVE_PATH_PLACES)
    return safe_financial_operation(lambda: decimal_multiply(a, b), 0.0, "Decimal multiplication")


def safe_divide(a: float, b: float, fallback: float = 0.0) -> float:
    """
    Division on the decimal path.

    Zero (or non-finite) divisor → fallback.

    Examples:
        >>> safe_divide(10.0, 4.0)
        2.5
        >>> safe_divide(10.0, 0.0, fallback=-1.0)
        -1.0
    """
    a, b = sanitize_float(a), sanitize_float(b)
    if b == 0:
        return fallback
    return safe_financial_operation(lambda: decimal_divide(a, b), fallback, "Decimal division")


def safe_percentage(part: float, total: float) -> float:
    """part / total × 100 on the decimal path; zero total → 0."""
    part, total = sanitize_float(part), sanitize_float(total)
    if total == 0:
        return 0.0
    return safe_financial_operation(
        lambda: decimal_percentage(part, total), 0.0, "Decimal percentage"
    )


def safe_percentage_change(old_value: float, new_value: float) -> float:
    """Percentage change on the decimal path; zero base → 0."""
    old_value, new_value = sanitize_float(old_value), sanitize_float(new_value)
    return safe_financial_operation(
        lambda: decimal_percentage_change(old_value, new_value), 0.0, "Percentage change"
    )


# =============================================================================
# GUARDED STATISTICS
# =============================================================================


def safe_compound_growth(
    initial: float, final: float, periods: float, fallback: float = 0.0
) -> float:
    """Compound growth in percent; negative values or out-of-range results → fallback."""
    initial, final, periods = sanitize_float(initial), sanitize_float(final), sanitize_float(periods)
    return safe_financial_operation(
        lambda: decimal_compound_growth(initial, final, periods), fallback, "Compound growth"
    )


def safe_weighted_average(
    values: Sequence[float], weights: Sequence[float], fallback: float = 0.0
) -> float:
    """
    Weighted average on the decimal path.

    Examples:
        >>> safe_weighted_average([1e9, 1e9], [1e9, 1e9])
        1000000000.0
    """
    return safe_financial_operation(
        lambda: decimal_weighted_average(values, weights), fallback, "Weighted average"
    )


def safe_variance(values: Sequence[float], fallback: float = 0.0) -> float:
    return safe_financial_operation(lambda: decimal_variance(values), fallback, "Variance")


def safe_standard_deviation(values: Sequence[float], fallback: float = 0.0) -> float:
    return safe_financial_operation(
        lambda: decimal_standard_deviation(values), fallback, "Standard deviation"
    )
