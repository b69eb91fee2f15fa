"""
Calculation Guard — Validation & Safety Wrapper

Boundary that turns any calculation into a total function:

    outcome = run_guarded(lambda: risky(...), fallback=0.0, context="Portfolio variance")

The calculation either produces a value that passes the numeric checks, or
the caller gets the fallback together with the reason (errors) and any soft
findings (warnings). Nothing raises past the guard.

Checks applied to the result:
- int / float / Decimal: must be finite
- sequences: every numeric element must be finite
- mappings and dataclass instances: every numeric value must be finite
- magnitudes above 1e12 or non-zero below 1e-8: warning only

CRITICAL INVARIANTS:
1. run_guarded never raises (non-callable handles included)
2. used_fallback=True ⟺ errors is non-empty
3. Every fallback is logged with its context
"""

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Final, Generic, TypeVar

from src.core.math.numerical_safeguards import (
    LARGE_FINANCIAL_VALUE,
    MAX_FINANCIAL_VALUE,
    MIN_FINANCIAL_MAGNITUDE,
    is_valid_float,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_DECIMAL: Final[Decimal] = Decimal(repr(MAX_FINANCIAL_VALUE))
_LARGE_DECIMAL: Final[Decimal] = Decimal(repr(LARGE_FINANCIAL_VALUE))
_MIN_DECIMAL: Final[Decimal] = Decimal(repr(MIN_FINANCIAL_MAGNITUDE))


@dataclass(frozen=True)
class CalculationOutcome(Generic[T]):
    """Result of a guarded calculation."""

    value: T
    used_fallback: bool
    context: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.used_fallback


# =============================================================================
# DECIMAL BOUNDS
# =============================================================================


def validate_financial_decimal(value: Decimal) -> bool:
    """
    Check a Decimal result against the financial bounds.

    Returns:
        False for NaN/Inf, magnitude > 1e15 and non-zero magnitude < 1e-8.
        Magnitudes above 1e12 pass with a warning log.
    """
    if not value.is_finite():
        logger.error("Financial calculation resulted in non-finite value: %s", value)
        return False

    magnitude = abs(value)

    if magnitude > _MAX_DECIMAL:
        logger.error("Extremely large financial value, likely calculation error: %s", value)
        return False

    if magnitude > _LARGE_DECIMAL:
        logger.warning("Very large financial value: %s", value)

    if magnitude != 0 and magnitude < _MIN_DECIMAL:
        logger.warning("Financial calculation resulted in very small value: %s", value)
        return False

    return True


# =============================================================================
# RESULT INSPECTION
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _number_is_finite(value: int | float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return is_valid_float(value)


def _magnitude_warning(value: int | float | Decimal, context: str) -> str | None:
    magnitude = abs(value)
    if magnitude > LARGE_FINANCIAL_VALUE:
        return f"{context}: very large result {value}"
    if magnitude != 0 and magnitude < MIN_FINANCIAL_MAGNITUDE:
        return f"{context}: very small result {value}"
    return None


def _inspect_members(members: Mapping[str, Any], context: str, kind: str) -> list[str]:
    errors: list[str] = []
    for name, member in members.items():
        if _is_number(member) and not _number_is_finite(member):
            errors.append(f"{context}: {kind} field {name!r} is not finite ({member})")
    return errors


def _inspect_result(result: Any, context: str) -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []

    if _is_number(result):
        if not _number_is_finite(result):
            errors.append(f"{context}: result is not finite ({result})")
        else:
            warning = _magnitude_warning(result, context)
            if warning:
                warnings.append(warning)

    elif isinstance(result, (list, tuple)):
        if not result:
            warnings.append(f"{context}: empty result sequence")
        for index, item in enumerate(result):
            if _is_number(item) and not _number_is_finite(item):
                errors.append(f"{context}: element {index} is not finite ({item})")

    elif isinstance(result, Mapping):
        errors.extend(_inspect_members(result, context, "mapping"))

    elif dataclasses.is_dataclass(result) and not isinstance(result, type):
        fields = {f.name: getattr(result, f.name) for f in dataclasses.fields(result)}
        errors.extend(_inspect_members(fields, context, "result"))

    return errors, warnings


# =============================================================================
# GUARDS
# =============================================================================


def run_guarded(
    calculation: Callable[[], T],
    fallback: T,
    context: str = "Calculation",
) -> CalculationOutcome[T]:
    """
    Execute calculation with validation and fallback.

    Args:
        calculation: Zero-argument callable producing the result
        fallback: Value returned when the calculation fails or is invalid
        context: Name used in errors, warnings and log records

    Returns:
        CalculationOutcome with the value (or fallback) and diagnostics

    Examples:
        >>> run_guarded(lambda: 1.0 / 0.0, fallback=0.0).used_fallback
        True
        >>> run_guarded(lambda: 42.0, fallback=0.0).value
        42.0
    """
    if not callable(calculation):
        message = f"{context}: calculation handle is not callable ({type(calculation).__name__})"
        logger.error(message)
        return CalculationOutcome(
            value=fallback, used_fallback=True, context=context, errors=(message,)
        )

    try:
        result = calculation()
    except Exception as exc:
        message = f"{context}: {type(exc).__name__}: {exc}"
        logger.error("Calculation error in %s, using fallback", context, exc_info=True)
        return CalculationOutcome(
            value=fallback, used_fallback=True, context=context, errors=(message,)
        )

    errors, warnings = _inspect_result(result, context)

    for warning in warnings:
        logger.warning(warning)

    if errors:
        for error in errors:
            logger.error(error)
        return CalculationOutcome(
            value=fallback,
            used_fallback=True,
            context=context,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    return CalculationOutcome(
        value=result, used_fallback=False, context=context, warnings=tuple(warnings)
    )


def safe_calculation(
    calculation: Callable[[], T],
    fallback: T,
    context: str = "Calculation",
) -> T:
    """run_guarded() without diagnostics: the value or the fallback."""
    return run_guarded(calculation, fallback, context).value


def run_financial_operation(
    operation: Callable[[], Decimal | float],
    fallback: float = 0.0,
    context: str = "Financial operation",
) -> CalculationOutcome[float]:
    """
    Guard a Decimal-producing operation and apply the financial bounds.

    The result must pass validate_financial_decimal(); otherwise the fallback
    is returned with an error describing the rejected value.
    """
    outcome = run_guarded(operation, fallback, context)
    if outcome.used_fallback:
        return CalculationOutcome(
            value=fallback,
            used_fallback=True,
            context=context,
            errors=outcome.errors,
            warnings=outcome.warnings,
        )

    raw = outcome.value
    if not _is_number(raw):
        message = f"{context}: expected a number, got {type(raw).__name__}"
        logger.error(message)
        return CalculationOutcome(
            value=fallback, used_fallback=True, context=context, errors=(message,)
        )

    decimal_value = raw if isinstance(raw, Decimal) else Decimal(repr(float(raw)))

    if not validate_financial_decimal(decimal_value):
        message = f"{context}: value {decimal_value} outside financial bounds"
        logger.warning("%s, using fallback %s", message, fallback)
        return CalculationOutcome(
            value=fallback,
            used_fallback=True,
            context=context,
            errors=(message,),
            warnings=outcome.warnings,
        )

    return CalculationOutcome(
        value=float(decimal_value),
        used_fallback=False,
        context=context,
        warnings=outcome.warnings,
    )


def safe_financial_operation(
    operation: Callable[[], Decimal | float],
    fallback: float = 0.0,
    context: str = "Financial operation",
) -> float:
    """
    Guarded Decimal operation returning a float.

    Examples:
        >>> from decimal import Decimal
        >>> safe_financial_operation(lambda: Decimal("12.5"))
        12.5
        >>> safe_financial_operation(lambda: Decimal("1e16"), fallback=-1.0)
        -1.0
    """
    return run_financial_operation(operation, fallback, context).value
