"""
Growth — Compound Annual Growth Rate

CAGR with explicit handling of every degenerate input:

    initial ≤ 0            → 0
    final < 0              → −100
    years ≤ 0              → 0
    final == 0             → −100 (total loss)
    years < 1 month        → simple return, not annualized
    1 month ≤ years < 0.25 → simple return annualized linearly
    otherwise              → ((final/initial)^(1/years) − 1) × 100

The compound branch runs on the decimal layer in log space and is clamped to
±CAGR_CAP_PCT, so extreme ratios over short horizons cannot overflow.

CRITICAL INVARIANTS:
1. CAGR(x, x, y) == 0 for x > 0, y > 0
2. For fixed initial and years, CAGR is monotone non-decreasing in final
3. Result is always finite and within ±CAGR_CAP_PCT
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, DecimalException
from enum import Enum
from typing import Final

from src.core.math.decimal_arithmetic import decimal_compound_growth, to_float
from src.core.math.numerical_safeguards import round_half_up, sanitize_float

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Horizons shorter than one month are not annualized
MIN_ANNUALIZATION_YEARS: Final[float] = 1.0 / 12.0

# Horizons shorter than a quarter are annualized linearly
MIN_COMPOUNDING_YEARS: Final[float] = 0.25

# Absolute cap on the reported rate (%)
CAGR_CAP_PCT: Final[float] = 1000.0

TOTAL_LOSS_PCT: Final[float] = -100.0

CAGR_PLACES: Final[int] = 2


class CAGRMethod(str, Enum):
    """Branch used to produce a CAGR value."""

    INVALID_INPUT = "invalid_input"
    TOTAL_LOSS = "total_loss"
    SIMPLE_RETURN = "simple_return"
    ANNUALIZED_SIMPLE = "annualized_simple"
    COMPOUND = "compound"


@dataclass(frozen=True)
class CAGRResult:
    """CAGR value (percent) with the branch that produced it."""

    value: float
    method: CAGRMethod
    capped: bool = False
    warnings: tuple[str, ...] = ()


# =============================================================================
# CAGR
# =============================================================================


def _cap(value: float) -> tuple[float, bool]:
    if value > CAGR_CAP_PCT:
        logger.warning("CAGR %s above cap, clamping to %s", value, CAGR_CAP_PCT)
        return CAGR_CAP_PCT, True
    if value < -CAGR_CAP_PCT:
        logger.warning("CAGR %s below cap, clamping to %s", value, -CAGR_CAP_PCT)
        return -CAGR_CAP_PCT, True
    return value, False


def calculate_cagr(initial_value: float, final_value: float, years: float) -> CAGRResult:
    """
    Compound annual growth rate with diagnostics.

    Args:
        initial_value: Value at the start of the period
        final_value: Value at the end of the period
        years: Length of the period in years

    Returns:
        CAGRResult (value in percent, rounded to 2 places)

    Examples:
        >>> calculate_cagr(10000, 15000, 5).value
        8.45
        >>> calculate_cagr(10000, 0, 5).method
        <CAGRMethod.TOTAL_LOSS: 'total_loss'>
    """
    initial = sanitize_float(initial_value)
    final = sanitize_float(final_value)
    period = sanitize_float(years)

    if initial <= 0:
        return CAGRResult(0.0, CAGRMethod.INVALID_INPUT, warnings=("Initial value must be positive",))

    if final < 0:
        return CAGRResult(
            TOTAL_LOSS_PCT, CAGRMethod.TOTAL_LOSS, warnings=("Final value is negative",)
        )

    if period <= 0:
        return CAGRResult(0.0, CAGRMethod.INVALID_INPUT, warnings=("Period must be positive",))

    if final == 0:
        return CAGRResult(TOTAL_LOSS_PCT, CAGRMethod.TOTAL_LOSS)

    simple_return = (final - initial) / initial * 100

    if period < MIN_ANNUALIZATION_YEARS:
        value, capped = _cap(simple_return)
        return CAGRResult(
            round_half_up(value, CAGR_PLACES),
            CAGRMethod.SIMPLE_RETURN,
            capped,
            ("Period shorter than one month, simple return reported",),
        )

    if period < MIN_COMPOUNDING_YEARS:
        value, capped = _cap(simple_return / period)
        return CAGRResult(
            round_half_up(value, CAGR_PLACES),
            CAGRMethod.ANNUALIZED_SIMPLE,
            capped,
            ("Short period, annualized return subject to high volatility",),
        )

    try:
        growth = decimal_compound_growth(initial, final, period)
    except DecimalException:
        # Overflow of exp(): growth far beyond the cap in the ratio's direction
        logger.warning(
            "CAGR overflow for %s -> %s over %s years, clamping", initial, final, period
        )
        growth = Decimal(CAGR_CAP_PCT) if final > initial else Decimal(-CAGR_CAP_PCT)

    value, capped = _cap(to_float(growth))
    warnings = (f"CAGR capped at {value:+.0f}%",) if capped else ()
    return CAGRResult(round_half_up(value, CAGR_PLACES), CAGRMethod.COMPOUND, capped, warnings)


def safe_cagr(initial_value: float, final_value: float, years: float) -> float:
    """
    CAGR in percent; see calculate_cagr() for the branch rules.

    Examples:
        >>> safe_cagr(10000, 8000, 3)
        -7.17
        >>> safe_cagr(1e-10, 1e10, 10)
        1000.0
    """
    return calculate_cagr(initial_value, final_value, years).value
