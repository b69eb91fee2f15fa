"""
Withdrawal — Safe Withdrawal Rate calculators

Two models:

1. calculate_swr (basic): applies the user's rate to liquid assets
   (cash + investments + other accounts), nudged by the growth-asset share.
   Real estate and pension funds are not withdrawable.

2. calculate_advanced_swr: starts from a base rate and applies an inflation
   penalty and a portfolio-risk penalty/bonus, then grades confidence in the
   result.

Every heuristic that fires, and every input that gets clamped, leaves a
warning on the result.

CRITICAL INVARIANTS:
1. Withdrawal amounts are never negative
2. years_of_support ∈ [0, max_years]
3. Rates are never below min_rate
4. Neither function raises on degenerate numeric input
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from src.core.domain.settings import AdvancedSWRSettings, PortfolioTotals
from src.core.math.decimal_arithmetic import safe_add, safe_divide, safe_multiply
from src.core.math.numerical_safeguards import clamp, is_valid_float, round_half_up

logger = logging.getLogger(__name__)

RESULT_PLACES: Final[int] = 2


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class SWRConfig:
    """Constants of the basic SWR model (rates in percent)."""

    default_rate: float = 3.5
    min_rate: float = 1.0
    max_rate: float = 10.0
    risky_rate: float = 5.0  # above this the rate is flagged as risky

    default_inflation: float = 2.0
    max_inflation: float = 20.0

    aggressive_threshold_pct: float = 70.0  # growth share above → aggressive
    conservative_threshold_pct: float = 30.0  # growth share below → conservative
    allocation_nudge: float = 0.5

    max_years: float = 30.0
    small_portfolio_threshold: float = 100_000.0


@dataclass(frozen=True)
class AdvancedSWRConfig:
    """Constants of the advanced SWR model (rates in percent)."""

    min_rate: float = 1.0
    max_rate: float = 10.0

    inflation_baseline: float = 2.0
    inflation_penalty_factor: float = 0.5  # per point of inflation above baseline
    high_inflation_warning: float = 5.0

    high_risk_threshold: float = 6.0
    high_risk_penalty_per_point: float = 0.15
    max_risk_penalty: float = 1.0
    low_risk_threshold: float = 4.0
    low_risk_bonus_per_point: float = 0.1
    max_risk_bonus: float = 0.5
    risk_monitoring_threshold: float = 7.0
    extreme_risk_threshold: float = 8.0

    min_expense_multiple: float = 300.0  # months of expenses for HIGH/MEDIUM confidence
    conservative_rate_threshold: float = 3.0


# =============================================================================
# ENUMS & RESULTS
# =============================================================================


class RiskLevel(str, Enum):
    """Allocation profile used by the basic SWR nudge."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class SWRResult:
    """Basic SWR calculation result (amounts in currency, rates in percent)."""

    withdrawable_assets: float
    annual_withdrawal: float
    monthly_withdrawal: float
    years_of_support: float
    real_withdrawal_rate: float
    recommended_rate: float
    risk_level: RiskLevel
    adjusted_for_inflation: float
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SWRCalculationResult:
    """Advanced SWR calculation result (rates in percent)."""

    basic_swr: float
    inflation_adjusted_swr: float
    risk_adjusted_swr: float
    monthly_withdrawal: float
    annual_withdrawal: float
    inflation_adjustment: float
    risk_adjustment: float  # positive = penalty, negative = bonus
    confidence_level: ConfidenceLevel
    warnings: tuple[str, ...] = ()


# =============================================================================
# BASIC SWR
# =============================================================================


def _rate_or_default(value: Any, default: float, name: str, warnings: list[str]) -> float:
    if value is None:
        return default
    if not is_valid_float(value):
        warnings.append(f"Invalid {name} ({value}), using default {default}%")
        return default
    return float(value)


def _clamp_with_warning(
    value: float, lower: float, upper: float, name: str, warnings: list[str]
) -> float:
    clamped = clamp(value, lower, upper)
    if clamped != value:
        warnings.append(f"{name.capitalize()} {value}% outside [{lower}%, {upper}%], using {clamped}%")
        logger.warning("%s %s clamped to %s", name, value, clamped)
    return clamped


def calculate_swr(
    totals: PortfolioTotals | Mapping[str, Any],
    swr_rate: float | None = None,
    inflation_rate: float | None = None,
    monthly_expenses: float | None = None,
    config: SWRConfig = SWRConfig(),
) -> SWRResult:
    """
    Basic safe withdrawal rate.

    Args:
        totals: Snapshot totals (PortfolioTotals or its raw mapping)
        swr_rate: Withdrawal rate in percent (default 3.5, clamped to [1, 10])
        inflation_rate: Inflation in percent (default 2, clamped to [0, 20])
        monthly_expenses: Monthly expenses (negative / invalid → 0)
        config: Model constants

    Returns:
        SWRResult

    Raises:
        TypeError: totals is neither PortfolioTotals nor a mapping

    Examples:
        >>> r = calculate_swr({"cash": 100000, "investments": 800000, "otherAccounts": 100000}, 4, 2, 3000)
        >>> (r.recommended_rate, r.monthly_withdrawal)
        (4.5, 3750.0)
    """
    if isinstance(totals, Mapping):
        totals = PortfolioTotals.from_raw(totals)
    elif not isinstance(totals, PortfolioTotals):
        raise TypeError(f"totals must be PortfolioTotals or a mapping, got {type(totals).__name__}")

    warnings: list[str] = []

    rate = _rate_or_default(swr_rate, config.default_rate, "withdrawal rate", warnings)
    rate = _clamp_with_warning(rate, config.min_rate, config.max_rate, "withdrawal rate", warnings)

    inflation = _rate_or_default(inflation_rate, config.default_inflation, "inflation rate", warnings)
    inflation = _clamp_with_warning(inflation, 0.0, config.max_inflation, "inflation rate", warnings)

    expenses = monthly_expenses if is_valid_float(monthly_expenses) else 0.0
    expenses = max(0.0, float(expenses))

    # Liquid assets only
    withdrawable = safe_add(safe_add(totals.cash, totals.investments), totals.other_accounts)
    total_assets = max(1.0, totals.effective_total)
    growth_share_pct = safe_divide(totals.investments, total_assets) * 100

    if growth_share_pct > config.aggressive_threshold_pct:
        risk_level = RiskLevel.AGGRESSIVE
        nudge = config.allocation_nudge
        warnings.append(
            f"Aggressive allocation ({growth_share_pct:.0f}% investments) "
            f"raises the withdrawal rate by {nudge} points"
        )
    elif growth_share_pct < config.conservative_threshold_pct:
        risk_level = RiskLevel.CONSERVATIVE
        nudge = -config.allocation_nudge
        warnings.append(
            f"Conservative allocation ({growth_share_pct:.0f}% investments) "
            f"lowers the withdrawal rate by {config.allocation_nudge} points"
        )
    else:
        risk_level = RiskLevel.MODERATE
        nudge = 0.0

    recommended_rate = max(config.min_rate, rate + nudge)

    annual_withdrawal = safe_multiply(withdrawable, safe_divide(recommended_rate, 100))
    monthly_withdrawal = safe_divide(annual_withdrawal, 12)

    real_rate = max(config.min_rate, recommended_rate - inflation)

    inflation_factor = 1 + inflation / 100
    annual_expenses_inflated = safe_multiply(expenses * 12, inflation_factor)
    adjusted_for_inflation = safe_divide(annual_withdrawal, inflation_factor)

    if expenses <= 0:
        years_of_support = 0.0
        warnings.append("Monthly expenses not set - cannot calculate sustainability")
    elif monthly_withdrawal >= expenses:
        years_of_support = config.max_years
    else:
        years_of_support = min(
            config.max_years,
            safe_divide(withdrawable, max(1.0, annual_expenses_inflated)),
        )

    if withdrawable < config.small_portfolio_threshold:
        warnings.append("Portfolio size may be too small for reliable SWR application")

    if rate > config.risky_rate:
        warnings.append(f"SWR rate above {config.risky_rate:g}% is considered risky")

    if expenses > 0 and monthly_withdrawal < expenses:
        warnings.append("SWR withdrawal insufficient to cover monthly expenses")

    return SWRResult(
        withdrawable_assets=withdrawable,
        annual_withdrawal=max(0.0, annual_withdrawal),
        monthly_withdrawal=max(0.0, monthly_withdrawal),
        years_of_support=clamp(round_half_up(years_of_support, 1), 0.0, config.max_years),
        real_withdrawal_rate=round_half_up(real_rate, RESULT_PLACES),
        recommended_rate=round_half_up(recommended_rate, RESULT_PLACES),
        risk_level=risk_level,
        adjusted_for_inflation=max(0.0, adjusted_for_inflation),
        warnings=tuple(warnings),
    )


# =============================================================================
# ADVANCED SWR
# =============================================================================


def _invalid_advanced_result(message: str) -> SWRCalculationResult:
    logger.warning("Advanced SWR: %s", message)
    return SWRCalculationResult(
        basic_swr=0.0,
        inflation_adjusted_swr=0.0,
        risk_adjusted_swr=0.0,
        monthly_withdrawal=0.0,
        annual_withdrawal=0.0,
        inflation_adjustment=0.0,
        risk_adjustment=0.0,
        confidence_level=ConfidenceLevel.LOW,
        warnings=(message,),
    )


def calculate_advanced_swr(
    net_liquid_assets: float,
    monthly_expenses: float,
    inflation_rate: float,
    portfolio_risk_score: float,
    settings: AdvancedSWRSettings | None = None,
    config: AdvancedSWRConfig = AdvancedSWRConfig(),
) -> SWRCalculationResult:
    """
    SWR adjusted for inflation and portfolio risk.

    Args:
        net_liquid_assets: Liquid assets net of debts
        monthly_expenses: Monthly expenses (≥ 0)
        inflation_rate: Inflation in percent
        portfolio_risk_score: Risk score on the 0..10 scale
        settings: Base rate settings (default AdvancedSWRSettings())
        config: Model constants

    Returns:
        SWRCalculationResult with each adjustment and its warning

    Examples:
        >>> calculate_advanced_swr(1_000_000, 3000, 2.0, 7.0).risk_adjusted_swr
        3.85
    """
    settings = settings or AdvancedSWRSettings()

    if not is_valid_float(net_liquid_assets) or net_liquid_assets <= 0:
        return _invalid_advanced_result("Invalid input: net liquid assets must be positive")

    if not is_valid_float(monthly_expenses) or monthly_expenses < 0:
        return _invalid_advanced_result("Invalid input: monthly expenses cannot be negative")

    warnings: list[str] = []

    inflation = float(inflation_rate) if is_valid_float(inflation_rate) else config.inflation_baseline
    risk_score = clamp(
        float(portfolio_risk_score) if is_valid_float(portfolio_risk_score) else 5.0, 0.0, 10.0
    )

    basic_swr = clamp(settings.base_swr_rate, config.min_rate, config.max_rate)

    # Inflation penalty
    inflation_adjustment = config.inflation_penalty_factor * max(
        0.0, inflation - config.inflation_baseline
    )
    if inflation_adjustment > 0:
        warnings.append(
            f"High inflation ({inflation:g}%) reduces safe withdrawal rate by "
            f"{inflation_adjustment:.2f}%"
        )
    inflation_adjusted_swr = max(config.min_rate, basic_swr - inflation_adjustment)

    # Risk penalty / bonus
    risk_adjustment = 0.0
    if risk_score > config.high_risk_threshold:
        risk_adjustment = min(
            (risk_score - config.high_risk_threshold) * config.high_risk_penalty_per_point,
            config.max_risk_penalty,
        )
        warnings.append(
            f"High portfolio risk ({risk_score:g}/10) reduces SWR by {risk_adjustment:.2f}%"
        )
    elif risk_score < config.low_risk_threshold:
        bonus = min(
            (config.low_risk_threshold - risk_score) * config.low_risk_bonus_per_point,
            config.max_risk_bonus,
        )
        risk_adjustment = -bonus
        warnings.append(
            f"Conservative portfolio ({risk_score:g}/10) allows slightly higher SWR (+{bonus:.2f}%)"
        )
    risk_adjusted_swr = max(config.min_rate, inflation_adjusted_swr - risk_adjustment)

    annual_withdrawal = safe_multiply(net_liquid_assets, safe_divide(risk_adjusted_swr, 100))
    monthly_withdrawal = safe_divide(annual_withdrawal, 12)

    if net_liquid_assets < monthly_expenses * config.min_expense_multiple:
        confidence = ConfidenceLevel.LOW
        warnings.append("Asset base may be insufficient for long-term retirement")
    elif risk_adjusted_swr < config.conservative_rate_threshold:
        confidence = ConfidenceLevel.MEDIUM
        warnings.append("Low SWR rate indicates conservative approach")
    elif risk_score > config.risk_monitoring_threshold:
        confidence = ConfidenceLevel.MEDIUM
        warnings.append("High portfolio risk requires careful monitoring")
    else:
        confidence = ConfidenceLevel.HIGH

    if inflation > config.high_inflation_warning:
        warnings.append("Very high inflation may require additional adjustments")

    if risk_score > config.extreme_risk_threshold:
        warnings.append("Extremely high portfolio risk - consider rebalancing")

    return SWRCalculationResult(
        basic_swr=round_half_up(basic_swr, RESULT_PLACES),
        inflation_adjusted_swr=round_half_up(inflation_adjusted_swr, RESULT_PLACES),
        risk_adjusted_swr=round_half_up(risk_adjusted_swr, RESULT_PLACES),
        monthly_withdrawal=round_half_up(max(0.0, monthly_withdrawal), RESULT_PLACES),
        annual_withdrawal=round_half_up(max(0.0, annual_withdrawal), RESULT_PLACES),
        inflation_adjustment=round_half_up(inflation_adjustment, RESULT_PLACES),
        risk_adjustment=round_half_up(risk_adjustment, RESULT_PLACES),
        confidence_level=confidence,
        warnings=tuple(warnings),
    )
