"""
Risk — Modern Portfolio Theory risk model

Portfolio variance from the static volatility / correlation tables:

    σ²ₚ = Σ wᵢ² σᵢ² + Σ_{i<j} 2 wᵢ wⱼ σᵢ σⱼ ρᵢⱼ        wᵢ = amountᵢ / total

plus two risk scores on a 0..10 scale and the Sharpe ratio.

Allocations are keyed by application section names; keys are resolved with
AssetClass.from_key() and amounts of the same class are aggregated before
any pairwise term is computed, so a class never correlates with itself
twice.

Units:
- volatilities in the tables are decimals (0.18 = 18%)
- calculate_sharpe_ratio() takes percentages (8.0 = 8%)
- calculate_portfolio_sharpe_ratio() converts table returns and the
  risk-free rate to decimals internally

CRITICAL INVARIANTS:
1. Risk scores ∈ [0, 10]
2. Sharpe ratio ∈ [−10, 10]
3. Zero volatility never divides (explicit ±10 / 0 rules)
"""

import logging
import math
from collections.abc import Mapping
from decimal import Decimal, localcontext
from enum import Enum
from types import MappingProxyType
from typing import Final

from src.core.contracts.validators import AssetAllocationValidator
from src.core.domain.asset_class import (
    ASSET_VOLATILITIES,
    CORRELATION_MATRICES,
    EXPECTED_RETURNS,
    RISK_SCORE_WEIGHTS,
    AssetClass,
    MarketStress,
)
from src.core.math.calculation_guard import safe_financial_operation
from src.core.math.decimal_arithmetic import FINANCIAL_CONTEXT, to_decimal
from src.core.math.numerical_safeguards import clamp, is_valid_float, round_half_up, sanitize_float

logger = logging.getLogger(__name__)

Allocations = Mapping["str | AssetClass", float]

_ALLOCATION_VALIDATOR = AssetAllocationValidator()


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_RISK_FREE_RATE: Final[float] = 2.0  # percent

SHARPE_LIMIT: Final[float] = 10.0

# Excess return (percentage points) treated as zero when volatility is zero
SHARPE_ZERO_EXCESS_TOLERANCE_PCT: Final[float] = 1e-3

# Score returned when there is nothing to score
NEUTRAL_RISK_SCORE: Final[float] = 5.0

# Volatility (%) mapped to the top of the volatility score scale
MAX_SCORED_VOLATILITY_PCT: Final[float] = 30.0


class EfficiencyRating(str, Enum):
    """Qualitative grade of a Sharpe ratio."""

    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    VERY_POOR = "very_poor"


# =============================================================================
# TABLE LOOKUPS
# =============================================================================


def get_asset_volatility(
    asset_class: "str | AssetClass", stress: MarketStress = MarketStress.NORMAL
) -> float:
    """Annual volatility (decimal) of an asset class under a market regime."""
    return ASSET_VOLATILITIES[MarketStress(stress)][AssetClass.from_key(asset_class)]


def get_asset_correlation(
    first: "str | AssetClass",
    second: "str | AssetClass",
    stress: MarketStress = MarketStress.NORMAL,
) -> float:
    """Correlation coefficient between two asset classes under a market regime."""
    matrix = CORRELATION_MATRICES[MarketStress(stress)]
    return matrix[AssetClass.from_key(first)][AssetClass.from_key(second)]


def get_correlation_matrix(
    stress: MarketStress = MarketStress.NORMAL,
) -> Mapping[AssetClass, Mapping[AssetClass, float]]:
    """Read-only correlation matrix for a market regime."""
    return CORRELATION_MATRICES[MarketStress(stress)]


# =============================================================================
# ALLOCATIONS
# =============================================================================


def normalize_allocations(allocations: Allocations) -> Mapping[AssetClass, float]:
    """
    Aggregate raw allocation amounts per AssetClass.

    Allocations are checked against the asset allocation contract first;
    violations are logged. Negative and non-finite amounts are then dropped
    with a warning; zero amounts are dropped silently.

    Examples:
        >>> dict(normalize_allocations({"investments": 100, "stocks": 50, "cash": -5}))
        {<AssetClass.STOCKS: 'stocks'>: 150.0}
    """
    problems = _ALLOCATION_VALIDATOR.error_messages(dict(allocations))
    if problems:
        logger.warning("Allocation payload violates contract: %s", "; ".join(problems))

    totals: dict[AssetClass, float] = {}
    for key, amount in allocations.items():
        if not is_valid_float(amount) or amount < 0:
            logger.warning("Ignoring invalid allocation %r = %r", key, amount)
            continue
        if amount == 0:
            continue
        asset_class = AssetClass.from_key(key)
        totals[asset_class] = totals.get(asset_class, 0.0) + float(amount)
    return MappingProxyType(totals)


def _weights(allocations: Allocations, total_value: float) -> dict[AssetClass, Decimal]:
    """Decimal weights per class; empty when the total is not positive."""
    total = sanitize_float(total_value)
    if total <= 0:
        return {}
    total_d = to_decimal(total)
    with localcontext(FINANCIAL_CONTEXT):
        return {
            asset_class: to_decimal(amount) / total_d
            for asset_class, amount in normalize_allocations(allocations).items()
        }


# =============================================================================
# VARIANCE / VOLATILITY
# =============================================================================


def _variance_decimal(weights: Mapping[AssetClass, Decimal], stress: MarketStress) -> Decimal:
    volatilities = ASSET_VOLATILITIES[stress]
    correlations = CORRELATION_MATRICES[stress]
    classes = list(weights)

    with localcontext(FINANCIAL_CONTEXT):
        variance = Decimal(0)
        for i, first in enumerate(classes):
            sigma_i = to_decimal(volatilities[first])
            variance += weights[first] ** 2 * sigma_i**2

            for second in classes[i + 1 :]:
                sigma_j = to_decimal(volatilities[second])
                rho = to_decimal(correlations[first][second])
                variance += 2 * weights[first] * weights[second] * sigma_i * sigma_j * rho

        # Negative correlations can pull tiny portfolios marginally below zero
        return max(variance, Decimal(0))


def calculate_portfolio_variance(
    allocations: Allocations,
    total_value: float,
    stress: MarketStress = MarketStress.NORMAL,
) -> float:
    """
    Portfolio variance (decimal units, 0.0324 = 18% volatility squared).

    Returns 0 for an empty allocation or a non-positive total.
    """
    weights = _weights(allocations, total_value)
    if not weights:
        return 0.0
    return safe_financial_operation(
        lambda: _variance_decimal(weights, MarketStress(stress)), 0.0, "Portfolio variance"
    )


def calculate_portfolio_volatility(
    allocations: Allocations,
    total_value: float,
    stress: MarketStress = MarketStress.NORMAL,
) -> float:
    """
    Portfolio volatility as a decimal (0.18 = 18%).

    Examples:
        >>> calculate_portfolio_volatility({"stocks": 100}, 100)
        0.18
    """
    weights = _weights(allocations, total_value)
    if not weights:
        return 0.0

    def volatility() -> Decimal:
        with localcontext(FINANCIAL_CONTEXT):
            return _variance_decimal(weights, MarketStress(stress)).sqrt()

    return safe_financial_operation(volatility, 0.0, "Portfolio volatility")


# =============================================================================
# RISK SCORES
# =============================================================================


def calculate_portfolio_risk_score(allocations: Allocations, total_value: float) -> float:
    """
    Category-weighted risk score on a 0..10 scale.

    Each class contributes its RISK_SCORE_WEIGHTS weight in proportion to its
    share of the allocated amount. Rounded half-up to an integer.

    Returns NEUTRAL_RISK_SCORE (5) when total_value ≤ 0 or nothing is allocated.

    Examples:
        >>> calculate_portfolio_risk_score({"cash": 100}, 100)
        1.0
        >>> calculate_portfolio_risk_score({"cash": 50, "alternativeAssets": 50}, 100)
        5.0
    """
    total = sanitize_float(total_value)
    if total <= 0:
        return NEUTRAL_RISK_SCORE

    normalized = normalize_allocations(allocations)
    allocated = sum(normalized.values())
    if allocated <= 0:
        return NEUTRAL_RISK_SCORE

    weighted = sum(
        (amount / total) * RISK_SCORE_WEIGHTS[asset_class]
        for asset_class, amount in normalized.items()
    )
    allocated_weight = allocated / total

    score = weighted / allocated_weight
    return clamp(round_half_up(score, 0), 0.0, 10.0)


def calculate_volatility_risk_score(
    allocations: Allocations,
    total_value: float,
    stress: MarketStress = MarketStress.NORMAL,
) -> float:
    """
    Linear map of portfolio volatility onto 0..10 (30% volatility = 10).

    Rounded to one decimal.
    """
    volatility_pct = calculate_portfolio_volatility(allocations, total_value, stress) * 100
    score = volatility_pct / MAX_SCORED_VOLATILITY_PCT * 10
    return clamp(round_half_up(score, 1), 0.0, 10.0)


# =============================================================================
# SHARPE RATIO
# =============================================================================


def _sharpe(excess_return: float, volatility: float, zero_tolerance: float) -> float:
    """
    Excess / volatility with the zero-volatility rules, clamped to ±SHARPE_LIMIT.

    zero_tolerance is in the unit of excess_return.
    """
    if volatility <= 0:
        if abs(excess_return) < zero_tolerance:
            return 0.0
        return SHARPE_LIMIT if excess_return > 0 else -SHARPE_LIMIT

    ratio = safe_financial_operation(
        lambda: to_decimal(excess_return) / to_decimal(volatility), 0.0, "Sharpe ratio"
    )
    return clamp(ratio, -SHARPE_LIMIT, SHARPE_LIMIT)


def calculate_sharpe_ratio(
    portfolio_return: float,
    portfolio_volatility: float,
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
) -> float:
    """
    Sharpe ratio from percentage inputs.

    Args:
        portfolio_return: Expected return (%)
        portfolio_volatility: Volatility (%)
        risk_free_rate: Risk-free rate (%), default 2

    Returns:
        (return − risk_free) / volatility, clamped to [−10, 10].
        Zero/negative volatility: 0 if excess ≈ 0, +10 if positive, −10 if negative.

    Examples:
        >>> calculate_sharpe_ratio(8.0, 12.0, 2.0)
        0.5
        >>> calculate_sharpe_ratio(5.0, 0.0, 2.0)
        10.0
    """
    excess = sanitize_float(portfolio_return) - sanitize_float(risk_free_rate)
    return _sharpe(excess, sanitize_float(portfolio_volatility), SHARPE_ZERO_EXCESS_TOLERANCE_PCT)


def calculate_expected_return(allocations: Allocations, total_value: float) -> float:
    """Weighted expected annual return (%) from EXPECTED_RETURNS."""
    weights = _weights(allocations, total_value)
    if not weights:
        return 0.0

    def expected() -> Decimal:
        with localcontext(FINANCIAL_CONTEXT):
            return sum(
                (weight * to_decimal(EXPECTED_RETURNS[cls]) for cls, weight in weights.items()),
                Decimal(0),
            )

    return safe_financial_operation(expected, 0.0, "Expected return")


def calculate_portfolio_sharpe_ratio(
    allocations: Allocations,
    total_value: float,
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    stress: MarketStress = MarketStress.NORMAL,
) -> float:
    """
    Sharpe ratio of an allocation using table returns and volatilities.

    Returns 0 when total_value ≤ 0.
    """
    total = sanitize_float(total_value)
    if total <= 0 or not normalize_allocations(allocations):
        return 0.0

    expected_return = calculate_expected_return(allocations, total) / 100
    risk_free = sanitize_float(risk_free_rate, DEFAULT_RISK_FREE_RATE) / 100
    volatility = calculate_portfolio_volatility(allocations, total, stress)

    sharpe = _sharpe(
        expected_return - risk_free, volatility, SHARPE_ZERO_EXCESS_TOLERANCE_PCT / 100
    )
    logger.debug(
        "Portfolio Sharpe: return=%.4f rf=%.4f vol=%.4f sharpe=%.4f",
        expected_return,
        risk_free,
        volatility,
        sharpe,
    )
    return sharpe


def rate_efficiency(sharpe_ratio: float) -> EfficiencyRating:
    """Grade a Sharpe ratio: > 1 excellent, > 0.5 good, > 0 poor."""
    if not math.isfinite(sharpe_ratio):
        return EfficiencyRating.VERY_POOR
    if sharpe_ratio > 1.0:
        return EfficiencyRating.EXCELLENT
    if sharpe_ratio > 0.5:
        return EfficiencyRating.GOOD
    if sharpe_ratio > 0.0:
        return EfficiencyRating.POOR
    return EfficiencyRating.VERY_POOR


def calculate_portfolio_efficiency_score(
    allocations: Allocations,
    total_value: float,
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    stress: MarketStress = MarketStress.NORMAL,
) -> tuple[float, EfficiencyRating]:
    """Portfolio Sharpe ratio rounded to 2 places, with its rating."""
    sharpe = round_half_up(
        calculate_portfolio_sharpe_ratio(allocations, total_value, risk_free_rate, stress), 2
    )
    return sharpe, rate_efficiency(sharpe)
