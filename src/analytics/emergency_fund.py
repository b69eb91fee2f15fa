"""
Emergency fund coverage.

Months of expenses covered by the account the user designated as emergency
fund, graded against adequate / optimal targets (3 and 6 months by default).
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from src.core.math.numerical_safeguards import is_valid_float, round_half_up, sanitize_float

logger = logging.getLogger(__name__)

DEFAULT_ADEQUATE_MONTHS: Final[float] = 3.0
DEFAULT_OPTIMAL_MONTHS: Final[float] = 6.0

# Coverage above this is reported as unusually high
HIGH_COVERAGE_MONTHS: Final[float] = 24.0


class EmergencyFundStatus(str, Enum):
    INSUFFICIENT = "insufficient"
    ADEQUATE = "adequate"
    OPTIMAL = "optimal"


@dataclass(frozen=True)
class EmergencyFundMetrics:
    value: float
    months: float  # one decimal
    status: EmergencyFundStatus
    is_adequate: bool
    is_optimal: bool
    missing_for_optimal: float
    percentage: float  # of the optimal target, capped at 100
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmergencyFundAccountCheck:
    is_valid: bool
    account: Mapping[str, Any] | None = None
    error: str | None = None


EMPTY_METRICS: Final[EmergencyFundMetrics] = EmergencyFundMetrics(
    value=0.0,
    months=0.0,
    status=EmergencyFundStatus.INSUFFICIENT,
    is_adequate=False,
    is_optimal=False,
    missing_for_optimal=0.0,
    percentage=0.0,
)


def calculate_emergency_fund_metrics(
    value: float,
    monthly_expenses: float,
    adequate_months: float = DEFAULT_ADEQUATE_MONTHS,
    optimal_months: float = DEFAULT_OPTIMAL_MONTHS,
) -> EmergencyFundMetrics:
    """
    Coverage metrics for an emergency fund balance.

    Expenses below 1 are treated as 1 to keep the ratio defined.

    Examples:
        >>> m = calculate_emergency_fund_metrics(9000, 2000)
        >>> (m.months, m.status.value, m.missing_for_optimal, m.percentage)
        (4.5, 'adequate', 3000.0, 75.0)
    """
    warnings: list[str] = []

    fund = max(0.0, sanitize_float(value))
    expenses = max(1.0, sanitize_float(monthly_expenses, 1.0))

    adequate = sanitize_float(adequate_months, DEFAULT_ADEQUATE_MONTHS)
    optimal = sanitize_float(optimal_months, DEFAULT_OPTIMAL_MONTHS)
    if adequate <= 0 or optimal <= 0:
        logger.warning("Non-positive emergency fund targets %s/%s, using defaults", adequate, optimal)
        adequate, optimal = DEFAULT_ADEQUATE_MONTHS, DEFAULT_OPTIMAL_MONTHS
    if adequate >= optimal:
        warnings.append(
            f"Emergency fund targets inconsistent: adequate={adequate:g}, optimal={optimal:g}"
        )

    months = fund / expenses

    if months >= optimal:
        status = EmergencyFundStatus.OPTIMAL
    elif months >= adequate:
        status = EmergencyFundStatus.ADEQUATE
    else:
        status = EmergencyFundStatus.INSUFFICIENT

    if months > HIGH_COVERAGE_MONTHS:
        warnings.append(f"Very high emergency fund: {months:.1f} months of expenses")

    missing = max(0.0, optimal * expenses - fund)
    percentage = min(100.0, months / optimal * 100)

    return EmergencyFundMetrics(
        value=fund,
        months=round_half_up(months, 1),
        status=status,
        is_adequate=months >= adequate,
        is_optimal=months >= optimal,
        missing_for_optimal=round_half_up(missing, 2),
        percentage=round_half_up(percentage, 0),
        warnings=tuple(warnings),
    )


def find_emergency_fund_account(
    assets: Mapping[str, Sequence[Mapping[str, Any]]],
    section: str,
    account_id: int | str,
) -> EmergencyFundAccountCheck:
    """
    Locate the designated account inside an asset snapshot.

    Args:
        assets: Snapshot mapping section name → list of account records
        section: Section holding the account (e.g. 'cash')
        account_id: Account id within the section
    """
    if not section:
        return EmergencyFundAccountCheck(False, error="Emergency fund section not set")

    accounts = assets.get(section)
    if not isinstance(accounts, Sequence) or isinstance(accounts, str):
        return EmergencyFundAccountCheck(False, error=f"Section {section!r} not found")

    for account in accounts:
        if isinstance(account, Mapping) and account.get("id") == account_id:
            amount = account.get("amount", account.get("value"))
            if not is_valid_float(amount):
                return EmergencyFundAccountCheck(
                    False, account, error=f"Account {account_id!r} has no valid amount"
                )
            return EmergencyFundAccountCheck(True, account)

    return EmergencyFundAccountCheck(
        False, error=f"Account {account_id!r} not found in section {section!r}"
    )


def calculate_emergency_fund_from_assets(
    assets: Mapping[str, Sequence[Mapping[str, Any]]],
    section: str,
    account_id: int | str,
    monthly_expenses: float,
    adequate_months: float = DEFAULT_ADEQUATE_MONTHS,
    optimal_months: float = DEFAULT_OPTIMAL_MONTHS,
) -> EmergencyFundMetrics:
    """Metrics for the designated account; EMPTY_METRICS when it cannot be found."""
    check = find_emergency_fund_account(assets, section, account_id)
    if not check.is_valid or check.account is None:
        logger.warning("Emergency fund account unavailable: %s", check.error)
        return EMPTY_METRICS

    amount = check.account.get("amount", check.account.get("value"))
    return calculate_emergency_fund_metrics(amount, monthly_expenses, adequate_months, optimal_months)
