"""
Capital Gains — Realized gains and taxes per sale

Transactions are grouped per instrument (ticker → ISIN → "unknown"),
replayed chronologically through a LotQueue, and every sale's realized gain
is taxed at the rate of its asset type:

    whitelist bonds   TaxSettings.whitelist_bonds_tax_rate  (12.5% default)
    everything else   TaxSettings.capital_gains_tax_rate    (26% default)

Losses enter total_gains (and the yearly totals) but are never taxed and
never carried forward. Sales of exempt asset types still consume lots but
are excluded from gains and taxes.

CRITICAL INVARIANTS:
1. tax == 0 for every sale with gain ≤ 0
2. total_taxes == Σ taxable_sales[i].tax
3. proceeds − cost_basis == capital_gain for every sale
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, localcontext
from types import MappingProxyType
from typing import Any

from src.accounting.lots import LotQueue
from src.accounting.transactions import group_by_instrument, prepare_transactions
from src.core.domain.settings import EngineSettings, TaxSettings
from src.core.domain.transaction import AssetType, CostBasisMethod, Transaction
from src.core.math.calculation_guard import run_guarded, safe_financial_operation
from src.core.math.decimal_arithmetic import FINANCIAL_CONTEXT, to_decimal, to_float
from src.core.math.numerical_safeguards import clamp, normalize_big_number, sanitize_float

logger = logging.getLogger(__name__)

TransactionInput = Transaction | Mapping[str, Any]

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class TaxableSale:
    """One sale with its realized gain and tax."""

    transaction: Transaction
    capital_gain: float
    tax: float
    cost_basis: float
    proceeds: float
    tax_rate: float  # percent
    quantity_sold: float
    year: int


@dataclass(frozen=True)
class AssetTypeBreakdown:
    gains: float
    taxes: float


@dataclass(frozen=True)
class YearlyTaxSummary:
    year: int
    total_capital_gains: float  # losses included
    total_taxes: float
    net_gains: float  # gains after taxes
    standard_asset_gains: float
    whitelist_asset_gains: float
    standard_taxes: float
    whitelist_taxes: float
    transaction_count: int  # sales in the year
    taxable_transaction_count: int  # sales with a positive gain


@dataclass(frozen=True)
class CapitalGainsSummary:
    total_sales: int
    taxable_sales: int
    exempt_sales: int
    total_proceeds: float
    total_cost_basis: float


@dataclass(frozen=True)
class CapitalGainsReport:
    total_taxes: float
    total_gains: float
    net_gains: float
    breakdown: Mapping[AssetType, AssetTypeBreakdown]
    taxable_sales: tuple[TaxableSale, ...]
    summary: CapitalGainsSummary
    by_year: Mapping[int, YearlyTaxSummary]
    method: CostBasisMethod
    warnings: tuple[str, ...] = ()


def _empty_report(method: CostBasisMethod, warnings: tuple[str, ...] = ()) -> CapitalGainsReport:
    return CapitalGainsReport(
        total_taxes=0.0,
        total_gains=0.0,
        net_gains=0.0,
        breakdown=MappingProxyType({}),
        taxable_sales=(),
        summary=CapitalGainsSummary(0, 0, 0, 0.0, 0.0),
        by_year=MappingProxyType({}),
        method=method,
        warnings=warnings,
    )


# =============================================================================
# RATES
# =============================================================================


def get_tax_rate_for_asset(
    asset_type: AssetType | str,
    standard_rate: float = 26.0,
    whitelist_rate: float = 12.5,
) -> float:
    """
    Applicable capital-gains rate (percent) for an asset type.

    Examples:
        >>> get_tax_rate_for_asset("Obbligazione whitelist")
        12.5
        >>> get_tax_rate_for_asset(AssetType.ETF)
        26.0
    """
    if AssetType.from_label(asset_type) is AssetType.WHITELIST_BOND:
        return float(whitelist_rate)
    return float(standard_rate)


def calculate_tax_for_asset_type(
    capital_gain: float,
    asset_type: AssetType | str,
    standard_rate: float = 26.0,
    whitelist_rate: float = 12.5,
) -> float:
    """
    Tax due on one realized gain; 0 for losses.

    Examples:
        >>> calculate_tax_for_asset_type(1000, "Azione")
        260.0
        >>> calculate_tax_for_asset_type(-500, "Azione")
        0.0
    """
    gain = sanitize_float(capital_gain)
    if gain <= 0:
        return 0.0
    rate = get_tax_rate_for_asset(asset_type, standard_rate, whitelist_rate)
    return safe_financial_operation(
        lambda: to_decimal(gain) * to_decimal(rate) / _HUNDRED,
        0.0,
        "Capital gains tax",
    )


# =============================================================================
# AGGREGATION
# =============================================================================


class _YearAccumulator:
    """Mutable per-year totals, frozen into YearlyTaxSummary at the end."""

    def __init__(self, year: int):
        self.year = year
        self.gains = _ZERO
        self.taxes = _ZERO
        self.standard_gains = _ZERO
        self.whitelist_gains = _ZERO
        self.standard_taxes = _ZERO
        self.whitelist_taxes = _ZERO
        self.sales = 0
        self.taxable_sales = 0

    def add(self, asset_type: AssetType, gain: Decimal, tax: Decimal) -> None:
        self.gains += gain
        self.taxes += tax
        if asset_type is AssetType.WHITELIST_BOND:
            self.whitelist_gains += gain
            self.whitelist_taxes += tax
        else:
            self.standard_gains += gain
            self.standard_taxes += tax
        self.sales += 1
        if gain > 0:
            self.taxable_sales += 1

    def freeze(self) -> YearlyTaxSummary:
        return YearlyTaxSummary(
            year=self.year,
            total_capital_gains=to_float(self.gains),
            total_taxes=to_float(self.taxes),
            net_gains=to_float(self.gains - self.taxes),
            standard_asset_gains=to_float(self.standard_gains),
            whitelist_asset_gains=to_float(self.whitelist_gains),
            standard_taxes=to_float(self.standard_taxes),
            whitelist_taxes=to_float(self.whitelist_taxes),
            transaction_count=self.sales,
            taxable_transaction_count=self.taxable_sales,
        )


def _aggregate(transactions: Iterable[TransactionInput], settings: TaxSettings) -> CapitalGainsReport:
    dated, warnings = prepare_transactions(transactions)
    method = settings.cost_basis_method

    sales: list[TaxableSale] = []
    breakdown: dict[AssetType, list[Decimal]] = {}
    years: dict[int, _YearAccumulator] = {}
    total_gains = _ZERO
    total_taxes = _ZERO
    total_proceeds = _ZERO
    total_cost_basis = _ZERO
    sale_count = 0
    exempt_count = 0

    with localcontext(FINANCIAL_CONTEXT):
        for instrument, items in group_by_instrument(dated).items():
            queue = LotQueue(instrument, method)

            for item in items:
                transaction = item.transaction
                if transaction.is_purchase:
                    queue.add_purchase(transaction, item.trade_date)
                    continue

                sale_count += 1
                sale_price = to_decimal(transaction.amount) / to_decimal(transaction.quantity)
                outcome = queue.sell(transaction.quantity, sale_price)
                if outcome.warning:
                    warnings.append(f"{instrument}: {outcome.warning}")

                if settings.is_exempt(transaction.asset_type):
                    exempt_count += 1
                    continue

                gain = outcome.realized_gain_loss
                proceeds = sale_price * outcome.quantity_consumed
                rate = to_decimal(settings.rate_for(transaction.asset_type))
                tax = gain * rate / _HUNDRED if gain > 0 else _ZERO

                total_gains += gain
                total_taxes += tax
                total_proceeds += proceeds
                total_cost_basis += outcome.cost_basis

                bucket = breakdown.setdefault(transaction.asset_type, [_ZERO, _ZERO])
                bucket[0] += gain
                bucket[1] += tax

                year = item.trade_date.year
                years.setdefault(year, _YearAccumulator(year)).add(transaction.asset_type, gain, tax)

                sales.append(
                    TaxableSale(
                        transaction=transaction,
                        capital_gain=to_float(gain),
                        tax=to_float(tax),
                        cost_basis=to_float(outcome.cost_basis),
                        proceeds=to_float(proceeds),
                        tax_rate=to_float(rate),
                        quantity_sold=to_float(outcome.quantity_consumed),
                        year=year,
                    )
                )

    return CapitalGainsReport(
        total_taxes=to_float(total_taxes),
        total_gains=to_float(total_gains),
        net_gains=to_float(total_gains - total_taxes),
        breakdown=MappingProxyType(
            {
                asset_type: AssetTypeBreakdown(to_float(gains), to_float(taxes))
                for asset_type, (gains, taxes) in breakdown.items()
            }
        ),
        taxable_sales=tuple(sales),
        summary=CapitalGainsSummary(
            total_sales=sale_count,
            taxable_sales=sum(1 for sale in sales if sale.capital_gain > 0),
            exempt_sales=exempt_count,
            total_proceeds=to_float(total_proceeds),
            total_cost_basis=to_float(total_cost_basis),
        ),
        by_year=MappingProxyType({year: acc.freeze() for year, acc in sorted(years.items())}),
        method=method,
        warnings=tuple(warnings),
    )


def calculate_capital_gains_tax(
    transactions: Iterable[TransactionInput],
    settings: TaxSettings | EngineSettings | None = None,
) -> CapitalGainsReport:
    """
    Realized gains and taxes over a transaction history.

    Args:
        transactions: Purchases and sales of any number of instruments
        settings: Tax settings (or the full EngineSettings bundle);
            defaults to TaxSettings()

    Returns:
        CapitalGainsReport. An arithmetic failure yields an empty report
        carrying the error as warning.
    """
    if isinstance(settings, EngineSettings):
        settings = settings.tax
    settings = settings or TaxSettings()

    outcome = run_guarded(
        lambda: _aggregate(transactions, settings),
        _empty_report(settings.cost_basis_method),
        "Capital gains tax",
    )
    if outcome.used_fallback:
        return _empty_report(settings.cost_basis_method, outcome.errors)
    return outcome.value


def analyze_taxes_by_year(
    transactions: Iterable[TransactionInput],
    standard_rate: float = 26.0,
    whitelist_rate: float = 12.5,
    method: CostBasisMethod | str = CostBasisMethod.LIFO,
) -> dict[int, YearlyTaxSummary]:
    """
    Per-year tax analysis.

    Rates are normalized (non-finite → 0) and clamped to [0, 100].
    Years without sales are absent from the result.
    """
    standard = normalize_big_number(standard_rate, "capital gains tax rate")
    whitelist = normalize_big_number(whitelist_rate, "whitelist bonds tax rate")
    settings = TaxSettings(
        capital_gains_tax_rate=clamp(standard, 0.0, 100.0),
        whitelist_bonds_tax_rate=clamp(whitelist, 0.0, 100.0),
        cost_basis_method=CostBasisMethod(method),
    )
    return dict(calculate_capital_gains_tax(transactions, settings).by_year)
