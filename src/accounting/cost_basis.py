"""
Cost Basis — Remaining cost, realized and unrealized gains

Replays an instrument's transactions chronologically through a LotQueue and
reports what is still held, at what cost, and what the sales realized.

Two entry points:
- calculate_cost_basis(transactions, current_price, method): full replay of
  purchases and sales of one instrument
- apply_cost_basis_method(transactions, sold_quantity, method): one-shot
  consumption of a quantity from the purchase transactions

Sale price per unit is amount / quantity of the sale transaction.
Commissions are tallied but do not enter the cost basis.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any

from src.accounting.lots import (
    ConsumedTranche,
    Lot,
    LotQueue,
    consume_lots,
)
from src.accounting.transactions import coerce_transactions, prepare_transactions
from src.core.domain.transaction import CostBasisMethod, Transaction
from src.core.math.calculation_guard import run_guarded
from src.core.math.decimal_arithmetic import FINANCIAL_CONTEXT, to_decimal, to_float
from src.core.math.numerical_safeguards import sanitize_float

logger = logging.getLogger(__name__)

TransactionInput = Transaction | Mapping[str, Any]


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class CostBasisResult:
    """Position summary after replaying all transactions."""

    cost_basis: float  # cost of the remaining lots
    unit_cost: float
    realized_gain_loss: float
    unrealized_gain_loss: float
    current_value: float
    remaining_quantity: float
    total_commissions: float
    method: CostBasisMethod
    warnings: tuple[str, ...] = ()
    remaining_lots: tuple[Lot, ...] = ()


@dataclass(frozen=True)
class CostBasisCalculation:
    """Result of consuming a quantity from purchase transactions."""

    cost_basis: float
    quantity: float  # quantity actually consumed
    transactions: tuple[ConsumedTranche, ...]
    remaining_lots: tuple[Lot, ...] = ()
    warnings: tuple[str, ...] = ()


def _empty_result(method: CostBasisMethod, warnings: tuple[str, ...] = ()) -> CostBasisResult:
    return CostBasisResult(
        cost_basis=0.0,
        unit_cost=0.0,
        realized_gain_loss=0.0,
        unrealized_gain_loss=0.0,
        current_value=0.0,
        remaining_quantity=0.0,
        total_commissions=0.0,
        method=method,
        warnings=warnings,
    )


# =============================================================================
# FULL REPLAY
# =============================================================================


def _replay(
    transactions: Iterable[TransactionInput],
    current_price: float,
    method: CostBasisMethod,
) -> CostBasisResult:
    dated, warnings = prepare_transactions(transactions)

    instruments = {item.transaction.instrument_key for item in dated}
    if len(instruments) > 1:
        message = f"Transactions span several instruments ({', '.join(sorted(instruments))})"
        logger.warning(message)
        warnings.append(message)

    queue = LotQueue(instrument=next(iter(instruments), "unknown"), method=method)
    realized = Decimal(0)
    commissions = Decimal(0)

    with localcontext(FINANCIAL_CONTEXT):
        for item in dated:
            transaction = item.transaction
            commissions += to_decimal(transaction.commissions)

            if transaction.is_purchase:
                queue.add_purchase(transaction, item.trade_date)
                continue

            sale_price = to_decimal(transaction.amount) / to_decimal(transaction.quantity)
            outcome = queue.sell(transaction.quantity, sale_price)
            realized += outcome.realized_gain_loss
            if outcome.warning:
                warnings.append(outcome.warning)

        remaining_quantity = queue.open_quantity
        cost_basis = queue.open_cost
        price = to_decimal(sanitize_float(current_price))
        current_value = remaining_quantity * price
        unit_cost = cost_basis / remaining_quantity if remaining_quantity > 0 else Decimal(0)

    return CostBasisResult(
        cost_basis=to_float(cost_basis),
        unit_cost=to_float(unit_cost),
        realized_gain_loss=to_float(realized),
        unrealized_gain_loss=to_float(current_value - cost_basis),
        current_value=to_float(current_value),
        remaining_quantity=to_float(remaining_quantity),
        total_commissions=to_float(commissions),
        method=method,
        warnings=tuple(warnings),
        remaining_lots=queue.lots,
    )


def calculate_cost_basis(
    transactions: Iterable[TransactionInput],
    current_price: float,
    method: CostBasisMethod | str = CostBasisMethod.FIFO,
) -> CostBasisResult:
    """
    Cost basis of the open position of one instrument.

    Args:
        transactions: Purchases and sales (models or raw camelCase mappings)
        current_price: Market price per unit
        method: FIFO, LIFO or AVERAGE_COST

    Returns:
        CostBasisResult. Invalid dates and zero quantities are excluded with
        warnings; an arithmetic failure yields an all-zero result with the
        error as warning.

    Examples:
        Buy 100 @ 10 and 100 @ 20, sell 50 @ 25, price 30, FIFO:
        cost_basis 2500, realized 750, unrealized 2000.
    """
    method = CostBasisMethod(method)
    outcome = run_guarded(
        lambda: _replay(transactions, current_price, method),
        _empty_result(method),
        f"{method.value} cost basis",
    )
    if outcome.used_fallback:
        return _empty_result(method, outcome.errors)
    return outcome.value


def calculate_fifo_cost_basis(
    transactions: Iterable[TransactionInput], current_price: float
) -> CostBasisResult:
    return calculate_cost_basis(transactions, current_price, CostBasisMethod.FIFO)


def calculate_lifo_cost_basis(
    transactions: Iterable[TransactionInput], current_price: float
) -> CostBasisResult:
    return calculate_cost_basis(transactions, current_price, CostBasisMethod.LIFO)


def calculate_average_cost_basis(
    transactions: Iterable[TransactionInput], current_price: float
) -> CostBasisResult:
    return calculate_cost_basis(transactions, current_price, CostBasisMethod.AVERAGE_COST)


# =============================================================================
# ONE-SHOT CONSUMPTION
# =============================================================================


def apply_cost_basis_method(
    transactions: Iterable[TransactionInput],
    sold_quantity: float,
    method: CostBasisMethod | str,
) -> CostBasisCalculation:
    """
    Cost basis of selling sold_quantity from the purchase transactions.

    Purchases with unparseable dates still form lots; ordering treats their
    dates as ties (logged) rather than failing.

    Examples:
        100 @ 10, 100 @ 20, 100 @ 30, sell 150:
        FIFO 2000 (2 tranches), LIFO 4000 (2 tranches), AVERAGE_COST 3000 (1 tranche).
    """
    method = CostBasisMethod(method)
    parsed, warnings = coerce_transactions(transactions)

    lots = [
        Lot.from_purchase(transaction, sequence, prefer_unit_price=True)
        for sequence, transaction in enumerate(parsed)
        if transaction.is_purchase and transaction.quantity > 0
    ]

    outcome = consume_lots(lots, sanitize_float(sold_quantity), 0, method)
    if outcome.warning:
        warnings.append(outcome.warning)

    return CostBasisCalculation(
        cost_basis=to_float(outcome.cost_basis),
        quantity=to_float(outcome.quantity_consumed),
        transactions=outcome.consumed,
        remaining_lots=outcome.remaining_lots,
        warnings=tuple(warnings),
    )
