"""
Lots — Cost-basis lot queue

A Lot is one purchase tranche still (partly) held. Sales consume open lots
in the order dictated by the cost basis method:

    FIFO          oldest trade date first
    LIFO          newest trade date first
    AVERAGE_COST  all open lots collapse into one lot at the weighted
                  average unit price, dated at the earliest lot

Ties on the trade date keep purchase order (LIFO consumes the later
same-day purchase first). All quantities and prices are Decimal under
FINANCIAL_CONTEXT.

CRITICAL INVARIANTS:
1. Σ remaining quantity == Σ purchased quantity − Σ consumed quantity
2. A lot's quantity only decreases; zero-quantity lots leave the queue
3. Overselling consumes what is available and reports the remainder,
   it never raises
"""

import datetime as dt
import functools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal, localcontext
from typing import Final

from src.core.domain.transaction import CostBasisMethod, Transaction
from src.core.math.decimal_arithmetic import FINANCIAL_CONTEXT, to_decimal

logger = logging.getLogger(__name__)

CONSOLIDATED_LOT_ID: Final[str] = "consolidated-average"

_ZERO: Final[Decimal] = Decimal(0)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Lot:
    """Open purchase tranche."""

    lot_id: str
    date: dt.date | None  # None when the source date was unparseable
    quantity: Decimal
    unit_price: Decimal
    total_cost: Decimal
    commissions: Decimal = _ZERO
    sequence: int = 0  # purchase order, breaks date ties

    def reduced_to(self, quantity: Decimal) -> "Lot":
        """Same lot with a smaller quantity; total cost follows the unit price."""
        with localcontext(FINANCIAL_CONTEXT):
            return replace(self, quantity=quantity, total_cost=self.unit_price * quantity)

    @classmethod
    def from_purchase(
        cls,
        transaction: Transaction,
        sequence: int = 0,
        trade_date: dt.date | None = None,
        prefer_unit_price: bool = False,
    ) -> "Lot":
        """
        Lot for a purchase: unit price = amount / quantity, total cost = amount.

        With prefer_unit_price an explicit positive unit_price on the
        transaction is used instead. Replayed histories never set it, so
        purchases and sales there are both priced from amount / quantity.
        """
        with localcontext(FINANCIAL_CONTEXT):
            quantity = to_decimal(transaction.quantity)
            amount = to_decimal(transaction.amount)
            explicit_price = transaction.unit_price is not None and transaction.unit_price > 0
            if prefer_unit_price and explicit_price:
                unit_price = to_decimal(transaction.unit_price)
                total_cost = unit_price * quantity
            else:
                unit_price = amount / quantity if quantity > 0 else _ZERO
                total_cost = amount
        return cls(
            lot_id=str(transaction.id),
            date=trade_date if trade_date is not None else transaction.parsed_date(),
            quantity=quantity,
            unit_price=unit_price,
            total_cost=total_cost,
            commissions=to_decimal(transaction.commissions),
            sequence=sequence,
        )


@dataclass(frozen=True)
class ConsumedTranche:
    """Part of a lot consumed by one sale."""

    lot_id: str
    date: dt.date | None
    quantity: Decimal
    unit_price: Decimal
    cost_basis: Decimal
    realized_gain_loss: Decimal


@dataclass(frozen=True)
class SaleOutcome:
    """Effect of one sale on a set of open lots."""

    cost_basis: Decimal
    quantity_consumed: Decimal
    realized_gain_loss: Decimal
    unsold_quantity: Decimal
    consumed: tuple[ConsumedTranche, ...]
    remaining_lots: tuple[Lot, ...]
    warning: str | None = None


def format_quantity(value: Decimal) -> str:
    """Plain notation without trailing zeros (Decimal('50.00') → '50')."""
    return format(value.normalize(), "f")


# =============================================================================
# ORDERING
# =============================================================================


def _compare_by_date(first: Lot, second: Lot, descending: bool) -> int:
    if first.date is None or second.date is None:
        logger.error(
            "Invalid date comparing lots %s and %s, treating as same day",
            first.lot_id,
            second.lot_id,
        )
        return 0
    if first.date == second.date:
        return 0
    result = -1 if first.date < second.date else 1
    return -result if descending else result


def _ordering(lots: Sequence[Lot], method: CostBasisMethod) -> list[int]:
    """Indices of lots in consumption order."""
    indices = list(range(len(lots)))
    descending = method is CostBasisMethod.LIFO

    if all(lot.date is not None for lot in lots):
        return sorted(
            indices,
            key=lambda i: (lots[i].date, lots[i].sequence, i),
            reverse=descending,
        )

    # Invalid dates compare as ties; sorted() is stable so ties keep purchase order
    ordered = sorted(indices, key=lambda i: (lots[i].sequence, i), reverse=descending)
    comparator = functools.cmp_to_key(
        lambda i, j: _compare_by_date(lots[i], lots[j], descending)
    )
    return sorted(ordered, key=comparator)


def consolidate_lots(lots: Sequence[Lot]) -> Lot | None:
    """
    Collapse lots into one at the weighted average unit price.

    Returns None when there is no open quantity.
    """
    open_lots = [lot for lot in lots if lot.quantity > 0]
    if not open_lots:
        return None

    with localcontext(FINANCIAL_CONTEXT):
        quantity = sum((lot.quantity for lot in open_lots), _ZERO)
        total_cost = sum((lot.total_cost for lot in open_lots), _ZERO)
        commissions = sum((lot.commissions for lot in open_lots), _ZERO)
        unit_price = total_cost / quantity

    dates = [lot.date for lot in open_lots if lot.date is not None]
    return Lot(
        lot_id=CONSOLIDATED_LOT_ID,
        date=min(dates) if dates else None,
        quantity=quantity,
        unit_price=unit_price,
        total_cost=total_cost,
        commissions=commissions,
        sequence=min(lot.sequence for lot in open_lots),
    )


def order_lots(lots: Sequence[Lot], method: CostBasisMethod) -> list[Lot]:
    """
    Open lots in consumption order.

    AVERAGE_COST returns a single consolidated lot when more than one lot is
    open.
    """
    open_lots = [lot for lot in lots if lot.quantity > 0]
    if method is CostBasisMethod.AVERAGE_COST:
        if len(open_lots) <= 1:
            return open_lots
        consolidated = consolidate_lots(open_lots)
        return [consolidated] if consolidated is not None else []
    return [open_lots[i] for i in _ordering(open_lots, method)]


# =============================================================================
# CONSUMPTION
# =============================================================================


def consume_lots(
    lots: Sequence[Lot],
    sale_quantity: Decimal | float,
    sale_price: Decimal | float,
    method: CostBasisMethod,
) -> SaleOutcome:
    """
    Consume open lots for one sale.

    Args:
        lots: Open lots in purchase order
        sale_quantity: Units sold
        sale_price: Price per unit sold
        method: Consumption order

    Returns:
        SaleOutcome; remaining_lots stay in purchase order (a single
        consolidated lot for AVERAGE_COST)

    Examples:
        100 @ 10, 100 @ 20, 100 @ 30, sell 150:
        FIFO cost basis 2000, LIFO 4000, AVERAGE_COST 3000.
    """
    method = CostBasisMethod(method)

    with localcontext(FINANCIAL_CONTEXT):
        to_sell = to_decimal(sale_quantity)
        price = to_decimal(sale_price)

        working = [lot for lot in lots if lot.quantity > 0]
        if method is CostBasisMethod.AVERAGE_COST and len(working) > 1:
            consolidated = consolidate_lots(working)
            working = [consolidated] if consolidated is not None else []

        if to_sell <= 0:
            return SaleOutcome(_ZERO, _ZERO, _ZERO, _ZERO, (), tuple(working))

        order = list(range(len(working)))
        if method is not CostBasisMethod.AVERAGE_COST:
            order = _ordering(working, method)

        quantities = [lot.quantity for lot in working]
        consumed: list[ConsumedTranche] = []
        remaining = to_sell
        cost_basis = _ZERO
        realized = _ZERO

        for index in order:
            if remaining <= 0:
                break
            lot = working[index]
            taken = min(remaining, quantities[index])
            if taken <= 0:
                continue

            tranche_cost = lot.unit_price * taken
            tranche_gain = (price - lot.unit_price) * taken
            consumed.append(
                ConsumedTranche(
                    lot_id=lot.lot_id,
                    date=lot.date,
                    quantity=taken,
                    unit_price=lot.unit_price,
                    cost_basis=tranche_cost,
                    realized_gain_loss=tranche_gain,
                )
            )
            cost_basis += tranche_cost
            realized += tranche_gain
            quantities[index] -= taken
            remaining -= taken

        remaining_lots = tuple(
            lot if quantity == lot.quantity else lot.reduced_to(quantity)
            for lot, quantity in zip(working, quantities)
            if quantity > 0
        )

        warning = None
        if remaining > 0:
            warning = f"Insufficient shares for sale. Remaining: {format_quantity(remaining)}"
            logger.warning(warning)

        return SaleOutcome(
            cost_basis=cost_basis,
            quantity_consumed=to_sell - remaining,
            realized_gain_loss=realized,
            unsold_quantity=remaining,
            consumed=tuple(consumed),
            remaining_lots=remaining_lots,
            warning=warning,
        )


# =============================================================================
# LOT QUEUE
# =============================================================================


class LotQueue:
    """
    Open lots of one instrument.

    Built fresh for each calculation; purchases append, sales consume.
    """

    def __init__(self, instrument: str, method: CostBasisMethod = CostBasisMethod.FIFO):
        self.instrument = instrument
        self.method = CostBasisMethod(method)
        self._lots: list[Lot] = []
        self._sequence = 0

    @property
    def lots(self) -> tuple[Lot, ...]:
        return tuple(self._lots)

    @property
    def open_quantity(self) -> Decimal:
        with localcontext(FINANCIAL_CONTEXT):
            return sum((lot.quantity for lot in self._lots), _ZERO)

    @property
    def open_cost(self) -> Decimal:
        with localcontext(FINANCIAL_CONTEXT):
            return sum((lot.total_cost for lot in self._lots), _ZERO)

    def add_purchase(self, transaction: Transaction, trade_date: dt.date | None = None) -> Lot:
        lot = Lot.from_purchase(transaction, self._sequence, trade_date)
        self._sequence += 1
        if lot.quantity > 0:
            self._lots.append(lot)
        return lot

    def sell(self, quantity: Decimal | float, sale_price: Decimal | float) -> SaleOutcome:
        outcome = consume_lots(self._lots, quantity, sale_price, self.method)
        self._lots = list(outcome.remaining_lots)
        return outcome
