"""
Tests for the lot queue

Checks:
1. Lot construction from purchases
2. FIFO / LIFO / AVERAGE_COST consumption order
3. Same-day and invalid-date tie handling
4. Overselling reports the remainder without raising
5. Quantity conservation across sales
"""

import datetime as dt
from decimal import Decimal

import pytest

from src.accounting.lots import (
    CONSOLIDATED_LOT_ID,
    Lot,
    LotQueue,
    consolidate_lots,
    consume_lots,
    format_quantity,
    order_lots,
)
from src.core.domain.transaction import CostBasisMethod, Transaction

# =============================================================================
# FIXTURES
# =============================================================================


def _lot(lot_id: str, day: int | None, quantity: int, price: int, sequence: int) -> Lot:
    return Lot(
        lot_id=lot_id,
        date=dt.date(2024, 1, day) if day is not None else None,
        quantity=Decimal(quantity),
        unit_price=Decimal(price),
        total_cost=Decimal(quantity * price),
        sequence=sequence,
    )


@pytest.fixture
def three_lots() -> list[Lot]:
    """100 @ 10, 100 @ 20, 100 @ 30 on consecutive days"""
    return [
        _lot("a", 1, 100, 10, 0),
        _lot("b", 2, 100, 20, 1),
        _lot("c", 3, 100, 30, 2),
    ]


# =============================================================================
# LOT
# =============================================================================


class TestLotFromPurchase:
    """Tests for Lot.from_purchase"""

    def test_unit_price_from_amount(self) -> None:
        tx = Transaction(
            id=7,
            date="2024-01-10",
            transaction_type="purchase",
            quantity=100,
            amount=1000,
            commissions=5,
        )
        lot = Lot.from_purchase(tx, sequence=3)

        assert lot.lot_id == "7"
        assert lot.date == dt.date(2024, 1, 10)
        assert lot.unit_price == Decimal(10)
        assert lot.total_cost == Decimal(1000)
        assert lot.commissions == Decimal(5)
        assert lot.sequence == 3

    def test_amount_overrides_stored_unit_price(self) -> None:
        tx = Transaction(
            id=1,
            date="2024-01-10",
            transaction_type="purchase",
            quantity=10,
            amount=100,
            unit_price=12,
        )
        lot = Lot.from_purchase(tx)

        assert lot.unit_price == Decimal(10)
        assert lot.total_cost == Decimal(100)

    def test_preferred_unit_price(self) -> None:
        tx = Transaction(
            id=1,
            date="2024-01-10",
            transaction_type="purchase",
            quantity=10,
            amount=100,
            unit_price=12,
        )
        lot = Lot.from_purchase(tx, prefer_unit_price=True)

        assert lot.unit_price == Decimal(12)
        assert lot.total_cost == Decimal(120)

    def test_invalid_date_kept_as_none(self) -> None:
        tx = Transaction(id=1, date="yesterday", transaction_type="purchase", quantity=1, amount=1)
        assert Lot.from_purchase(tx).date is None

    def test_reduced_to(self) -> None:
        lot = _lot("a", 1, 100, 10, 0).reduced_to(Decimal(40))
        assert lot.quantity == 40
        assert lot.total_cost == 400


# =============================================================================
# CONSUMPTION ORDER
# =============================================================================


class TestConsumeLots:
    """Tests for consume_lots"""

    def test_fifo(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 150, 25, CostBasisMethod.FIFO)

        assert outcome.cost_basis == 2000
        assert outcome.realized_gain_loss == 1750
        assert [t.lot_id for t in outcome.consumed] == ["a", "b"]
        assert [(lot.lot_id, lot.quantity) for lot in outcome.remaining_lots] == [
            ("b", 50),
            ("c", 100),
        ]

    def test_lifo(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 150, 25, CostBasisMethod.LIFO)

        assert outcome.cost_basis == 4000
        assert outcome.realized_gain_loss == -250
        assert [t.lot_id for t in outcome.consumed] == ["c", "b"]

    def test_lifo_remaining_lots_in_purchase_order(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 150, 25, CostBasisMethod.LIFO)

        assert [(lot.lot_id, lot.quantity) for lot in outcome.remaining_lots] == [
            ("a", 100),
            ("b", 50),
        ]

    def test_average_cost(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 150, 25, CostBasisMethod.AVERAGE_COST)

        assert outcome.cost_basis == 3000
        assert len(outcome.consumed) == 1
        assert outcome.consumed[0].unit_price == 20

        (remaining,) = outcome.remaining_lots
        assert remaining.lot_id == CONSOLIDATED_LOT_ID
        assert remaining.quantity == 150
        assert remaining.total_cost == 3000
        assert remaining.date == dt.date(2024, 1, 1)

    def test_method_accepts_string(self, three_lots: list[Lot]) -> None:
        assert consume_lots(three_lots, 150, 25, "LIFO").cost_basis == 4000  # type: ignore[arg-type]

    def test_input_lots_unchanged(self, three_lots: list[Lot]) -> None:
        consume_lots(three_lots, 150, 25, CostBasisMethod.FIFO)
        assert [lot.quantity for lot in three_lots] == [100, 100, 100]

    def test_zero_sale(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 0, 25, CostBasisMethod.FIFO)

        assert outcome.cost_basis == 0
        assert outcome.consumed == ()
        assert len(outcome.remaining_lots) == 3


class TestOrdering:
    """Date ties and invalid dates"""

    def test_same_day_lifo_takes_later_purchase(self) -> None:
        lots = [_lot("first", 5, 10, 10, 0), _lot("second", 5, 10, 20, 1)]
        outcome = consume_lots(lots, 10, 25, CostBasisMethod.LIFO)
        assert outcome.consumed[0].lot_id == "second"

    def test_same_day_fifo_takes_earlier_purchase(self) -> None:
        lots = [_lot("first", 5, 10, 10, 0), _lot("second", 5, 10, 20, 1)]
        outcome = consume_lots(lots, 10, 25, CostBasisMethod.FIFO)
        assert outcome.consumed[0].lot_id == "first"

    def test_date_beats_input_order(self) -> None:
        lots = [_lot("late", 20, 10, 10, 0), _lot("early", 2, 10, 20, 1)]
        assert [lot.lot_id for lot in order_lots(lots, CostBasisMethod.FIFO)] == ["early", "late"]
        assert [lot.lot_id for lot in order_lots(lots, CostBasisMethod.LIFO)] == ["late", "early"]

    def test_invalid_dates_lifo_uses_purchase_order(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        lots = [_lot("a", None, 100, 10, 0), _lot("b", None, 100, 20, 1), _lot("c", None, 100, 30, 2)]
        with caplog.at_level("ERROR"):
            outcome = consume_lots(lots, 150, 25, CostBasisMethod.LIFO)

        assert outcome.cost_basis == 4000
        assert "Invalid date" in caplog.text

    def test_invalid_dates_fifo_uses_purchase_order(self) -> None:
        lots = [_lot("a", None, 100, 10, 0), _lot("b", None, 100, 20, 1)]
        outcome = consume_lots(lots, 150, 25, CostBasisMethod.FIFO)
        assert outcome.cost_basis == 2000

    def test_average_cost_order_is_single_lot(self, three_lots: list[Lot]) -> None:
        (lot,) = order_lots(three_lots, CostBasisMethod.AVERAGE_COST)
        assert lot.unit_price == 20


class TestConsolidateLots:
    """Tests for consolidate_lots"""

    def test_weighted_average(self) -> None:
        lot = consolidate_lots([_lot("a", 3, 10, 10, 0), _lot("b", 1, 30, 30, 1)])

        assert lot is not None
        assert lot.quantity == 40
        assert lot.unit_price == 25
        assert lot.date == dt.date(2024, 1, 1)

    def test_nothing_open(self) -> None:
        assert consolidate_lots([]) is None
        assert consolidate_lots([_lot("a", 1, 0, 10, 0)]) is None


# =============================================================================
# OVERSELL / CONSERVATION
# =============================================================================


class TestOversell:
    """Selling more than is held"""

    def test_consumes_available_and_warns(self, three_lots: list[Lot]) -> None:
        outcome = consume_lots(three_lots, 400, 25, CostBasisMethod.FIFO)

        assert outcome.quantity_consumed == 300
        assert outcome.unsold_quantity == 100
        assert outcome.cost_basis == 6000
        assert outcome.remaining_lots == ()
        assert outcome.warning == "Insufficient shares for sale. Remaining: 100"

    def test_empty_queue(self) -> None:
        outcome = consume_lots([], 5, 25, CostBasisMethod.LIFO)
        assert outcome.unsold_quantity == 5
        assert outcome.warning is not None

    def test_format_quantity(self) -> None:
        assert format_quantity(Decimal("50.00")) == "50"
        assert format_quantity(Decimal("0.250")) == "0.25"


class TestLotQueue:
    """Tests for LotQueue"""

    @staticmethod
    def _purchase(tx_id: int, quantity: float, amount: float) -> Transaction:
        return Transaction(
            id=tx_id,
            date=f"2024-02-{tx_id:02d}",
            transaction_type="purchase",
            quantity=quantity,
            amount=amount,
        )

    def test_purchases_and_sale(self) -> None:
        queue = LotQueue("ABC", CostBasisMethod.FIFO)
        queue.add_purchase(self._purchase(1, 10, 100))
        queue.add_purchase(self._purchase(2, 10, 200))

        outcome = queue.sell(15, 25)

        assert outcome.cost_basis == 200
        assert queue.open_quantity == 5
        assert queue.open_cost == 100
        assert len(queue.lots) == 1

    @pytest.mark.parametrize("method", list(CostBasisMethod))
    def test_quantity_conserved(self, method: CostBasisMethod) -> None:
        queue = LotQueue("ABC", method)
        purchased = Decimal(0)
        consumed = Decimal(0)

        for tx_id, (quantity, amount) in enumerate(
            [(10, 100), (5.5, 66), (20, 150), (0.25, 4)], start=1
        ):
            queue.add_purchase(self._purchase(tx_id, quantity, amount))
            purchased += Decimal(repr(float(quantity)))
            consumed += queue.sell(3.75, 12).quantity_consumed

        consumed += queue.sell(100, 12).quantity_consumed

        assert queue.open_quantity == 0
        assert consumed == purchased
