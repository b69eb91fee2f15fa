"""
Net worth helpers for asset snapshots.

Snapshot records are plain mappings as stored by the application
({"id": 3, "currentPrice": 120.0, "avgPrice": 95.0, "quantity": 10, ...}).
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal, localcontext
from typing import Any

from src.core.domain.transaction import Transaction
from src.core.math.calculation_guard import safe_financial_operation
from src.core.math.decimal_arithmetic import FINANCIAL_CONTEXT, to_decimal
from src.core.math.numerical_safeguards import is_valid_float

logger = logging.getLogger(__name__)


def _numeric_value(raw: Any) -> float | None:
    """Number from a numeric value or numeric string, None otherwise."""
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return None
    if not is_valid_float(raw):
        return None
    return float(raw)


def calculate_real_estate_net_worth(assets: Iterable[Mapping[str, Any]]) -> float:
    """
    Sum of property values.

    Entries without a numeric value are skipped with an error log; negative
    values are skipped with a warning.

    Examples:
        >>> calculate_real_estate_net_worth([{"id": 1, "value": 300000}, {"id": 2, "value": "200000"}])
        500000.0
    """

    def total() -> Decimal:
        with localcontext(FINANCIAL_CONTEXT):
            accumulated = Decimal(0)
            for asset in assets:
                if not isinstance(asset, Mapping):
                    logger.warning("Invalid real estate record: %r", asset)
                    continue

                value = _numeric_value(asset.get("value"))
                if value is None:
                    logger.error(
                        "Invalid value for real estate asset %s: %r", asset.get("id"), asset.get("value")
                    )
                    continue
                if value < 0:
                    logger.warning("Negative value for real estate asset %s: %s", asset.get("id"), value)
                    continue

                accumulated += to_decimal(value)
            return accumulated

    return safe_financial_operation(total, 0.0, "Real estate net worth")


def get_asset_current_price(asset: Mapping[str, Any] | None) -> float:
    """currentPrice, falling back to avgPrice; 0 when neither is positive."""
    if not asset:
        return 0.0
    for key in ("currentPrice", "avgPrice"):
        price = _numeric_value(asset.get(key))
        if price is not None and price > 0:
            return price
    return 0.0


def get_asset_quantity(asset: Mapping[str, Any] | None) -> float:
    """Positive quantity, or 1 for single-unit assets."""
    if not asset:
        return 1.0
    quantity = _numeric_value(asset.get("quantity"))
    return quantity if quantity is not None and quantity > 0 else 1.0


def get_asset_current_value(asset: Mapping[str, Any] | None) -> float:
    return get_asset_current_price(asset) * get_asset_quantity(asset)


def get_asset_cost_basis(asset: Mapping[str, Any] | None) -> float:
    if not asset:
        return 0.0
    avg_price = _numeric_value(asset.get("avgPrice"))
    if avg_price is None or avg_price <= 0:
        return 0.0
    return avg_price * get_asset_quantity(asset)


def get_transactions_for_asset(
    transactions: Iterable[Transaction], asset_id: int
) -> list[Transaction]:
    """Transactions linked to a snapshot asset, in input order."""
    return [t for t in transactions if t.linked_to_asset is not None and t.linked_to_asset == asset_id]
