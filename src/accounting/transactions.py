"""
Transaction intake for lot accounting.

Raw payloads are checked against the transaction contract and parsed into
Transaction models; anything unusable is reported as a warning and skipped.
"""

import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from src.core.contracts.validators import TransactionValidator
from src.core.domain.transaction import Transaction

logger = logging.getLogger(__name__)

_TRANSACTION_VALIDATOR = TransactionValidator()


class InvalidTransactionPayload(ValueError):
    """A raw transaction payload cannot be turned into a Transaction."""

    def __init__(self, index: int, problems: list[str]):
        self.index = index
        self.problems = problems
        super().__init__(f"Transaction #{index} rejected: {'; '.join(problems)}")


@dataclass(frozen=True)
class DatedTransaction:
    """Transaction paired with its parsed trade date and input position."""

    trade_date: dt.date
    sequence: int
    transaction: Transaction


def parse_transaction(payload: Transaction | Mapping[str, Any], index: int = 0) -> Transaction:
    """
    Build a Transaction from a model or raw mapping.

    Raises:
        InvalidTransactionPayload: contract or model validation failed
    """
    if isinstance(payload, Transaction):
        return payload

    if not isinstance(payload, Mapping):
        raise InvalidTransactionPayload(index, [f"expected a mapping, got {type(payload).__name__}"])

    problems = _TRANSACTION_VALIDATOR.error_messages(payload)
    if problems:
        raise InvalidTransactionPayload(index, problems)

    try:
        return Transaction.model_validate(payload)
    except ValidationError as exc:
        raise InvalidTransactionPayload(
            index, [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]
        ) from exc


def coerce_transactions(
    items: Iterable[Transaction | Mapping[str, Any]],
) -> tuple[list[Transaction], list[str]]:
    """
    Parse every item, collecting rejections as warnings.

    Returns:
        (transactions in input order, warnings)
    """
    transactions: list[Transaction] = []
    warnings: list[str] = []
    for index, item in enumerate(items):
        try:
            transactions.append(parse_transaction(item, index))
        except InvalidTransactionPayload as exc:
            logger.warning(str(exc))
            warnings.append(str(exc))
    return transactions, warnings


def prepare_transactions(
    items: Iterable[Transaction | Mapping[str, Any]],
) -> tuple[list[DatedTransaction], list[str]]:
    """
    Parse, filter and chronologically order transactions.

    Excluded with a warning: invalid payloads, unparseable dates, zero
    quantities. Same-day transactions keep their input order.
    """
    transactions, warnings = coerce_transactions(items)

    dated: list[DatedTransaction] = []
    for sequence, transaction in enumerate(transactions):
        trade_date = transaction.parsed_date()
        if trade_date is None:
            message = f"Invalid date in transaction {transaction.id}: {transaction.date!r}"
            logger.warning(message)
            warnings.append(message)
            continue
        if transaction.quantity <= 0:
            message = f"Zero quantity in transaction {transaction.id}, skipped"
            logger.warning(message)
            warnings.append(message)
            continue
        dated.append(DatedTransaction(trade_date, sequence, transaction))

    dated.sort(key=lambda d: (d.trade_date, d.sequence))
    return dated, warnings


def group_by_instrument(
    dated: Iterable[DatedTransaction],
) -> dict[str, list[DatedTransaction]]:
    """Group by ticker → ISIN → 'unknown', preserving order within each group."""
    groups: dict[str, list[DatedTransaction]] = {}
    for item in dated:
        groups.setdefault(item.transaction.instrument_key, []).append(item)
    return groups
