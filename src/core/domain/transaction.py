"""
Transaction — Buy/sell records for lot accounting

Immutable pydantic model of one purchase or sale of an instrument. Accepts
both snake_case field names and the camelCase keys the application stores
(assetType, transactionType, unitPrice, linkedToAsset).

The trade date is kept as supplied; parsed_date() interprets it and returns
None for unparseable values, so a bad date excludes one transaction instead
of failing the whole calculation.
"""

import datetime as dt
import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class TransactionType(str, Enum):
    """Direction of a transaction"""

    PURCHASE = "purchase"
    SALE = "sale"


class CostBasisMethod(str, Enum):
    """Lot consumption order for sales"""

    FIFO = "FIFO"
    LIFO = "LIFO"
    AVERAGE_COST = "AVERAGE_COST"


class AssetType(str, Enum):
    """Instrument type, drives the applicable capital-gains rate"""

    STOCK = "stock"
    ETF = "etf"
    BOND = "bond"
    WHITELIST_BOND = "whitelist_bond"
    TCG = "tcg"
    STAMPS = "stamps"
    ALCOHOL = "alcohol"
    COLLECTIBLES = "collectibles"
    VINYL = "vinyl"
    BOOKS = "books"
    COMICS = "comics"
    ART = "art"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "AssetType | None":
        if isinstance(value, str):
            key = value.strip().lower()
            alias = _ASSET_TYPE_ALIASES.get(key)
            if alias is not None:
                return cls(alias)
            for member in cls:
                if member.name.lower() == key:
                    return member
        return None

    @classmethod
    def from_label(cls, label: "str | AssetType | None") -> "AssetType":
        """
        Total lookup from an application label.

        Unknown labels resolve to OTHER with a warning.

        Examples:
            >>> AssetType.from_label("Obbligazione whitelist")
            <AssetType.WHITELIST_BOND: 'whitelist_bond'>
            >>> AssetType.from_label("Azione")
            <AssetType.STOCK: 'stock'>
        """
        if isinstance(label, AssetType):
            return label
        if label is None:
            return cls.OTHER
        try:
            return cls(label)
        except ValueError:
            logger.warning("Unknown asset type %r, treating as other", label)
            return cls.OTHER


# Labels used by the application UI (Italian) and common English spellings
_ASSET_TYPE_ALIASES: dict[str, str] = {
    "azione": "stock",
    "azioni": "stock",
    "etf": "etf",
    "obbligazione": "bond",
    "obbligazioni": "bond",
    "obbligazione whitelist": "whitelist_bond",
    "whitelist bond": "whitelist_bond",
    "francobolli": "stamps",
    "alcolici": "alcohol",
    "collezionabili": "collectibles",
    "vinili": "vinyl",
    "libri": "books",
    "fumetti": "comics",
    "arte": "art",
    "altro": "other",
}


# =============================================================================
# TRANSACTION MODEL
# =============================================================================


class Transaction(BaseModel):
    """
    One purchase or sale.

    amount is the gross value of the whole transaction (price × quantity),
    commissions are tracked separately.
    """

    # Identification
    id: int | str = Field(..., description="Transaction identifier")
    asset_type: AssetType = Field(AssetType.OTHER, alias="assetType")
    ticker: str = Field("", description="Ticker symbol, may be empty")
    isin: str = Field("", description="ISIN, may be empty")

    # Trade
    date: str = Field(..., description="Trade date as supplied (ISO 8601 expected)")
    transaction_type: TransactionType = Field(..., alias="transactionType")
    quantity: float = Field(..., ge=0, description="Units traded")
    amount: float = Field(..., description="Gross transaction value")
    commissions: float = Field(0.0, ge=0)
    unit_price: float | None = Field(None, alias="unitPrice")

    # Context
    description: str | None = None
    linked_to_asset: int | None = Field(None, alias="linkedToAsset")

    model_config = {"frozen": True, "populate_by_name": True, "allow_inf_nan": False}

    @field_validator("asset_type", mode="before")
    @classmethod
    def resolve_asset_type(cls, v: Any) -> AssetType:
        return AssetType.from_label(v)

    @field_validator("date", mode="before")
    @classmethod
    def stringify_date(cls, v: Any) -> Any:
        """Accept date / datetime objects, keep strings raw."""
        if isinstance(v, (dt.date, dt.datetime)):
            return v.isoformat()
        return v

    @field_validator("ticker", "isin", mode="before")
    @classmethod
    def empty_identifier(cls, v: Any) -> Any:
        return "" if v is None else v

    def parsed_date(self) -> dt.date | None:
        """
        Trade date, or None when the stored value is not a valid ISO date.

        Accepts plain dates (2024-01-15) and ISO timestamps
        (2024-01-15T10:30:00, 2024-01-15T10:30:00Z).
        """
        raw = self.date.strip()
        if not raw:
            return None
        try:
            return dt.datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            return None

    @property
    def instrument_key(self) -> str:
        """Grouping key: ticker, then ISIN, then 'unknown'."""
        return self.ticker.strip() or self.isin.strip() or "unknown"

    @property
    def is_purchase(self) -> bool:
        return self.transaction_type is TransactionType.PURCHASE

    @property
    def is_sale(self) -> bool:
        return self.transaction_type is TransactionType.SALE

    def price_per_unit(self) -> float:
        """amount / quantity, 0 for zero quantity."""
        if self.quantity <= 0:
            return 0.0
        return self.amount / self.quantity

    def resolved_unit_price(self) -> float:
        """Explicit unit_price when positive, otherwise amount / quantity."""
        if self.unit_price is not None and self.unit_price > 0:
            return self.unit_price
        return self.price_per_unit()
