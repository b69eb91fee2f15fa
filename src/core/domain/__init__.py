"""
Domain models and value objects.

Asset classes with their market tables, transactions and user settings.
"""

from src.core.domain.asset_class import (
    ASSET_CLASS_ALIASES,
    ASSET_VOLATILITIES,
    CORRELATION_MATRICES,
    EXPECTED_RETURNS,
    RISK_SCORE_WEIGHTS,
    AssetClass,
    MarketStress,
)
from src.core.domain.settings import (
    AdvancedSWRSettings,
    EngineSettings,
    PortfolioTotals,
    TaxSettings,
)
from src.core.domain.transaction import (
    AssetType,
    CostBasisMethod,
    Transaction,
    TransactionType,
)

__all__ = [
    # Asset classes
    "AssetClass",
    "MarketStress",
    "ASSET_CLASS_ALIASES",
    "ASSET_VOLATILITIES",
    "CORRELATION_MATRICES",
    "EXPECTED_RETURNS",
    "RISK_SCORE_WEIGHTS",
    # Transactions
    "AssetType",
    "CostBasisMethod",
    "Transaction",
    "TransactionType",
    # Settings
    "AdvancedSWRSettings",
    "EngineSettings",
    "PortfolioTotals",
    "TaxSettings",
]
