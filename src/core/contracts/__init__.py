"""
Contract Validation Module

JSON Schema contracts for the raw payloads the engine accepts.
"""

from .validators import (
    AssetAllocationValidator,
    ContractValidator,
    EngineSettingsValidator,
    SchemaLoader,
    TransactionValidator,
    validate_asset_allocation,
    validate_engine_settings,
    validate_transaction,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "TransactionValidator",
    "EngineSettingsValidator",
    "AssetAllocationValidator",
    # Functions
    "validate_transaction",
    "validate_engine_settings",
    "validate_asset_allocation",
]
