"""
JSON Schema Contract Validators

Validation of raw payloads coming from the surrounding application against
formal JSON Schema (Draft 2020-12) contracts before they are turned into
domain models.

Schemas (src/core/contracts/schema/):
- transaction.json       one buy/sell record (camelCase keys)
- engine_settings.json   user settings bundle
- asset_allocation.json  asset-class key → amount mapping
"""

import json
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    JSON Schema file loader.

    Schemas live in the schema/ directory next to this module.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Loaded schemas cache
        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load a JSON Schema file.

        Args:
            schema_name: Schema name without extension (e.g. 'transaction')

        Returns:
            Parsed schema as dict

        Raises:
            FileNotFoundError: Schema file does not exist
            json.JSONDecodeError: File is not valid JSON
            ValueError: File is JSON but not a valid Draft 2020-12 schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


# Global loader instance
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Base contract validator.

    Wraps a Draft202012Validator compiled for one schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Validate data against the schema.

        Raises:
            ValidationError: Data does not match the schema
        """
        self.validator.validate(data)

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Mapping[str, Any]) -> Iterator[ValidationError]:
        return self.validator.iter_errors(data)

    def error_messages(self, data: Mapping[str, Any]) -> list[str]:
        """
        All validation problems as "path: message" strings, ordered by path.

        Empty list for valid data.
        """
        messages = []
        for error in sorted(self.iter_errors(data), key=lambda e: list(map(str, e.absolute_path))):
            location = "/".join(str(part) for part in error.absolute_path) or "<root>"
            messages.append(f"{location}: {error.message}")
        return messages


class TransactionValidator(ContractValidator):
    """Validator for the transaction contract."""

    def __init__(self):
        super().__init__("transaction")


class EngineSettingsValidator(ContractValidator):
    """Validator for the engine_settings contract."""

    def __init__(self):
        super().__init__("engine_settings")


class AssetAllocationValidator(ContractValidator):
    """Validator for the asset_allocation contract."""

    def __init__(self):
        super().__init__("asset_allocation")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_transaction(data: Mapping[str, Any]) -> None:
    """
    Validate a raw transaction payload.

    Raises:
        ValidationError: Data does not match the schema
    """
    TransactionValidator().validate(data)


def validate_engine_settings(data: Mapping[str, Any]) -> None:
    """
    Validate a raw settings payload.

    Raises:
        ValidationError: Data does not match the schema
    """
    EngineSettingsValidator().validate(data)


def validate_asset_allocation(data: Mapping[str, Any]) -> None:
    """
    Validate a raw asset allocation mapping.

    Raises:
        ValidationError: Data does not match the schema
    """
    AssetAllocationValidator().validate(data)
