"""
Settings — User settings and portfolio totals

Immutable pydantic models for everything the calculators take from the user:

- TaxSettings:          capital-gains rates, cost basis method, exemptions
- AdvancedSWRSettings:  base rate and horizon of the advanced SWR model
- EngineSettings:       the full settings bundle
- PortfolioTotals:      per-section totals of an asset snapshot

from_raw() constructors accept the application's camelCase payloads and
clamp every numeric field into range (logging each correction) instead of
rejecting the whole bundle.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, model_validator

from src.core.contracts.validators import EngineSettingsValidator
from src.core.domain.asset_class import MarketStress
from src.core.domain.transaction import AssetType, CostBasisMethod
from src.core.math.numerical_safeguards import validate_financial_input

logger = logging.getLogger(__name__)


def _clamped(raw: Mapping[str, Any], bounds: Mapping[str, tuple[str, float, float]]) -> dict:
    """
    Pick and clamp numeric fields.

    bounds maps raw key → (field name, min, max); missing keys are left out
    so model defaults apply.
    """
    values: dict[str, Any] = {}
    for key, (field_name, lower, upper) in bounds.items():
        if key in raw and raw[key] is not None:
            values[field_name] = validate_financial_input(raw[key], field_name, lower, upper)
    return values


# =============================================================================
# TAX SETTINGS
# =============================================================================


class TaxSettings(BaseModel):
    """
    Capital-gains tax parameters.

    Rates are percentages (26.0 = 26%).
    """

    capital_gains_tax_rate: float = Field(26.0, ge=0, le=100, alias="capitalGainsTaxRate")
    whitelist_bonds_tax_rate: float = Field(12.5, ge=0, le=100, alias="whitelistBondsTaxRate")
    cost_basis_method: CostBasisMethod = Field(CostBasisMethod.LIFO, alias="costBasisMethod")
    exempt_asset_types: frozenset[AssetType] = Field(
        default_factory=frozenset, alias="exemptAssetTypes"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "TaxSettings":
        values = _clamped(
            raw,
            {
                "capitalGainsTaxRate": ("capital_gains_tax_rate", 0.0, 100.0),
                "capital_gains_tax_rate": ("capital_gains_tax_rate", 0.0, 100.0),
                "whitelistBondsTaxRate": ("whitelist_bonds_tax_rate", 0.0, 100.0),
                "whitelist_bonds_tax_rate": ("whitelist_bonds_tax_rate", 0.0, 100.0),
            },
        )

        method = raw.get("costBasisMethod", raw.get("cost_basis_method"))
        if method is not None:
            try:
                values["cost_basis_method"] = CostBasisMethod(method)
            except ValueError:
                logger.warning("Unknown cost basis method %r, using LIFO", method)

        exempt = raw.get("exemptAssetTypes", raw.get("exempt_asset_types"))
        if exempt:
            values["exempt_asset_types"] = frozenset(AssetType.from_label(t) for t in exempt)

        return cls(**values)

    def rate_for(self, asset_type: AssetType) -> float:
        """Applicable rate: whitelist bonds get the reduced rate."""
        if asset_type is AssetType.WHITELIST_BOND:
            return self.whitelist_bonds_tax_rate
        return self.capital_gains_tax_rate

    def is_exempt(self, asset_type: AssetType) -> bool:
        return asset_type in self.exempt_asset_types


# =============================================================================
# SWR SETTINGS
# =============================================================================


class AdvancedSWRSettings(BaseModel):
    """Parameters of the advanced SWR model (rates in percent)."""

    base_swr_rate: float = Field(4.0, ge=0, le=100, alias="baseSWRRate")
    risk_free_rate: float = Field(2.0, ge=-10, le=100, alias="riskFreeRate")
    time_horizon: int = Field(30, gt=0, le=100, alias="timeHorizon")

    model_config = {"frozen": True, "populate_by_name": True}


# =============================================================================
# ENGINE SETTINGS
# =============================================================================


class EngineSettings(BaseModel):
    """
    Full user settings bundle.

    Percentages are plain numbers (4.0 = 4%).
    """

    swr_rate: float = Field(4.0, ge=0, le=100)
    inflation_rate: float = Field(2.0, ge=0, le=100)
    monthly_expenses: float = Field(0.0, ge=0)
    risk_free_rate: float = Field(2.0, ge=-10, le=100)
    emergency_fund_adequate_months: float = Field(3.0, gt=0)
    emergency_fund_optimal_months: float = Field(6.0, gt=0)
    market_stress: MarketStress = MarketStress.NORMAL
    tax: TaxSettings = Field(default_factory=TaxSettings)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_emergency_fund_targets(self) -> "EngineSettings":
        if self.emergency_fund_optimal_months < self.emergency_fund_adequate_months:
            raise ValueError(
                f"emergency_fund_optimal_months {self.emergency_fund_optimal_months} "
                f"below adequate target {self.emergency_fund_adequate_months}"
            )
        return self

    @property
    def advanced_swr(self) -> AdvancedSWRSettings:
        return AdvancedSWRSettings(base_swr_rate=self.swr_rate, risk_free_rate=self.risk_free_rate)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "EngineSettings":
        """
        Build settings from an application payload.

        Contract violations are logged; offending numeric values are clamped
        into range rather than rejected.
        """
        for problem in EngineSettingsValidator().error_messages(raw):
            logger.warning("Settings payload: %s", problem)

        values = _clamped(
            raw,
            {
                "swrRate": ("swr_rate", 0.0, 100.0),
                "inflationRate": ("inflation_rate", 0.0, 100.0),
                "monthlyExpenses": ("monthly_expenses", 0.0, math.inf),
                "riskFreeRate": ("risk_free_rate", -10.0, 100.0),
            },
        )

        adequate = validate_financial_input(
            raw.get("emergencyFundAdequateMonths", 3.0), "emergency_fund_adequate_months", 0.1, 120.0
        )
        optimal = validate_financial_input(
            raw.get("emergencyFundOptimalMonths", 6.0), "emergency_fund_optimal_months", 0.1, 120.0
        )
        values["emergency_fund_adequate_months"] = adequate
        values["emergency_fund_optimal_months"] = max(adequate, optimal)

        stress = raw.get("marketStress")
        if stress is not None:
            try:
                values["market_stress"] = MarketStress(stress)
            except ValueError:
                logger.warning("Unknown market stress %r, using normal", stress)

        values["tax"] = TaxSettings.from_raw(raw)
        return cls(**values)


# =============================================================================
# PORTFOLIO TOTALS
# =============================================================================


class PortfolioTotals(BaseModel):
    """Section totals of an asset snapshot (all amounts ≥ 0)."""

    cash: float = Field(0.0, ge=0)
    investments: float = Field(0.0, ge=0)
    other_accounts: float = Field(0.0, ge=0, alias="otherAccounts")
    real_estate: float = Field(0.0, ge=0, alias="realEstate")
    pension_funds: float = Field(0.0, ge=0, alias="pensionFunds")
    alternative_assets: float = Field(0.0, ge=0, alias="alternativeAssets")
    total: float | None = Field(None, ge=0)

    model_config = {"frozen": True, "populate_by_name": True, "allow_inf_nan": False}

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PortfolioTotals":
        bounds = {}
        for field_name, field in cls.model_fields.items():
            bounds[field_name] = (field_name, 0.0, math.inf)
            if field.alias:
                bounds[field.alias] = (field_name, 0.0, math.inf)
        return cls(**_clamped(raw, bounds))

    @property
    def withdrawable(self) -> float:
        """Liquid assets available for withdrawals."""
        return self.cash + self.investments + self.other_accounts

    @property
    def effective_total(self) -> float:
        """Supplied total, or the sum of the sections when it is missing or zero."""
        if self.total:
            return self.total
        return (
            self.cash
            + self.investments
            + self.other_accounts
            + self.real_estate
            + self.pension_funds
            + self.alternative_assets
        )
