"""
AssetClass — Risk categories and market assumption tables

Closed set of asset classes used by the risk model, with a total lookup from
the keys the application uses in its snapshots, plus the static tables the
risk model reads:

- ASSET_VOLATILITIES[MarketStress][AssetClass]     annual volatility (decimal)
- CORRELATION_MATRICES[MarketStress][a][b]          pairwise correlation
- EXPECTED_RETURNS[AssetClass]                      expected annual return (%)
- RISK_SCORE_WEIGHTS[AssetClass]                    category risk weight 0..10

All tables are read-only MappingProxyType views.

CRITICAL INVARIANTS:
1. Every table is total over AssetClass (and MarketStress)
2. Correlation matrices are symmetric with unit diagonal
3. OTHER_ACCOUNTS correlates exactly like CASH
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class AssetClass(str, Enum):
    """Risk category of an allocation."""

    CASH = "cash"
    BONDS = "bonds"
    STOCKS = "stocks"
    REAL_ESTATE = "realEstate"
    COMMODITIES = "commodities"
    ALTERNATIVES = "alternatives"
    PENSION_FUNDS = "pensionFunds"
    MIXED = "mixed"
    OTHER_ACCOUNTS = "otherAccounts"

    @classmethod
    def from_key(cls, key: "str | AssetClass") -> "AssetClass":
        """
        Resolve an allocation key to its asset class.

        Accepts canonical values, snapshot aliases (investments,
        investmentPositions, alternativeAssets) and snake_case spellings.
        Unknown keys resolve to STOCKS with a warning.

        Examples:
            >>> AssetClass.from_key("realEstate")
            <AssetClass.REAL_ESTATE: 'realEstate'>
            >>> AssetClass.from_key("investments")
            <AssetClass.STOCKS: 'stocks'>
            >>> AssetClass.from_key("crypto")
            <AssetClass.STOCKS: 'stocks'>
        """
        if isinstance(key, AssetClass):
            return key

        normalized = str(key).strip()
        resolved = ASSET_CLASS_ALIASES.get(normalized) or ASSET_CLASS_ALIASES.get(
            normalized.lower()
        )
        if resolved is None:
            logger.warning("Unknown asset class key %r, treating as stocks", key)
            return cls.STOCKS
        return resolved

    @property
    def correlation_proxy(self) -> "AssetClass":
        """Class whose correlation row this class uses."""
        if self is AssetClass.OTHER_ACCOUNTS:
            return AssetClass.CASH
        return self


class MarketStress(str, Enum):
    """Market regime for volatility and correlation assumptions."""

    NORMAL = "normal"
    STRESS = "stress"
    CRISIS = "crisis"


def _build_aliases() -> dict[str, AssetClass]:
    aliases: dict[str, AssetClass] = {}
    for asset_class in AssetClass:
        aliases[asset_class.value] = asset_class
        aliases[asset_class.value.lower()] = asset_class
        aliases[asset_class.name.lower()] = asset_class

    # Snapshot section names used by the application
    aliases.update(
        {
            "investments": AssetClass.STOCKS,
            "investmentpositions": AssetClass.MIXED,
            "investment_positions": AssetClass.MIXED,
            "alternativeassets": AssetClass.ALTERNATIVES,
            "alternative_assets": AssetClass.ALTERNATIVES,
        }
    )
    return aliases


ASSET_CLASS_ALIASES: Final[Mapping[str, AssetClass]] = MappingProxyType(_build_aliases())


# =============================================================================
# VOLATILITIES
# =============================================================================

_C = AssetClass

_NORMAL_VOLATILITIES = {
    _C.CASH: 0.005,  # money market, savings
    _C.BONDS: 0.05,
    _C.STOCKS: 0.18,
    _C.REAL_ESTATE: 0.15,
    _C.COMMODITIES: 0.25,
    _C.ALTERNATIVES: 0.20,  # hedge funds, private equity
    _C.PENSION_FUNDS: 0.08,
    _C.MIXED: 0.12,
    _C.OTHER_ACCOUNTS: 0.005,
}

_STRESS_VOLATILITIES = {
    _C.CASH: 0.01,
    _C.BONDS: 0.08,
    _C.STOCKS: 0.27,
    _C.REAL_ESTATE: 0.22,
    _C.COMMODITIES: 0.35,
    _C.ALTERNATIVES: 0.25,
    _C.PENSION_FUNDS: 0.12,
    _C.MIXED: 0.18,
    _C.OTHER_ACCOUNTS: 0.01,
}

_CRISIS_VOLATILITIES = {
    _C.CASH: 0.015,
    _C.BONDS: 0.12,
    _C.STOCKS: 0.40,
    _C.REAL_ESTATE: 0.30,
    _C.COMMODITIES: 0.45,
    _C.ALTERNATIVES: 0.30,
    _C.PENSION_FUNDS: 0.18,
    _C.MIXED: 0.27,
    _C.OTHER_ACCOUNTS: 0.015,
}

ASSET_VOLATILITIES: Final[Mapping[MarketStress, Mapping[AssetClass, float]]] = MappingProxyType(
    {
        MarketStress.NORMAL: MappingProxyType(_NORMAL_VOLATILITIES),
        MarketStress.STRESS: MappingProxyType(_STRESS_VOLATILITIES),
        MarketStress.CRISIS: MappingProxyType(_CRISIS_VOLATILITIES),
    }
)


# =============================================================================
# CORRELATIONS
# =============================================================================

# Row/column order of the correlation rows below
_CORRELATION_ORDER = (
    _C.CASH,
    _C.BONDS,
    _C.STOCKS,
    _C.REAL_ESTATE,
    _C.COMMODITIES,
    _C.ALTERNATIVES,
    _C.PENSION_FUNDS,
    _C.MIXED,
)

_NORMAL_CORRELATION_ROWS = (
    (1.0, 0.1, 0.0, 0.0, -0.1, 0.0, 0.05, 0.02),
    (0.1, 1.0, 0.3, 0.2, 0.1, 0.2, 0.8, 0.25),
    (0.0, 0.3, 1.0, 0.5, 0.4, 0.5, 0.4, 0.8),
    (0.0, 0.2, 0.5, 1.0, 0.3, 0.4, 0.3, 0.4),
    (-0.1, 0.1, 0.4, 0.3, 1.0, 0.3, 0.2, 0.35),
    (0.0, 0.2, 0.5, 0.4, 0.3, 1.0, 0.25, 0.4),
    (0.05, 0.8, 0.4, 0.3, 0.2, 0.25, 1.0, 0.5),
    (0.02, 0.25, 0.8, 0.4, 0.35, 0.4, 0.5, 1.0),
)

# Diversification breaks down under stress: correlations rise
_STRESS_CORRELATION_ROWS = (
    (1.0, 0.2, -0.1, -0.1, -0.2, -0.1, 0.1, 0.0),
    (0.2, 1.0, 0.5, 0.4, 0.2, 0.4, 0.9, 0.4),
    (-0.1, 0.5, 1.0, 0.7, 0.5, 0.8, 0.5, 0.9),
    (-0.1, 0.4, 0.7, 1.0, 0.4, 0.6, 0.4, 0.6),
    (-0.2, 0.2, 0.5, 0.4, 1.0, 0.4, 0.3, 0.5),
    (-0.1, 0.4, 0.8, 0.6, 0.4, 1.0, 0.4, 0.7),
    (0.1, 0.9, 0.5, 0.4, 0.3, 0.4, 1.0, 0.6),
    (0.0, 0.4, 0.9, 0.6, 0.5, 0.7, 0.6, 1.0),
)

_CRISIS_CORRELATION_ROWS = (
    (1.0, 0.3, -0.2, -0.2, -0.3, -0.2, 0.2, 0.0),
    (0.3, 1.0, 0.7, 0.6, 0.3, 0.6, 0.95, 0.5),
    (-0.2, 0.7, 1.0, 0.9, 0.7, 0.9, 0.6, 0.95),
    (-0.2, 0.6, 0.9, 1.0, 0.6, 0.8, 0.5, 0.8),
    (-0.3, 0.3, 0.7, 0.6, 1.0, 0.6, 0.4, 0.7),
    (-0.2, 0.6, 0.9, 0.8, 0.6, 1.0, 0.5, 0.8),
    (0.2, 0.95, 0.6, 0.5, 0.4, 0.5, 1.0, 0.7),
    (0.0, 0.5, 0.95, 0.8, 0.7, 0.8, 0.7, 1.0),
)


def _build_correlation_matrix(
    rows: tuple[tuple[float, ...], ...],
) -> Mapping[AssetClass, Mapping[AssetClass, float]]:
    """Expand rows into a total AssetClass × AssetClass mapping."""
    matrix: dict[AssetClass, Mapping[AssetClass, float]] = {}
    for row_class in AssetClass:
        row_index = _CORRELATION_ORDER.index(row_class.correlation_proxy)
        matrix[row_class] = MappingProxyType(
            {
                col_class: rows[row_index][_CORRELATION_ORDER.index(col_class.correlation_proxy)]
                for col_class in AssetClass
            }
        )
    return MappingProxyType(matrix)


CORRELATION_MATRICES: Final[
    Mapping[MarketStress, Mapping[AssetClass, Mapping[AssetClass, float]]]
] = MappingProxyType(
    {
        MarketStress.NORMAL: _build_correlation_matrix(_NORMAL_CORRELATION_ROWS),
        MarketStress.STRESS: _build_correlation_matrix(_STRESS_CORRELATION_ROWS),
        MarketStress.CRISIS: _build_correlation_matrix(_CRISIS_CORRELATION_ROWS),
    }
)


# =============================================================================
# RETURNS AND RISK WEIGHTS
# =============================================================================

# Expected annual return, percent
EXPECTED_RETURNS: Final[Mapping[AssetClass, float]] = MappingProxyType(
    {
        _C.CASH: 3.5,
        _C.BONDS: 3.8,
        _C.STOCKS: 6.5,
        _C.REAL_ESTATE: 5.5,
        _C.COMMODITIES: 4.5,
        _C.ALTERNATIVES: 7.0,
        _C.PENSION_FUNDS: 4.0,
        _C.MIXED: 5.0,
        _C.OTHER_ACCOUNTS: 3.5,
    }
)

# Category risk weights on a 0..10 scale
RISK_SCORE_WEIGHTS: Final[Mapping[AssetClass, float]] = MappingProxyType(
    {
        _C.CASH: 1.0,
        _C.OTHER_ACCOUNTS: 1.0,
        _C.PENSION_FUNDS: 3.0,
        _C.REAL_ESTATE: 4.0,
        _C.STOCKS: 7.0,
        _C.MIXED: 7.0,
        _C.ALTERNATIVES: 9.0,
        _C.BONDS: 5.0,
        _C.COMMODITIES: 5.0,
    }
)

del _C
