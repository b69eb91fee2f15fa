"""
Tests for domain models: Transaction, AssetType, AssetClass, settings

Checks:
1. Creation and validation of the pydantic models
2. camelCase aliases and total label lookups
3. Immutability (frozen=True)
4. Date parsing and derived values
5. Clamping from_raw constructors
"""

import datetime as dt

import pytest
from pydantic import ValidationError

from src.core.domain import (
    AssetClass,
    AssetType,
    CostBasisMethod,
    EngineSettings,
    MarketStress,
    PortfolioTotals,
    TaxSettings,
    Transaction,
    TransactionType,
)


# =============================================================================
# TRANSACTION TESTS
# =============================================================================


class TestTransaction:
    """Tests for the Transaction model"""

    @pytest.fixture
    def purchase(self) -> Transaction:
        """10 units for 1005, 5 commissions"""
        return Transaction(
            id=1,
            asset_type=AssetType.ETF,
            ticker="VWCE",
            date="2024-01-15",
            transaction_type=TransactionType.PURCHASE,
            quantity=10,
            amount=1005.0,
            commissions=5.0,
        )

    def test_creation(self, purchase: Transaction) -> None:
        assert purchase.is_purchase
        assert not purchase.is_sale
        assert purchase.price_per_unit() == 100.5
        assert purchase.instrument_key == "VWCE"

    def test_camel_case_payload(self) -> None:
        tx = Transaction.model_validate(
            {
                "id": "abc",
                "assetType": "Obbligazione whitelist",
                "isin": "IT0005547408",
                "date": "2024-02-01",
                "transactionType": "sale",
                "quantity": 3,
                "amount": 300,
                "unitPrice": 101,
                "linkedToAsset": 9,
            }
        )

        assert tx.asset_type is AssetType.WHITELIST_BOND
        assert tx.transaction_type is TransactionType.SALE
        assert tx.unit_price == 101
        assert tx.linked_to_asset == 9
        assert tx.instrument_key == "IT0005547408"

    def test_immutability(self, purchase: Transaction) -> None:
        with pytest.raises(ValidationError):
            purchase.quantity = 20  # type: ignore[misc]

    def test_negative_quantity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(id=1, date="2024-01-01", transaction_type="purchase", quantity=-1, amount=10)

    def test_non_finite_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(
                id=1, date="2024-01-01", transaction_type="purchase", quantity=1, amount=float("nan")
            )

    def test_unknown_transaction_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(id=1, date="2024-01-01", transaction_type="dividend", quantity=1, amount=1)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-01-15", dt.date(2024, 1, 15)),
            ("2024-01-15T10:30:00", dt.date(2024, 1, 15)),
            ("2024-01-15T23:59:00Z", dt.date(2024, 1, 15)),
            (" 2024-01-15 ", dt.date(2024, 1, 15)),
            ("15/01/2024", None),
            ("invalid", None),
            ("", None),
        ],
    )
    def test_parsed_date(self, raw: str, expected: dt.date | None) -> None:
        tx = Transaction(id=1, date=raw, transaction_type="purchase", quantity=1, amount=1)
        assert tx.parsed_date() == expected

    def test_date_object_accepted(self) -> None:
        tx = Transaction(
            id=1, date=dt.date(2024, 3, 1), transaction_type="purchase", quantity=1, amount=1
        )
        assert tx.date == "2024-03-01"
        assert tx.parsed_date() == dt.date(2024, 3, 1)

    def test_instrument_key_fallbacks(self) -> None:
        tx = Transaction(
            id=1, date="2024-01-01", transaction_type="purchase", quantity=1, amount=1, ticker=None
        )
        assert tx.ticker == ""
        assert tx.instrument_key == "unknown"

    def test_unit_price_resolution(self) -> None:
        explicit = Transaction(
            id=1, date="2024-01-01", transaction_type="purchase", quantity=4, amount=100, unit_price=30
        )
        derived = Transaction(
            id=2, date="2024-01-01", transaction_type="purchase", quantity=4, amount=100, unit_price=0
        )
        empty = Transaction(id=3, date="2024-01-01", transaction_type="purchase", quantity=0, amount=0)

        assert explicit.resolved_unit_price() == 30
        assert derived.resolved_unit_price() == 25
        assert empty.price_per_unit() == 0.0


# =============================================================================
# LABEL LOOKUPS
# =============================================================================


class TestAssetType:
    """Tests for AssetType label resolution"""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Azione", AssetType.STOCK),
            ("ETF", AssetType.ETF),
            ("OBBLIGAZIONE WHITELIST", AssetType.WHITELIST_BOND),
            ("WHITELIST_BOND", AssetType.WHITELIST_BOND),
            ("Arte", AssetType.ART),
            ("vinyl", AssetType.VINYL),
        ],
    )
    def test_aliases(self, label: str, expected: AssetType) -> None:
        assert AssetType(label) is expected
        assert AssetType.from_label(label) is expected

    def test_unknown_label_strict_constructor(self) -> None:
        with pytest.raises(ValueError):
            AssetType("crypto")

    def test_unknown_label_total_lookup(self) -> None:
        assert AssetType.from_label("crypto") is AssetType.OTHER
        assert AssetType.from_label(None) is AssetType.OTHER


class TestAssetClass:
    """Tests for AssetClass.from_key"""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("cash", AssetClass.CASH),
            ("Cash ", AssetClass.CASH),
            ("realEstate", AssetClass.REAL_ESTATE),
            ("real_estate", AssetClass.REAL_ESTATE),
            ("investments", AssetClass.STOCKS),
            ("investmentPositions", AssetClass.MIXED),
            ("alternativeAssets", AssetClass.ALTERNATIVES),
            ("otherAccounts", AssetClass.OTHER_ACCOUNTS),
            (AssetClass.BONDS, AssetClass.BONDS),
        ],
    )
    def test_keys(self, key: str, expected: AssetClass) -> None:
        assert AssetClass.from_key(key) is expected

    def test_unknown_key_is_stocks(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            assert AssetClass.from_key("crypto") is AssetClass.STOCKS
        assert "crypto" in caplog.text

    def test_correlation_proxy(self) -> None:
        assert AssetClass.OTHER_ACCOUNTS.correlation_proxy is AssetClass.CASH
        assert AssetClass.STOCKS.correlation_proxy is AssetClass.STOCKS


# =============================================================================
# SETTINGS
# =============================================================================


class TestTaxSettings:
    """Tests for TaxSettings"""

    def test_defaults(self) -> None:
        settings = TaxSettings()

        assert settings.capital_gains_tax_rate == 26.0
        assert settings.whitelist_bonds_tax_rate == 12.5
        assert settings.cost_basis_method is CostBasisMethod.LIFO
        assert settings.exempt_asset_types == frozenset()

    def test_rate_for(self) -> None:
        settings = TaxSettings()
        assert settings.rate_for(AssetType.WHITELIST_BOND) == 12.5
        assert settings.rate_for(AssetType.BOND) == 26.0

    def test_from_raw(self) -> None:
        settings = TaxSettings.from_raw(
            {
                "capitalGainsTaxRate": 130,
                "whitelistBondsTaxRate": "10",
                "costBasisMethod": "FIFO",
                "exemptAssetTypes": ["Arte", "vinyl"],
            }
        )

        assert settings.capital_gains_tax_rate == 100.0
        assert settings.whitelist_bonds_tax_rate == 10.0
        assert settings.cost_basis_method is CostBasisMethod.FIFO
        assert settings.is_exempt(AssetType.ART)
        assert settings.is_exempt(AssetType.VINYL)
        assert not settings.is_exempt(AssetType.STOCK)

    def test_from_raw_unknown_method_keeps_default(self) -> None:
        assert TaxSettings.from_raw({"costBasisMethod": "HIFO"}).cost_basis_method is CostBasisMethod.LIFO

    def test_out_of_range_rate_rejected_by_constructor(self) -> None:
        with pytest.raises(ValidationError):
            TaxSettings(capital_gains_tax_rate=150)


class TestEngineSettings:
    """Tests for EngineSettings"""

    def test_defaults(self) -> None:
        settings = EngineSettings()

        assert settings.swr_rate == 4.0
        assert settings.market_stress is MarketStress.NORMAL
        assert settings.advanced_swr.base_swr_rate == 4.0
        assert settings.advanced_swr.time_horizon == 30

    def test_emergency_fund_targets_ordered(self) -> None:
        with pytest.raises(ValidationError, match="below adequate target"):
            EngineSettings(emergency_fund_adequate_months=6, emergency_fund_optimal_months=3)

    def test_from_raw_clamps(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            settings = EngineSettings.from_raw(
                {
                    "swrRate": 150,
                    "monthlyExpenses": -10,
                    "riskFreeRate": 3,
                    "emergencyFundAdequateMonths": 6,
                    "emergencyFundOptimalMonths": 3,
                    "marketStress": "panic",
                    "costBasisMethod": "AVERAGE_COST",
                }
            )

        assert settings.swr_rate == 100.0
        assert settings.monthly_expenses == 0.0
        assert settings.risk_free_rate == 3.0
        assert settings.emergency_fund_adequate_months == 6.0
        assert settings.emergency_fund_optimal_months == 6.0
        assert settings.market_stress is MarketStress.NORMAL
        assert settings.tax.cost_basis_method is CostBasisMethod.AVERAGE_COST
        assert "Settings payload" in caplog.text

    def test_from_raw_empty(self) -> None:
        assert EngineSettings.from_raw({}) == EngineSettings()


class TestPortfolioTotals:
    """Tests for PortfolioTotals"""

    def test_from_raw_clamps_and_parses(self) -> None:
        totals = PortfolioTotals.from_raw({"cash": -5, "investments": "1000", "realEstate": 200_000})

        assert totals.cash == 0.0
        assert totals.investments == 1000.0
        assert totals.real_estate == 200_000.0
        assert totals.withdrawable == 1000.0
        assert totals.effective_total == 201_000.0

    def test_supplied_total_wins(self) -> None:
        totals = PortfolioTotals(cash=10, total=500)
        assert totals.effective_total == 500

    def test_snake_case_keys(self) -> None:
        totals = PortfolioTotals.from_raw({"other_accounts": 50, "pension_funds": 20})
        assert totals.other_accounts == 50
        assert totals.pension_funds == 20
        assert totals.withdrawable == 50
