"""
Tests for the SWR calculators

Checks:
1. Basic SWR: liquid assets only, allocation nudge, sustainability
2. Basic SWR: clamping and warnings
3. Advanced SWR: inflation and risk adjustments
4. Advanced SWR: confidence grading and invalid input
"""

import pytest

from src.analytics.withdrawal import (
    ConfidenceLevel,
    RiskLevel,
    calculate_advanced_swr,
    calculate_swr,
)
from src.core.domain.settings import AdvancedSWRSettings, PortfolioTotals

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def aggressive_totals() -> dict:
    """80% investments, 1M liquid"""
    return {"cash": 100_000, "investments": 800_000, "otherAccounts": 100_000}


# =============================================================================
# BASIC SWR
# =============================================================================


class TestBasicSWR:
    """Tests for calculate_swr"""

    def test_aggressive_allocation_raises_rate(self, aggressive_totals: dict) -> None:
        result = calculate_swr(aggressive_totals, swr_rate=4, inflation_rate=2, monthly_expenses=3000)

        assert result.withdrawable_assets == 1_000_000
        assert result.risk_level is RiskLevel.AGGRESSIVE
        assert result.recommended_rate == 4.5
        assert result.annual_withdrawal == 45_000
        assert result.monthly_withdrawal == 3750
        assert result.real_withdrawal_rate == 2.5
        assert result.years_of_support == 30.0
        assert result.adjusted_for_inflation == pytest.approx(44_117.65, abs=0.01)

    def test_conservative_allocation_lowers_rate(self) -> None:
        totals = PortfolioTotals(cash=400_000, investments=100_000, real_estate=500_000)
        result = calculate_swr(totals, swr_rate=4, inflation_rate=2, monthly_expenses=1000)

        assert result.risk_level is RiskLevel.CONSERVATIVE
        assert result.recommended_rate == 3.5
        assert result.withdrawable_assets == 500_000

    def test_moderate_allocation_keeps_rate(self) -> None:
        result = calculate_swr({"cash": 500_000, "investments": 500_000}, swr_rate=4)
        assert result.risk_level is RiskLevel.MODERATE
        assert result.recommended_rate == 4.0

    def test_real_estate_and_pensions_not_withdrawable(self) -> None:
        result = calculate_swr(
            {"cash": 200_000, "realEstate": 1_000_000, "pensionFunds": 300_000}, swr_rate=4
        )
        assert result.withdrawable_assets == 200_000

    def test_insufficient_withdrawal(self) -> None:
        result = calculate_swr({"cash": 500_000, "investments": 500_000}, 4, 2, 5000)

        # 1M / (5000 × 12 × 1.02) ≈ 16.3 years
        assert result.years_of_support == pytest.approx(16.3, abs=0.05)
        assert "SWR withdrawal insufficient to cover monthly expenses" in result.warnings

    def test_defaults_applied(self) -> None:
        result = calculate_swr({"cash": 500_000, "investments": 500_000})
        assert result.recommended_rate == 3.5
        assert "Monthly expenses not set - cannot calculate sustainability" in result.warnings

    def test_unset_expenses_give_no_years_of_support(self) -> None:
        result = calculate_swr({"cash": 50_000}, 4, 2, 0)

        assert result.years_of_support == 0.0
        assert result.monthly_withdrawal > 0

    def test_rate_clamped_with_warning(self) -> None:
        result = calculate_swr({"cash": 500_000, "investments": 500_000}, swr_rate=25)
        assert result.recommended_rate == 10.0
        assert any("outside" in w for w in result.warnings)
        assert any("risky" in w for w in result.warnings)

    def test_invalid_rate_uses_default(self) -> None:
        result = calculate_swr({"cash": 500_000, "investments": 500_000}, swr_rate=float("nan"))
        assert result.recommended_rate == 3.5

    def test_small_portfolio_warning(self) -> None:
        result = calculate_swr({"cash": 50_000}, swr_rate=4, monthly_expenses=100)
        assert "Portfolio size may be too small for reliable SWR application" in result.warnings

    def test_empty_portfolio(self) -> None:
        result = calculate_swr({}, swr_rate=4, monthly_expenses=1000)
        assert result.annual_withdrawal == 0
        assert result.monthly_withdrawal == 0
        assert 0 <= result.years_of_support <= 30

    @pytest.mark.parametrize("total", [0, 1, 999.99, 50_000, 1_000_000, 2.5e9])
    @pytest.mark.parametrize("rate", [0, 1, 3.5, 10, 50])
    @pytest.mark.parametrize("expenses", [0, 1, 2500, 1e6])
    def test_withdrawal_never_negative(self, total: float, rate: float, expenses: float) -> None:
        result = calculate_swr(
            {"cash": total / 2, "investments": total / 2}, rate, 2, expenses
        )

        assert result.annual_withdrawal >= 0
        assert result.monthly_withdrawal >= 0
        assert 0 <= result.years_of_support <= 30

    def test_invalid_totals_type_raises(self) -> None:
        with pytest.raises(TypeError, match="PortfolioTotals"):
            calculate_swr(1_000_000)  # type: ignore[arg-type]


# =============================================================================
# ADVANCED SWR
# =============================================================================


class TestAdvancedSWR:
    """Tests for calculate_advanced_swr"""

    def test_high_risk_penalty(self) -> None:
        result = calculate_advanced_swr(1_000_000, 3000, 2.0, 7.0)

        assert result.basic_swr == 4.0
        assert result.inflation_adjustment == 0.0
        assert result.risk_adjustment == 0.15
        assert result.risk_adjusted_swr == 3.85
        assert result.annual_withdrawal == 38_500
        assert result.monthly_withdrawal == pytest.approx(3208.33, abs=0.01)
        assert result.confidence_level is ConfidenceLevel.HIGH

    def test_inflation_penalty(self) -> None:
        result = calculate_advanced_swr(1_000_000, 3000, 4.0, 5.0)

        assert result.inflation_adjustment == 1.0
        assert result.inflation_adjusted_swr == 3.0
        assert result.risk_adjustment == 0.0
        assert any("High inflation" in w for w in result.warnings)

    def test_low_risk_bonus(self) -> None:
        result = calculate_advanced_swr(1_000_000, 3000, 2.0, 1.0)

        assert result.risk_adjustment == -0.3
        assert result.risk_adjusted_swr == 4.3

    def test_maximum_risk_score(self) -> None:
        result = calculate_advanced_swr(1_000_000, 1000, 2.0, 10.0)

        assert result.risk_adjustment == 0.6
        assert "Extremely high portfolio risk - consider rebalancing" in result.warnings
        assert result.confidence_level is ConfidenceLevel.MEDIUM

    def test_rate_floor(self) -> None:
        result = calculate_advanced_swr(1_000_000, 1000, 20.0, 10.0)
        assert result.risk_adjusted_swr == 1.0

    def test_low_confidence_for_small_asset_base(self) -> None:
        result = calculate_advanced_swr(100_000, 3000, 2.0, 5.0)

        assert result.confidence_level is ConfidenceLevel.LOW
        assert "Asset base may be insufficient for long-term retirement" in result.warnings

    def test_custom_base_rate(self) -> None:
        result = calculate_advanced_swr(
            1_000_000, 1000, 2.0, 5.0, settings=AdvancedSWRSettings(base_swr_rate=3.5)
        )
        assert result.risk_adjusted_swr == 3.5

    @pytest.mark.parametrize("assets", [0, -100, float("nan")])
    def test_invalid_assets(self, assets: float) -> None:
        result = calculate_advanced_swr(assets, 3000, 2.0, 5.0)

        assert result.risk_adjusted_swr == 0.0
        assert result.confidence_level is ConfidenceLevel.LOW
        assert result.warnings

    def test_negative_expenses(self) -> None:
        result = calculate_advanced_swr(1_000_000, -1, 2.0, 5.0)
        assert result.annual_withdrawal == 0.0
