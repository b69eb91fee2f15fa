"""
Portfolio analytics.

Growth (CAGR), safe withdrawal rates, MPT risk scoring, emergency fund
coverage and snapshot net-worth helpers.
"""

from src.analytics.emergency_fund import (
    EmergencyFundAccountCheck,
    EmergencyFundMetrics,
    EmergencyFundStatus,
    calculate_emergency_fund_from_assets,
    calculate_emergency_fund_metrics,
    find_emergency_fund_account,
)
from src.analytics.growth import CAGRMethod, CAGRResult, calculate_cagr, safe_cagr
from src.analytics.net_worth import (
    calculate_real_estate_net_worth,
    get_asset_cost_basis,
    get_asset_current_price,
    get_asset_current_value,
    get_asset_quantity,
    get_transactions_for_asset,
)
from src.analytics.risk import (
    EfficiencyRating,
    calculate_expected_return,
    calculate_portfolio_efficiency_score,
    calculate_portfolio_risk_score,
    calculate_portfolio_sharpe_ratio,
    calculate_portfolio_variance,
    calculate_portfolio_volatility,
    calculate_sharpe_ratio,
    calculate_volatility_risk_score,
    get_asset_correlation,
    get_asset_volatility,
    get_correlation_matrix,
    normalize_allocations,
    rate_efficiency,
)
from src.analytics.withdrawal import (
    AdvancedSWRConfig,
    ConfidenceLevel,
    RiskLevel,
    SWRCalculationResult,
    SWRConfig,
    SWRResult,
    calculate_advanced_swr,
    calculate_swr,
)

__all__ = [
    # Growth
    "CAGRMethod",
    "CAGRResult",
    "calculate_cagr",
    "safe_cagr",
    # Withdrawal
    "AdvancedSWRConfig",
    "ConfidenceLevel",
    "RiskLevel",
    "SWRCalculationResult",
    "SWRConfig",
    "SWRResult",
    "calculate_advanced_swr",
    "calculate_swr",
    # Risk
    "EfficiencyRating",
    "calculate_expected_return",
    "calculate_portfolio_efficiency_score",
    "calculate_portfolio_risk_score",
    "calculate_portfolio_sharpe_ratio",
    "calculate_portfolio_variance",
    "calculate_portfolio_volatility",
    "calculate_sharpe_ratio",
    "calculate_volatility_risk_score",
    "get_asset_correlation",
    "get_asset_volatility",
    "get_correlation_matrix",
    "normalize_allocations",
    "rate_efficiency",
    # Emergency fund
    "EmergencyFundAccountCheck",
    "EmergencyFundMetrics",
    "EmergencyFundStatus",
    "calculate_emergency_fund_from_assets",
    "calculate_emergency_fund_metrics",
    "find_emergency_fund_account",
    # Net worth
    "calculate_real_estate_net_worth",
    "get_asset_cost_basis",
    "get_asset_current_price",
    "get_asset_current_value",
    "get_asset_quantity",
    "get_transactions_for_asset",
]
