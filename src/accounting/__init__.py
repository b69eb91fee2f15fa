"""
Cost-basis accounting.

Lot queues (FIFO / LIFO / AVERAGE_COST), cost basis of open positions and
capital-gains tax over a transaction history.
"""

from src.accounting.capital_gains import (
    AssetTypeBreakdown,
    CapitalGainsReport,
    CapitalGainsSummary,
    TaxableSale,
    YearlyTaxSummary,
    analyze_taxes_by_year,
    calculate_capital_gains_tax,
    calculate_tax_for_asset_type,
    get_tax_rate_for_asset,
)
from src.accounting.cost_basis import (
    CostBasisCalculation,
    CostBasisResult,
    apply_cost_basis_method,
    calculate_average_cost_basis,
    calculate_cost_basis,
    calculate_fifo_cost_basis,
    calculate_lifo_cost_basis,
)
from src.accounting.lots import (
    CONSOLIDATED_LOT_ID,
    ConsumedTranche,
    Lot,
    LotQueue,
    SaleOutcome,
    consolidate_lots,
    consume_lots,
    order_lots,
)
from src.accounting.transactions import (
    DatedTransaction,
    InvalidTransactionPayload,
    coerce_transactions,
    group_by_instrument,
    parse_transaction,
    prepare_transactions,
)

__all__ = [
    # Transactions
    "DatedTransaction",
    "InvalidTransactionPayload",
    "coerce_transactions",
    "group_by_instrument",
    "parse_transaction",
    "prepare_transactions",
    # Lots
    "CONSOLIDATED_LOT_ID",
    "ConsumedTranche",
    "Lot",
    "LotQueue",
    "SaleOutcome",
    "consolidate_lots",
    "consume_lots",
    "order_lots",
    # Cost basis
    "CostBasisCalculation",
    "CostBasisResult",
    "apply_cost_basis_method",
    "calculate_average_cost_basis",
    "calculate_cost_basis",
    "calculate_fifo_cost_basis",
    "calculate_lifo_cost_basis",
    # Capital gains
    "AssetTypeBreakdown",
    "CapitalGainsReport",
    "CapitalGainsSummary",
    "TaxableSale",
    "YearlyTaxSummary",
    "analyze_taxes_by_year",
    "calculate_capital_gains_tax",
    "calculate_tax_for_asset_type",
    "get_tax_rate_for_asset",
]
