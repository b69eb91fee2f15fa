"""
Core math modules for the finance engine.

Float guards, the decimal arithmetic layer and the calculation guard that
every higher-level calculator goes through.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    # Epsilon constants
    EPS_FLOAT_COMPARE_ABS,
    EPS_FLOAT_COMPARE_REL,
    # Financial bounds
    LARGE_FINANCIAL_VALUE,
    MAX_FINANCIAL_VALUE,
    MIN_FINANCIAL_MAGNITUDE,
    TINY_INPUT_MAGNITUDE,
    # NaN/Inf sanitization
    is_valid_float,
    sanitize_float,
    # Comparisons
    is_close,
    is_zero,
    # Utilities
    clamp,
    round_half_up,
    # Validation
    normalize_big_number,
    validate_financial_input,
    validate_financial_value,
)

# Calculation Guard
from src.core.math.calculation_guard import (
    CalculationOutcome,
    run_financial_operation,
    run_guarded,
    safe_calculation,
    safe_financial_operation,
    validate_financial_decimal,
)

# Decimal Arithmetic
from src.core.math.decimal_arithmetic import (
    FINANCIAL_CONTEXT,
    NATIVE_PATH_THRESHOLD,
    WORKING_CONTEXT,
    ArithmeticPath,
    decimal_add,
    decimal_compound_growth,
    decimal_divide,
    decimal_multiply,
    decimal_percentage,
    decimal_percentage_change,
    decimal_standard_deviation,
    decimal_subtract,
    decimal_variance,
    decimal_weighted_average,
    safe_add,
    safe_compound_growth,
    safe_divide,
    safe_multiply,
    safe_percentage,
    safe_percentage_change,
    safe_standard_deviation,
    safe_subtract,
    safe_variance,
    safe_weighted_average,
    select_arithmetic_path,
    to_decimal,
    to_float,
)

__all__ = [
    # Numerical Safeguards: Epsilon constants
    "EPS_FLOAT_COMPARE_ABS",
    "EPS_FLOAT_COMPARE_REL",
    # Numerical Safeguards: Financial bounds
    "LARGE_FINANCIAL_VALUE",
    "MAX_FINANCIAL_VALUE",
    "MIN_FINANCIAL_MAGNITUDE",
    "TINY_INPUT_MAGNITUDE",
    # Numerical Safeguards: NaN/Inf sanitization
    "is_valid_float",
    "sanitize_float",
    # Numerical Safeguards: Comparisons
    "is_close",
    "is_zero",
    # Numerical Safeguards: Utilities
    "clamp",
    "round_half_up",
    # Numerical Safeguards: Validation
    "normalize_big_number",
    "validate_financial_input",
    "validate_financial_value",
    # Calculation Guard
    "CalculationOutcome",
    "run_financial_operation",
    "run_guarded",
    "safe_calculation",
    "safe_financial_operation",
    "validate_financial_decimal",
    # Decimal Arithmetic: Context
    "FINANCIAL_CONTEXT",
    "NATIVE_PATH_THRESHOLD",
    "WORKING_CONTEXT",
    "ArithmeticPath",
    # Decimal Arithmetic: Conversion
    "to_decimal",
    "to_float",
    # Decimal Arithmetic: Kernels
    "decimal_add",
    "decimal_compound_growth",
    "decimal_divide",
    "decimal_multiply",
    "decimal_percentage",
    "decimal_percentage_change",
    "decimal_standard_deviation",
    "decimal_subtract",
    "decimal_variance",
    "decimal_weighted_average",
    # Decimal Arithmetic: Dual-path wrappers
    "safe_add",
    "safe_divide",
    "safe_multiply",
    "safe_percentage",
    "safe_percentage_change",
    "safe_subtract",
    "select_arithmetic_path",
    # Decimal Arithmetic: Guarded statistics
    "safe_compound_growth",
    "safe_standard_deviation",
    "safe_variance",
    "safe_weighted_average",
]
