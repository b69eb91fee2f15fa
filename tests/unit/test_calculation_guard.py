"""
Tests for the Calculation Guard module

Checks:
1. Successful calculations pass through unchanged
2. Exceptions, non-callable handles and non-finite results fall back
3. Sequence / mapping / dataclass results are inspected
4. Magnitude warnings do not trigger the fallback
5. Decimal bounds check of financial operations
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from src.core.math.calculation_guard import (
    CalculationOutcome,
    run_financial_operation,
    run_guarded,
    safe_calculation,
    safe_financial_operation,
    validate_financial_decimal,
)

# =============================================================================
# FIXTURES
# =============================================================================


@dataclass(frozen=True)
class _Metrics:
    value: float
    label: str


def _raise_key_error() -> float:
    raise KeyError("missing")


# =============================================================================
# VALIDATE FINANCIAL DECIMAL
# =============================================================================


class TestValidateFinancialDecimal:
    """Tests for validate_financial_decimal"""

    def test_regular_values_valid(self) -> None:
        assert validate_financial_decimal(Decimal("0"))
        assert validate_financial_decimal(Decimal("1234.56"))
        assert validate_financial_decimal(Decimal("-1e9"))

    def test_large_value_valid(self) -> None:
        assert validate_financial_decimal(Decimal("5e12"))

    def test_extreme_value_rejected(self) -> None:
        """Checked before the large-value branch, so 1e16 cannot slip through"""
        assert not validate_financial_decimal(Decimal("1e16"))

    def test_tiny_value_rejected(self) -> None:
        assert not validate_financial_decimal(Decimal("1e-9"))

    def test_non_finite_rejected(self) -> None:
        assert not validate_financial_decimal(Decimal("NaN"))
        assert not validate_financial_decimal(Decimal("-Infinity"))


# =============================================================================
# RUN GUARDED
# =============================================================================


class TestRunGuarded:
    """Tests for run_guarded"""

    def test_success(self) -> None:
        outcome = run_guarded(lambda: 42.0, fallback=0.0, context="answer")
        assert outcome == CalculationOutcome(value=42.0, used_fallback=False, context="answer")
        assert outcome.ok

    def test_exception_uses_fallback(self) -> None:
        outcome = run_guarded(_raise_key_error, fallback=-1.0, context="lookup")
        assert outcome.value == -1.0
        assert outcome.used_fallback
        assert "KeyError" in outcome.errors[0]

    def test_zero_division_uses_fallback(self) -> None:
        outcome = run_guarded(lambda: 1 / 0, fallback=0.0)
        assert outcome.used_fallback

    def test_non_callable_handle_uses_fallback(self) -> None:
        outcome = run_guarded(42, fallback=0.0, context="broken")  # type: ignore[arg-type]
        assert outcome.value == 0.0
        assert outcome.used_fallback
        assert "not callable" in outcome.errors[0]

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), Decimal("NaN")])
    def test_non_finite_result_uses_fallback(self, bad: object) -> None:
        outcome = run_guarded(lambda: bad, fallback=7.0)
        assert outcome.value == 7.0
        assert outcome.used_fallback

    def test_sequence_with_invalid_element(self) -> None:
        outcome = run_guarded(lambda: [1.0, float("nan")], fallback=[])
        assert outcome.value == []
        assert "element 1" in outcome.errors[0]

    def test_empty_sequence_warns_only(self) -> None:
        outcome = run_guarded(lambda: [], fallback=[0.0])
        assert outcome.value == []
        assert not outcome.used_fallback
        assert outcome.warnings

    def test_mapping_with_invalid_value(self) -> None:
        outcome = run_guarded(lambda: {"a": 1.0, "b": float("inf")}, fallback={})
        assert outcome.used_fallback
        assert "'b'" in outcome.errors[0]

    def test_dataclass_fields_inspected(self) -> None:
        outcome = run_guarded(lambda: _Metrics(float("nan"), "x"), fallback=_Metrics(0.0, "fallback"))
        assert outcome.value.label == "fallback"

    def test_large_value_warns_without_fallback(self) -> None:
        outcome = run_guarded(lambda: 5e12, fallback=0.0)
        assert outcome.value == 5e12
        assert not outcome.used_fallback
        assert "very large" in outcome.warnings[0]

    def test_tiny_value_warns_without_fallback(self) -> None:
        outcome = run_guarded(lambda: 1e-9, fallback=0.0)
        assert outcome.value == 1e-9
        assert "very small" in outcome.warnings[0]

    def test_booleans_not_inspected(self) -> None:
        assert run_guarded(lambda: True, fallback=False).value is True

    def test_error_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("ERROR"):
            run_guarded(_raise_key_error, fallback=0.0, context="Lookup table")
        assert "Lookup table" in caplog.text


class TestSafeCalculation:
    """Tests for safe_calculation"""

    def test_returns_value_only(self) -> None:
        assert safe_calculation(lambda: 3.0, fallback=0.0) == 3.0
        assert safe_calculation(_raise_key_error, fallback=9.0) == 9.0


# =============================================================================
# FINANCIAL OPERATIONS
# =============================================================================


class TestSafeFinancialOperation:
    """Tests for safe_financial_operation / run_financial_operation"""

    def test_decimal_result_converted(self) -> None:
        assert safe_financial_operation(lambda: Decimal("12.5")) == 12.5

    def test_float_result_accepted(self) -> None:
        assert safe_financial_operation(lambda: 0.25) == 0.25

    def test_out_of_bounds_uses_fallback(self) -> None:
        assert safe_financial_operation(lambda: Decimal("1e16"), fallback=-1.0) == -1.0
        assert safe_financial_operation(lambda: Decimal("1e-9"), fallback=-1.0) == -1.0

    def test_non_numeric_result_uses_fallback(self) -> None:
        outcome = run_financial_operation(lambda: "12", fallback=0.0)  # type: ignore[arg-type, return-value]
        assert outcome.used_fallback
        assert "expected a number" in outcome.errors[0]

    def test_zero_is_valid(self) -> None:
        outcome = run_financial_operation(lambda: Decimal(0), fallback=-1.0)
        assert outcome.value == 0.0
        assert outcome.ok
