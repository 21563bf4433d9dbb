"""Tests for linear-form utilities."""

import pytest

from dagpad.scm.expression import Scope, evaluate_expression, parse_expression
from dagpad.scm.linear import (
    LinearSummary,
    build_linear_expression,
    format_number,
    get_linear_coefficient,
    get_linear_summary,
    update_linear_coefficient,
)


def _summary(text: str) -> LinearSummary | None:
    return get_linear_summary(parse_expression(text))


class TestGetLinearSummary:
    """Tests for get_linear_summary."""

    def test_terms_and_constant(self) -> None:
        """Test extracting coefficients and the intercept."""
        summary = _summary("2*A + 3*B - 1")
        assert summary is not None
        assert summary.terms == {"A": 2.0, "B": 3.0}
        assert summary.order == ("A", "B")
        assert summary.constant == -1.0

    def test_combines_repeated_terms(self) -> None:
        """Test that repeated variables are summed."""
        summary = _summary("A + 2*A - B / 2")
        assert summary is not None
        assert summary.terms == {"A": 3.0, "B": -0.5}

    def test_cancelled_terms_are_dropped(self) -> None:
        """Test that zero coefficients disappear."""
        summary = _summary("A - A + B")
        assert summary is not None
        assert summary.terms == {"B": 1.0}
        assert summary.order == ("B",)

    def test_constants(self) -> None:
        """Test that PI counts as a constant."""
        summary = _summary("PI * X")
        assert summary is not None
        assert summary.coefficient("X") == pytest.approx(3.141592653589793)

    @pytest.mark.parametrize(
        "text",
        ["A * B", "sin(A)", "1 / A", "A > 1", "A ? 1 : 2", "A ^ 2", "A / 0", "-!A"],
    )
    def test_non_linear(self, text: str) -> None:
        """Test that non-affine expressions have no summary."""
        assert _summary(text) is None

    def test_none(self) -> None:
        """Test that an absent expression has no summary."""
        assert get_linear_summary(None) is None


class TestLinearCoefficient:
    """Tests for get_linear_coefficient and update_linear_coefficient."""

    def test_get(self) -> None:
        """Test reading one coefficient."""
        node = parse_expression("2*A + 1")
        assert get_linear_coefficient(node, "A") == 2.0
        assert get_linear_coefficient(node, "Z") == 0.0
        assert get_linear_coefficient(parse_expression("A * A"), "A") is None

    def test_set_existing(self) -> None:
        """Test changing a coefficient keeps term order."""
        summary = update_linear_coefficient(_summary("A + 2*B"), "A", 0.5)
        assert build_linear_expression(summary) == "0.5*A + 2*B"

    def test_add_and_remove(self) -> None:
        """Test appending a term and removing one with zero."""
        summary = update_linear_coefficient(_summary("2*A + 1"), "B", 3)
        assert build_linear_expression(summary) == "2*A + 3*B + 1"
        summary = update_linear_coefficient(summary, "A", 0)
        assert build_linear_expression(summary) == "3*B + 1"


class TestBuildLinearExpression:
    """Tests for build_linear_expression and format_number."""

    def test_signs_and_unit_coefficients(self) -> None:
        """Test formatting of negative and unit coefficients."""
        summary = LinearSummary(terms={"A": -1.0, "B": 1.0}, order=("A", "B"), constant=-2.5)
        assert build_linear_expression(summary) == "-A + B - 2.5"

    def test_empty(self) -> None:
        """Test that an empty summary serializes to zero."""
        assert build_linear_expression(LinearSummary()) == "0"
        assert build_linear_expression(None) == "0"

    def test_format_number(self) -> None:
        """Test rounding and trimming of numbers."""
        assert format_number(2.5) == "2.5"
        assert format_number(3.0) == "3"
        assert format_number(1 / 3) == "0.3333"
        assert format_number(-0.00001) == "0"
        assert format_number(float("nan")) == "0"

    @pytest.mark.parametrize("text", ["2*A + 3*B - 1", "-(A - 4) / 2 + B", "0.25*A"])
    def test_rebuilt_expression_evaluates_identically(self, text: str) -> None:
        """Test that serializing a summary preserves the function."""
        rebuilt = build_linear_expression(_summary(text))
        scope = Scope(values={"A": 1.7, "B": -3.2})
        original = float(evaluate_expression(parse_expression(text), scope))
        assert float(evaluate_expression(parse_expression(rebuilt), scope)) == pytest.approx(original)
