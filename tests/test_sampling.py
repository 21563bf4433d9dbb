"""Tests for batched SCM sampling."""

import statistics

import pytest

from dagpad.scm.errors import EvaluationError
from dagpad.scm.parser import parse_scm
from dagpad.scm.sampling import (
    DEFAULT_RANGE,
    SamplingConfig,
    VariableRange,
    find_root_nodes,
    generate_samples,
    get_user_variables,
)
from dagpad.scm.topology import deps_from_model


def _sample(text: str, config: SamplingConfig, **kwargs) -> list[dict[str, float]]:
    parsed = parse_scm(text)
    return generate_samples(
        parsed.model,
        deps_from_model(parsed.model),
        parsed.all_vars,
        kwargs.pop("values", {}),
        config=config,
        **kwargs,
    )


class TestHelpers:
    """Tests for root and user-variable helpers."""

    def test_root_nodes_ignore_noise(self) -> None:
        """Test that noise parents do not count as parents."""
        eqs = {"X": {"noise:X"}, "Y": {"X", "noise:Y"}, "noise:X": set(), "noise:Y": set()}
        assert find_root_nodes(eqs) == ["X"]

    def test_user_variables(self) -> None:
        """Test that noise nodes are dropped and names sorted."""
        assert get_user_variables({"Y", "noise:X", "A"}) == ["A", "Y"]

    def test_config(self) -> None:
        """Test configuration defaults and validation."""
        config = SamplingConfig()
        assert config.num_samples == 200
        assert not config.uses_noise
        assert SamplingConfig(noise_enabled=True, noise_amount=0.1).uses_noise
        assert not SamplingConfig(noise_enabled=True, noise_amount=0.0).uses_noise
        assert DEFAULT_RANGE.span == 200.0
        with pytest.raises(ValueError):
            SamplingConfig(num_samples=-1)


class TestGenerateSamples:
    """Tests for generate_samples."""

    def test_rows_and_columns(self) -> None:
        """Test row count and sorted user-variable columns."""
        rows = _sample("Y = 2*X", SamplingConfig(num_samples=5, seed=0))
        assert len(rows) == 5
        assert all(list(row) == ["X", "Y"] for row in rows)

    def test_roots_drawn_in_range(self) -> None:
        """Test that roots are drawn uniformly within their range."""
        rows = _sample(
            "Y = 2*X + 1",
            SamplingConfig(num_samples=100, seed=1),
            ranges={"X": VariableRange(0.0, 1.0)},
        )
        for row in rows:
            assert 0.0 <= row["X"] <= 1.0
            assert row["Y"] == pytest.approx(2 * row["X"] + 1)
        assert len({row["X"] for row in rows}) > 1

    def test_seed_is_reproducible(self) -> None:
        """Test that a fixed seed reproduces the rows."""
        config = SamplingConfig(num_samples=10, seed=42)
        assert _sample("Y = X", config) == _sample("Y = X", config)

    def test_intervention_holds_value(self) -> None:
        """Test that intervened variables keep their current value."""
        rows = _sample(
            "X = U\nY = 2*X",
            SamplingConfig(num_samples=20, seed=0),
            values={"X": 5.0},
            interventions={"X": True},
        )
        assert all(row["X"] == 5.0 and row["Y"] == 10.0 for row in rows)

    def test_outputs_clipped_to_range(self) -> None:
        """Test that values are clipped into their variable's range."""
        rows = _sample(
            "Y = 2*X",
            SamplingConfig(num_samples=50, seed=3),
            ranges={"Y": VariableRange(-1.0, 1.0)},
        )
        assert all(-1.0 <= row["Y"] <= 1.0 for row in rows)
        assert max(abs(row["X"]) for row in rows) > 1.0

    def test_no_clipping_without_range(self) -> None:
        """Test that variables without a range are not clipped."""
        rows = _sample("Y = 2*X", SamplingConfig(num_samples=200, seed=4))
        assert max(abs(row["Y"]) for row in rows) > 100.0

    def test_noise_mode(self) -> None:
        """Test Gaussian noise scaled by the range span."""
        config = SamplingConfig(num_samples=2000, noise_enabled=True, noise_amount=0.1, seed=5)
        rows = _sample("A = 1\nY = 2*X + error", config)
        xs = [row["X"] for row in rows]
        assert all(row["A"] == 1.0 for row in rows)
        assert abs(statistics.fmean(xs)) < 2.0
        assert 17.0 < statistics.pstdev(xs) < 23.0
        assert statistics.pstdev([row["Y"] - 2 * row["X"] for row in rows]) > 10.0

    def test_empty(self) -> None:
        """Test that zero rows can be requested."""
        assert _sample("Y = X", SamplingConfig(num_samples=0)) == []

    def test_errors_propagate(self) -> None:
        """Test that evaluation errors are not swallowed."""
        with pytest.raises(EvaluationError):
            _sample("Y = sin(X, 1)", SamplingConfig(num_samples=3, seed=0))
