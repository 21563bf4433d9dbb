"""Tests for dependency graphs and topological ordering."""

import pytest

from dagpad.scm.errors import CycleError
from dagpad.scm.parser import parse_scm
from dagpad.scm.topology import (
    build_graph_signature,
    deps_from_model,
    topo_sort,
    would_create_cycle,
)


class TestDepsFromModel:
    """Tests for deps_from_model."""

    def test_parents(self) -> None:
        """Test that every variable maps to its parents."""
        model = parse_scm("X = U\nY = X + U").model
        assert deps_from_model(model) == {"X": {"U"}, "Y": {"X", "U"}, "U": set()}

    def test_empty(self) -> None:
        """Test that an empty model gives an empty graph."""
        assert deps_from_model({}) == {}


class TestTopoSort:
    """Tests for topo_sort."""

    def test_parents_first(self) -> None:
        """Test that each parent precedes its children."""
        eqs = {"Y": {"X", "U"}, "X": {"U"}, "U": set()}
        order = topo_sort(eqs)
        assert order.index("U") < order.index("X") < order.index("Y")

    def test_deterministic_order(self) -> None:
        """Test that roots come out in graph key order."""
        eqs = {"B": set(), "A": set(), "C": {"A", "B"}}
        assert topo_sort(eqs) == ["B", "A", "C"]

    def test_parent_without_entry(self) -> None:
        """Test that parents missing from the keys are treated as roots."""
        assert topo_sort({"Y": {"X"}}) == ["X", "Y"]

    def test_cycle(self) -> None:
        """Test that cycles raise CycleError."""
        with pytest.raises(CycleError, match="not a DAG"):
            topo_sort({"A": {"B"}, "B": {"A"}})

    def test_self_loop(self) -> None:
        """Test that a self-loop is a cycle."""
        with pytest.raises(CycleError):
            topo_sort(deps_from_model(parse_scm("X = X + 1").model))

    def test_empty(self) -> None:
        """Test that an empty graph has an empty order."""
        assert topo_sort({}) == []


class TestWouldCreateCycle:
    """Tests for would_create_cycle."""

    def test_back_edge(self) -> None:
        """Test that adding Y -> X to X -> Y closes a cycle."""
        eqs = {"Y": {"X"}, "X": set()}
        assert would_create_cycle(eqs, "Y", "X")
        assert not would_create_cycle(eqs, "X", "Y")

    def test_long_cycle(self) -> None:
        """Test cycles through intermediate nodes."""
        eqs = {"B": {"A"}, "C": {"B"}, "A": set()}
        assert would_create_cycle(eqs, "C", "A")
        assert not would_create_cycle(eqs, "A", "C")

    def test_self_loop(self) -> None:
        """Test that a self edge always closes a cycle."""
        assert would_create_cycle({}, "A", "A")


class TestGraphSignature:
    """Tests for build_graph_signature."""

    def test_order_independent(self) -> None:
        """Test that insertion order does not change the signature."""
        first = build_graph_signature({"Y": {"X", "Z"}, "X": set()})
        second = build_graph_signature({"X": set(), "Y": {"Z", "X"}})
        assert first == second
        assert first == '[["X",[]],["Y",["X","Z"]]]'

    def test_empty(self) -> None:
        """Test the signature of an empty graph."""
        assert build_graph_signature({}) == "[]"
