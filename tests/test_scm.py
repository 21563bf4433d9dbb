"""Tests for the SCM class."""

import pytest

from dagpad.scm import SCM, CycleError, ParseError, build_parsed_scm


@pytest.fixture
def chain_scm() -> SCM:
    """Create a chain SCM: U -> X -> Y."""
    return SCM("U = 2\nX = 1 + 0.5*U\nY = -1 + 2*X")


@pytest.fixture
def confounded_scm() -> SCM:
    """Create a confounded SCM: X <- Z -> Y, X -> Y."""
    return SCM("Z = 1\nX = 2*Z\nY = X + 3*Z")


class TestBuildParsedSCM:
    """Tests for build_parsed_scm."""

    def test_fields(self) -> None:
        """Test the parsed model, graph and order."""
        parsed = build_parsed_scm("Y = 2*X\nX = 1")
        assert parsed.eqs == {"Y": {"X"}, "X": set()}
        assert parsed.all_vars == {"X", "Y"}
        assert parsed.order == ("X", "Y")

    def test_cycle(self) -> None:
        """Test that cyclic text is rejected."""
        with pytest.raises(CycleError):
            build_parsed_scm("A = B\nB = A")

    def test_parse_error(self) -> None:
        """Test that malformed text is rejected."""
        with pytest.raises(ParseError):
            build_parsed_scm("A == B")


class TestSCM:
    """Tests for the SCM facade."""

    def test_variable_names(self, chain_scm: SCM) -> None:
        """Test that variables come out in topological order."""
        assert chain_scm.variable_names == ["U", "X", "Y"]

    def test_compute_values(self, chain_scm: SCM) -> None:
        """Test one propagation pass."""
        assert chain_scm.compute_values() == {"U": 2.0, "X": 2.0, "Y": 3.0}

    def test_intervention(self, chain_scm: SCM) -> None:
        """Test do() on the middle of the chain."""
        result = chain_scm.compute_values(values={"X": 99.0}, interventions={"X": True})
        assert result["U"] == 2.0
        assert result["X"] == 99.0
        assert result["Y"] == 197.0

    def test_noise(self) -> None:
        """Test injected noise through error."""
        scm = SCM("X = 1 + error")
        assert scm.compute_values(noise={"X": 0.5}) == {"X": 1.5}

    def test_edge_status(self, confounded_scm: SCM) -> None:
        """Test edge classification for a confounder control."""
        result = confounded_scm.edge_status("X", "Y", ["Z"])
        assert result == {"Z->X": "good", "Z->Y": "good"}

    def test_generate(self, confounded_scm: SCM) -> None:
        """Test sampling through the facade."""
        rows = confounded_scm.generate(num_samples=10, seed=0)
        assert len(rows) == 10
        for row in rows:
            assert row["X"] == pytest.approx(2 * row["Z"])
            assert row["Y"] == pytest.approx(row["X"] + 3 * row["Z"])

    def test_linear_summary(self, confounded_scm: SCM) -> None:
        """Test the linear form of one equation."""
        summary = confounded_scm.linear_summary("Y")
        assert summary is not None
        assert summary.terms == {"X": 1.0, "Z": 3.0}
        assert confounded_scm.linear_summary("Z").terms == {}

    def test_linear_summary_unknown(self, confounded_scm: SCM) -> None:
        """Test asking for an unknown variable."""
        with pytest.raises(KeyError):
            confounded_scm.linear_summary("Q")
