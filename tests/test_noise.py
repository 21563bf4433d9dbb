"""Tests for noise identifiers and noise augmentation."""

from dagpad.scm.noise import (
    NoiseState,
    build_noise_augmented_graph,
    build_noise_id,
    build_noise_label,
    get_noise_target_id,
    is_noise_id,
)


class TestNoiseIds:
    """Tests for noise identifier helpers."""

    def test_round_trip(self) -> None:
        """Test building and reading a noise id."""
        noise_id = build_noise_id("X")
        assert noise_id == "noise:X"
        assert is_noise_id(noise_id)
        assert get_noise_target_id(noise_id) == "X"
        assert build_noise_label(noise_id) == "U_X"

    def test_ordinary_ids(self) -> None:
        """Test that ordinary ids are not noise ids."""
        assert not is_noise_id("X")
        assert get_noise_target_id("X") == ""
        assert build_noise_label("X") == "X"

    def test_noise_state(self) -> None:
        """Test looking up the noise of a variable."""
        state = NoiseState(by_node={"noise:X": 0.5})
        assert state.value_for("X") == 0.5
        assert state.value_for("Y") == 0.0


class TestNoiseAugmentedGraph:
    """Tests for build_noise_augmented_graph."""

    def test_every_variable_gets_noise_parent(self) -> None:
        """Test that real variables gain one parentless noise parent each."""
        graph = build_noise_augmented_graph({"Y": {"X"}, "X": set()}, {"X", "Y"})
        assert graph.eqs["Y"] == {"X", "noise:Y"}
        assert graph.eqs["X"] == {"noise:X"}
        assert graph.eqs["noise:X"] == set()
        assert graph.eqs["noise:Y"] == set()
        assert graph.noise_nodes == {"noise:X", "noise:Y"}
        assert graph.all_vars == {"X", "Y", "noise:X", "noise:Y"}

    def test_input_is_not_modified(self) -> None:
        """Test that the original graph is left untouched."""
        eqs = {"Y": {"X"}}
        build_noise_augmented_graph(eqs, {"X", "Y"})
        assert eqs == {"Y": {"X"}}

    def test_variable_only_in_all_vars(self) -> None:
        """Test that variables missing from the graph still get noise."""
        graph = build_noise_augmented_graph({}, {"Z"})
        assert graph.eqs["Z"] == {"noise:Z"}
