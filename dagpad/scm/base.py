"""Parsed structural causal model built from equation text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from dagpad.scm.dseparation import EdgeStatusMixin
from dagpad.scm.linear import LinearSummary, get_linear_summary
from dagpad.scm.noise import NoiseState, build_noise_id
from dagpad.scm.parser import ModelEntry, parse_scm
from dagpad.scm.propagation import compute_values
from dagpad.scm.sampling import SamplingMixin
from dagpad.scm.topology import deps_from_model, topo_sort


@dataclass(frozen=True)
class ParsedSCM:
    """A parsed, validated SCM.

    Attributes:
        model: Parsed entry per variable.
        eqs: Mapping from each variable to its parents.
        all_vars: Every assigned or referenced variable.
        order: A topological order of ``eqs``.
    """

    model: dict[str, ModelEntry]
    eqs: dict[str, set[str]]
    all_vars: set[str]
    order: tuple[str, ...]


def build_parsed_scm(text: str) -> ParsedSCM:
    """Parse ``text``, derive its dependency graph and check that it is a DAG.

    Raises:
        ParseError: If the text cannot be parsed.
        CycleError: If the equations form a directed cycle.
    """
    parsed = parse_scm(text)
    eqs = deps_from_model(parsed.model)
    order = topo_sort(eqs)
    return ParsedSCM(
        model=parsed.model,
        eqs=eqs,
        all_vars=parsed.all_vars,
        order=tuple(order),
    )


class SCM(EdgeStatusMixin, SamplingMixin):
    """A Structural Causal Model (SCM) written as equations ``NAME = EXPR``."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._parsed = build_parsed_scm(text)

    @property
    def model(self) -> dict[str, ModelEntry]:
        return self._parsed.model

    @property
    def eqs(self) -> dict[str, set[str]]:
        return self._parsed.eqs

    @property
    def all_vars(self) -> set[str]:
        return self._parsed.all_vars

    @property
    def order(self) -> tuple[str, ...]:
        return self._parsed.order

    @property
    def variable_names(self) -> list[str]:
        return list(self.order)

    def compute_values(
        self,
        values: Mapping[str, float] | None = None,
        interventions: Mapping[str, bool] | None = None,
        noise: Mapping[str, float] | None = None,
    ) -> dict[str, float]:
        """Propagate ``values`` through the equations once.

        Args:
            values: Seed values. Intervened variables keep theirs.
            interventions: Variables under ``do()``.
            noise: Noise per variable name, read by ``error`` and by
                equation-less variables.

        Returns:
            The value of every variable.
        """
        noise_state = None
        if noise:
            noise_state = NoiseState(
                by_node={build_noise_id(name): value for name, value in noise.items()}
            )
        return compute_values(
            self.model,
            self.eqs,
            values or {},
            clamp_map=interventions,
            noise_state=noise_state,
        )

    def linear_summary(self, name: str) -> LinearSummary | None:
        """Linear form of ``name``'s equation, or None if it is not linear."""
        entry = self.model.get(name)
        if entry is None:
            raise KeyError(f"Unknown variable {name!r}.")
        return get_linear_summary(entry.expression)
