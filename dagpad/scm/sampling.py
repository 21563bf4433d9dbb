"""Batched forward sampling of a parsed SCM."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping

import torch
from torch import Tensor

from dagpad.scm.expression.interpreter import DTYPE, as_value
from dagpad.scm.noise import (
    NoiseState,
    build_noise_augmented_graph,
    get_noise_target_id,
    is_noise_id,
)
from dagpad.scm.parser import ModelEntry
from dagpad.scm.propagation import propagate
from dagpad.scm.topology import topo_sort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariableRange:
    """Closed sampling range of one variable."""

    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


DEFAULT_RANGE = VariableRange(min=-100.0, max=100.0)


@dataclass(frozen=True)
class SamplingConfig:
    """Configuration for :func:`generate_samples`.

    Attributes:
        num_samples: Number of rows to draw.
        noise_enabled: Draw Gaussian noise for every variable instead of
            drawing root variables uniformly.
        noise_amount: Noise standard deviation as a fraction of each
            variable's range span.
        seed: Seed for the sampling generator. ``None`` seeds it randomly.
    """

    num_samples: int = 200
    noise_enabled: bool = False
    noise_amount: float = 0.0
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.num_samples < 0:
            raise ValueError("num_samples must be non-negative.")

    @property
    def uses_noise(self) -> bool:
        return self.noise_enabled and self.noise_amount > 0


def find_root_nodes(eqs: Mapping[str, Iterable[str]]) -> list[str]:
    """Variables without real parents. Noise nodes and noise parents are ignored."""
    roots = []
    for node, parents in eqs.items():
        if is_noise_id(node):
            continue
        if all(is_noise_id(parent) for parent in parents or ()):
            roots.append(node)
    return roots


def get_user_variables(all_vars: Iterable[str]) -> list[str]:
    """Sorted variable names, without noise nodes."""
    return sorted(name for name in all_vars or () if not is_noise_id(name))


def _make_generator(seed: int | None) -> torch.Generator:
    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(seed)
    return generator


def _range_for(ranges: Mapping[str, VariableRange], name: str) -> VariableRange:
    return ranges.get(name, DEFAULT_RANGE)


def _clip(value: Tensor, variable_range: VariableRange) -> Tensor:
    clipped = value.clamp(min=variable_range.min, max=variable_range.max)
    return torch.where(torch.isfinite(value), clipped, value)


def generate_samples(
    model: Mapping[str, ModelEntry],
    eqs: Mapping[str, Iterable[str]],
    all_vars: Iterable[str],
    values: Mapping[str, float],
    config: SamplingConfig | None = None,
    interventions: Mapping[str, bool] | None = None,
    ranges: Mapping[str, VariableRange] | None = None,
) -> list[dict[str, float]]:
    """Draw rows from the SCM, all in one batched propagation pass.

    Without noise, every root variable that is not intervened on is drawn
    uniformly from its range and held there. With noise, every variable
    ``X`` gets Gaussian noise ``noise:X`` with standard deviation
    ``noise_amount * span(X)``, which feeds ``error`` and equation-less
    variables.

    Args:
        model: Parsed model.
        eqs: Dependency graph of ``model``.
        all_vars: Every variable of the model.
        values: Current values. Intervened variables are held at these.
        config: Sampling configuration.
        interventions: Variables under ``do()``.
        ranges: Per-variable ranges. Unlisted variables use
            :data:`DEFAULT_RANGE` for drawing and are not clipped.

    Returns:
        One mapping per row from each user variable to its value.

    Raises:
        CycleError: If ``eqs`` is not a DAG.
        EvaluationError: If a variable's expression cannot be evaluated.
    """
    config = config or SamplingConfig()
    interventions = interventions or {}
    ranges = ranges or {}
    num_samples = config.num_samples
    generator = _make_generator(config.seed)

    augmented = build_noise_augmented_graph(eqs, all_vars)
    order = topo_sort(augmented.eqs)
    user_vars = get_user_variables(all_vars)

    clamp_map = {name: bool(interventions.get(name)) for name in augmented.all_vars}
    batch: dict[str, Tensor] = {
        name: torch.full((num_samples,), float(value), dtype=DTYPE)
        for name, value in values.items()
    }
    for name in order:
        batch.setdefault(name, torch.zeros(num_samples, dtype=DTYPE))

    noise_state = None
    if config.uses_noise:
        by_node = {}
        for noise_id in sorted(augmented.noise_nodes):
            span = _range_for(ranges, get_noise_target_id(noise_id)).span
            sigma = abs(config.noise_amount * span) if math.isfinite(span) else 0.0
            by_node[noise_id] = (
                torch.randn(num_samples, generator=generator, dtype=DTYPE) * sigma
            )
        noise_state = NoiseState(by_node=by_node)
    else:
        for root in find_root_nodes(augmented.eqs):
            if clamp_map.get(root):
                continue
            root_range = _range_for(ranges, root)
            draws = torch.rand(num_samples, generator=generator, dtype=DTYPE)
            batch[root] = root_range.min + draws * root_range.span
            clamp_map[root] = True

    logger.debug(
        "Sampling %d rows over %d variables (noise=%s)",
        num_samples,
        len(user_vars),
        config.uses_noise,
    )
    propagate(model, order, batch, clamp_map=clamp_map, noise_state=noise_state)

    columns: dict[str, list[float]] = {}
    for name in user_vars:
        column = as_value(batch.get(name, 0.0)).expand(num_samples)
        if name in ranges:
            column = _clip(column, ranges[name])
        columns[name] = column.tolist()

    return [
        {name: columns[name][row] for name in user_vars} for row in range(num_samples)
    ]


class SamplingMixin:
    """Mixin adding batched sampling to a parsed SCM.

    This mixin requires the class to have:
        - model: dict[str, ModelEntry] - parsed equations
        - eqs: dict[str, set[str]] - mapping of variables to their parents
        - all_vars: set[str] - every variable of the model
    """

    model: "dict[str, ModelEntry]"
    eqs: "dict[str, set[str]]"
    all_vars: "set[str]"

    def generate(
        self,
        num_samples: int = 200,
        values: Mapping[str, float] | None = None,
        interventions: Mapping[str, bool] | None = None,
        ranges: Mapping[str, VariableRange] | None = None,
        noise_amount: float = 0.0,
        seed: int | None = None,
    ) -> list[dict[str, float]]:
        """Draw ``num_samples`` rows. A positive ``noise_amount`` enables noise mode."""
        config = SamplingConfig(
            num_samples=num_samples,
            noise_enabled=noise_amount > 0,
            noise_amount=noise_amount,
            seed=seed,
        )
        return generate_samples(
            self.model,
            self.eqs,
            self.all_vars,
            values or {},
            config=config,
            interventions=interventions,
            ranges=ranges,
        )
