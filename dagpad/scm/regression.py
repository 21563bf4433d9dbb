"""Least squares, residualization against controls, LOESS and correlation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Hashable, Literal, Mapping, Sequence

import torch
from scipy import stats
from torch import Tensor

from dagpad.scm.expression.interpreter import DTYPE

DEFAULT_EPSILON = 1e-10

ResidualizationStatus = Literal["raw", "adjusted", "insufficient", "invalid", "singular"]


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    id: Hashable | None = None


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float


@dataclass(frozen=True)
class ResidualizationResult:
    """Points after removing the linear effect of the controls.

    ``status`` is ``"raw"`` (no controls), ``"adjusted"`` (residuals), or the
    reason no points were produced: ``"insufficient"``, ``"invalid"`` or
    ``"singular"``.
    """

    points: list[Point]
    status: ResidualizationStatus


@dataclass(frozen=True)
class CorrelationStats:
    r: float
    slope: float
    p_value: float
    n: int


def _as_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        return math.nan
    return float(value)


def get_sample_value(sample: Mapping[str, Any] | None, key: str) -> float:
    """Value of ``key`` in a sample, looking under ``sample["values"]`` first.

    Missing keys and values that are not real numbers read as NaN.
    """
    if not sample:
        return math.nan
    nested = sample.get("values")
    if isinstance(nested, Mapping) and key in nested:
        return _as_number(nested[key])
    if key in sample:
        return _as_number(sample[key])
    return math.nan


def _coordinates(points: Sequence[Point]) -> tuple[Tensor, Tensor]:
    xs = torch.tensor([point.x for point in points], dtype=DTYPE)
    ys = torch.tensor([point.y for point in points], dtype=DTYPE)
    return xs, ys


def solve_linear_system(
    matrix: Tensor | Sequence[Sequence[float]],
    vector: Tensor | Sequence[float],
    epsilon: float = DEFAULT_EPSILON,
) -> Tensor | None:
    """Solve ``matrix @ x = vector`` by Gaussian elimination with partial pivoting.

    Args:
        matrix: Square coefficient matrix.
        vector: Right-hand side.
        epsilon: Pivots smaller than this in magnitude count as zero.

    Returns:
        The solution, or None if the system is empty or (near) singular.
    """
    a = torch.as_tensor(matrix, dtype=DTYPE).clone()
    b = torch.as_tensor(vector, dtype=DTYPE).clone()
    size = a.shape[0] if a.dim() == 2 else 0
    if size == 0:
        return None

    for col in range(size):
        pivot_row = col + int(torch.argmax(a[col:, col].abs()))
        if abs(float(a[pivot_row, col])) < epsilon:
            return None
        if pivot_row != col:
            a[[col, pivot_row]] = a[[pivot_row, col]]
            b[[col, pivot_row]] = b[[pivot_row, col]]

        factors = a[col + 1 :, col] / a[col, col]
        a[col + 1 :, col:] -= factors[:, None] * a[col, col:]
        b[col + 1 :] -= factors * b[col]

    solution = torch.zeros(size, dtype=DTYPE)
    for row in range(size - 1, -1, -1):
        diag = a[row, row]
        if abs(float(diag)) < epsilon:
            return None
        residual = b[row] - torch.dot(a[row, row + 1 :], solution[row + 1 :])
        solution[row] = residual / diag
    return solution


def fit_linear_regression(points: Sequence[Point]) -> LinearFit | None:
    """Ordinary least squares of y on x.

    Returns None for fewer than two points or (near) constant x.
    """
    if len(points) < 2:
        return None
    xs, ys = _coordinates(points)
    dx = xs - xs.mean()
    var_x = float(torch.sum(dx * dx))
    if abs(var_x) < DEFAULT_EPSILON:
        return None
    slope = float(torch.sum(dx * (ys - ys.mean()))) / var_x
    intercept = float(ys.mean()) - slope * float(xs.mean())
    return LinearFit(slope=slope, intercept=intercept)


def build_linear_line(points: Sequence[Point]) -> list[Point] | None:
    """Endpoints of the OLS line over the observed x range."""
    fit = fit_linear_regression(points)
    if fit is None:
        return None
    xs = [point.x for point in points]
    min_x, max_x = min(xs), max(xs)
    if not math.isfinite(min_x) or not math.isfinite(max_x):
        return None
    return [
        Point(min_x, fit.intercept + fit.slope * min_x),
        Point(max_x, fit.intercept + fit.slope * max_x),
    ]


def _tricube_weights(xs: Tensor, target_x: float, neighbors: int) -> Tensor:
    distances = (xs - target_x).abs()
    sorted_distances, _ = torch.sort(distances)
    max_distance = float(sorted_distances[min(neighbors, len(sorted_distances)) - 1])
    if max_distance == 0:
        return torch.ones_like(distances)
    ratio = distances / max_distance
    weights = (1 - ratio**3) ** 3
    return torch.where(distances > max_distance, torch.zeros_like(weights), weights)


def build_loess_line(
    points: Sequence[Point],
    bandwidth: float = 0.6,
    steps: int | None = None,
) -> list[Point] | None:
    """Smooth curve through ``points`` by locally weighted linear fits.

    Each of ``steps`` evenly spaced x positions gets a weighted least-squares
    line over its nearest ``bandwidth * n`` points (at least 3) with tricube
    weights.

    Args:
        points: Observed points, in any order.
        bandwidth: Fraction of points per local fit, clamped to ``[0.2, 1]``.
        steps: Number of evaluation positions (at least 12). Defaults to
            ``min(36, 2 * n)``.

    Returns:
        The fitted curve, or None for fewer than three points, a degenerate
        x range, or fewer than two finite fitted positions.
    """
    n = len(points)
    if n < 3:
        return None
    bandwidth = min(1.0, max(0.2, bandwidth))
    steps = max(12, steps if steps is not None else min(36, n * 2))

    xs, ys = _coordinates(sorted(points, key=lambda point: point.x))
    min_x = float(xs[0])
    span = float(xs[-1]) - min_x
    if not math.isfinite(span) or span == 0:
        return None
    neighbors = max(3, math.floor(bandwidth * n + 0.5))

    line: list[Point] = []
    for step in range(steps):
        target_x = min_x + span * step / (steps - 1)
        weights = _tricube_weights(xs, target_x, neighbors)
        sum_w = float(weights.sum())
        if sum_w == 0:
            continue
        sum_x = float(torch.sum(weights * xs))
        sum_y = float(torch.sum(weights * ys))
        sum_xx = float(torch.sum(weights * xs * xs))
        sum_xy = float(torch.sum(weights * xs * ys))

        denom = sum_w * sum_xx - sum_x * sum_x
        slope = 0.0
        intercept = sum_y / sum_w
        if abs(denom) > DEFAULT_EPSILON:
            slope = (sum_w * sum_xy - sum_x * sum_y) / denom
            intercept = (sum_y - slope * sum_x) / sum_w

        fitted = intercept + slope * target_x
        if math.isfinite(fitted):
            line.append(Point(target_x, fitted))

    return line if len(line) >= 2 else None


def _fit_coefficients(design: Tensor, outcomes: Tensor) -> Tensor | None:
    rows, cols = design.shape
    if rows < cols:
        return None
    return solve_linear_system(design.T @ design, design.T @ outcomes)


def compute_residualized_samples(
    samples: Sequence[Mapping[str, Any]],
    x_key: str,
    y_key: str,
    control_keys: Sequence[str] | None = None,
) -> ResidualizationResult:
    """Residualize X and Y on the controls via OLS with an intercept.

    Args:
        samples: Rows as flat mappings, or mappings with a ``values`` entry.
            An ``id`` entry is carried onto the resulting points.
        x_key: Variable plotted on the x axis.
        y_key: Variable plotted on the y axis.
        control_keys: Variables regressed out of both X and Y.

    Returns:
        The residual points with ``status="adjusted"``, the raw points when
        there are no controls, or an empty result explaining the failure.
    """
    xs = [get_sample_value(sample, x_key) for sample in samples]
    ys = [get_sample_value(sample, y_key) for sample in samples]
    ids = [sample.get("id") if sample else None for sample in samples]

    if not control_keys:
        points = [Point(x, y, sample_id) for x, y, sample_id in zip(xs, ys, ids)]
        return ResidualizationResult(points=points, status="raw")

    if len(samples) < len(control_keys) + 2:
        return ResidualizationResult(points=[], status="insufficient")

    design = torch.tensor(
        [[1.0] + [get_sample_value(sample, key) for key in control_keys] for sample in samples],
        dtype=DTYPE,
    )
    x_values = torch.tensor(xs, dtype=DTYPE)
    y_values = torch.tensor(ys, dtype=DTYPE)
    if not (
        torch.isfinite(x_values).all()
        and torch.isfinite(y_values).all()
        and torch.isfinite(design).all()
    ):
        return ResidualizationResult(points=[], status="invalid")

    coeffs_x = _fit_coefficients(design, x_values)
    coeffs_y = _fit_coefficients(design, y_values)
    if coeffs_x is None or coeffs_y is None:
        return ResidualizationResult(points=[], status="singular")

    residual_x = x_values - design @ coeffs_x
    residual_y = y_values - design @ coeffs_y
    points = [
        Point(float(rx), float(ry), sample_id)
        for rx, ry, sample_id in zip(residual_x, residual_y, ids)
    ]
    return ResidualizationResult(points=points, status="adjusted")


def _correlation_p_value(r: float, n: int) -> float:
    """Two-tailed p-value of ``H0: rho = 0`` from the t distribution, df = n - 2."""
    if n < 3 or not math.isfinite(r):
        return math.nan
    if abs(r) >= 1 - DEFAULT_EPSILON:
        return 0.0
    df = n - 2
    t = abs(r) * math.sqrt(df / (1 - r * r))
    if not math.isfinite(t):
        return math.nan
    return float(2 * stats.t.sf(t, df))


def compute_correlation_stats(points: Sequence[Point]) -> CorrelationStats | None:
    """Pearson correlation, OLS slope and two-tailed p-value.

    Returns None for fewer than three points or zero variance in x or y.
    """
    n = len(points)
    if n < 3:
        return None
    xs, ys = _coordinates(points)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    var_x = float(torch.sum(dx * dx))
    var_y = float(torch.sum(dy * dy))
    if abs(var_x) < DEFAULT_EPSILON or abs(var_y) < DEFAULT_EPSILON:
        return None

    cov_xy = float(torch.sum(dx * dy))
    r = cov_xy / math.sqrt(var_x * var_y)
    return CorrelationStats(
        r=r,
        slope=cov_xy / var_x,
        p_value=_correlation_p_value(r, n),
        n=n,
    )
