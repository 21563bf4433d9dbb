"""Structural Causal Model module."""

from dagpad.scm.base import SCM, ParsedSCM, build_parsed_scm
from dagpad.scm.dseparation import (
    EdgeStatusMixin,
    PathSearchConfig,
    compute_edge_dsep_map,
)
from dagpad.scm.errors import (
    CycleError,
    EvaluationError,
    MutationError,
    ParseError,
    SCMError,
)
from dagpad.scm.linear import (
    LinearSummary,
    build_linear_expression,
    get_linear_coefficient,
    get_linear_summary,
    update_linear_coefficient,
)
from dagpad.scm.mutations import (
    add_node_to_scm,
    is_valid_scm_name,
    remove_edge_from_scm,
    remove_node_from_scm,
    rename_node_in_scm,
    upsert_edge_coefficient,
)
from dagpad.scm.noise import NoiseState, build_noise_augmented_graph
from dagpad.scm.parser import ModelEntry, ParseResult, parse_scm
from dagpad.scm.propagation import compute_values
from dagpad.scm.regression import (
    Point,
    ResidualizationResult,
    build_linear_line,
    build_loess_line,
    compute_correlation_stats,
    compute_residualized_samples,
    fit_linear_regression,
    solve_linear_system,
)
from dagpad.scm.sampling import (
    SamplingConfig,
    SamplingMixin,
    VariableRange,
    generate_samples,
)
from dagpad.scm.topology import (
    build_graph_signature,
    deps_from_model,
    topo_sort,
    would_create_cycle,
)

__all__ = [
    "SCM",
    "ParsedSCM",
    "build_parsed_scm",
    "EdgeStatusMixin",
    "PathSearchConfig",
    "compute_edge_dsep_map",
    "SCMError",
    "ParseError",
    "CycleError",
    "EvaluationError",
    "MutationError",
    "LinearSummary",
    "build_linear_expression",
    "get_linear_coefficient",
    "get_linear_summary",
    "update_linear_coefficient",
    "add_node_to_scm",
    "is_valid_scm_name",
    "remove_edge_from_scm",
    "remove_node_from_scm",
    "rename_node_in_scm",
    "upsert_edge_coefficient",
    "NoiseState",
    "build_noise_augmented_graph",
    "ModelEntry",
    "ParseResult",
    "parse_scm",
    "compute_values",
    "Point",
    "ResidualizationResult",
    "build_linear_line",
    "build_loess_line",
    "compute_correlation_stats",
    "compute_residualized_samples",
    "fit_linear_regression",
    "solve_linear_system",
    "SamplingConfig",
    "SamplingMixin",
    "VariableRange",
    "generate_samples",
    "build_graph_signature",
    "deps_from_model",
    "topo_sort",
    "would_create_cycle",
]
