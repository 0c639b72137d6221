"""Ceteris paribus profiles and the dependence curves aggregated from them.

The pipeline is strictly sequential:
grids (splits) -> per-observation profiles (ceteris_paribus) -> aggregation.
"""

from .splits import (
    NUMERICAL,
    CATEGORICAL,
    build_grid,
    calculate_variable_split,
    categorical_levels,
    variable_type_of,
    SplitCache,
)
from .ceteris_paribus import (
    CeterisParibusProfiles,
    ceteris_paribus,
    select_sample,
    select_neighbours,
    gower_distance,
)
from .aggregation import AggregatedProfiles, aggregate_profiles, AGGREGATION_TYPES
from .dependence import (
    partial_dependence,
    conditional_dependence,
    accumulated_dependence,
    partial_dependency,
    conditional_dependency,
    accumulated_dependency,
)
from .clustering import cluster_profiles

__all__ = [
    "NUMERICAL",
    "CATEGORICAL",
    "build_grid",
    "calculate_variable_split",
    "categorical_levels",
    "variable_type_of",
    "SplitCache",
    "CeterisParibusProfiles",
    "ceteris_paribus",
    "select_sample",
    "select_neighbours",
    "gower_distance",
    "AggregatedProfiles",
    "aggregate_profiles",
    "AGGREGATION_TYPES",
    "partial_dependence",
    "conditional_dependence",
    "accumulated_dependence",
    "partial_dependency",
    "conditional_dependency",
    "accumulated_dependency",
    "cluster_profiles",
]
