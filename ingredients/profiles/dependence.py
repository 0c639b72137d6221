"""Partial, conditional and accumulated dependence profiles.

Each function samples observations, computes their ceteris paribus
profiles and aggregates them with :func:`aggregate_profiles`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, Optional, Sequence

import pandas as pd

from ..config import CONFIG, RANDOM_SEED
from ..explainer import PredictFunction, as_explainer
from .aggregation import AggregatedProfiles, aggregate_profiles, check_aggregation_options
from .ceteris_paribus import CeterisParibusProfiles, ceteris_paribus, select_sample
from .splits import NUMERICAL, calculate_variable_split

logger = logging.getLogger(__name__)


def _dependence(
    x: Any,
    type: str,
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
    N: Optional[int] = CONFIG.n_samples,
    variable_splits: Optional[Dict[Hashable, Sequence[Any]]] = None,
    grid_points: int = CONFIG.grid_points,
    variable_type: str = NUMERICAL,
    random_state: Optional[int] = RANDOM_SEED,
    **aggregate_kwargs,
) -> AggregatedProfiles:
    check_aggregation_options(type, variable_type, aggregate_kwargs.get("span", CONFIG.span))
    if isinstance(x, CeterisParibusProfiles):
        return aggregate_profiles(
            x, variables=variables, type=type, variable_type=variable_type, **aggregate_kwargs
        )

    explainer = as_explainer(x, data=data, predict_function=predict_function, label=label)
    data = explainer.data

    # Grids come from the full data, profiles from the sample
    if variable_splits is None:
        variable_splits = calculate_variable_split(data, variables=variables, grid_points=grid_points)

    sample = select_sample(data, n=N, seed=random_state)
    logger.info(f"{type.capitalize()} dependence for '{explainer.label}' on {len(sample)} of {len(data)} rows")

    cp = ceteris_paribus(
        explainer,
        sample,
        variables=variables,
        variable_splits=variable_splits,
        grid_points=grid_points,
    )
    return aggregate_profiles(
        cp, variables=variables, type=type, variable_type=variable_type, **aggregate_kwargs
    )


def partial_dependence(
    x: Any,
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
    N: Optional[int] = CONFIG.n_samples,
    variable_splits: Optional[Dict[Hashable, Sequence[Any]]] = None,
    grid_points: int = CONFIG.grid_points,
    variable_type: str = NUMERICAL,
    random_state: Optional[int] = RANDOM_SEED,
    **aggregate_kwargs,
) -> AggregatedProfiles:
    """Partial dependence profiles: averages of ceteris paribus profiles.

    Args:
        x: Raw model, Explainer, or CeterisParibusProfiles to aggregate directly
        data: Validation data (taken from the explainer when omitted)
        predict_function: Prediction function ``f(model, data)``
        label: Model label
        variables: Variables to profile. All columns by default.
        N: Number of sampled observations. The whole data is used when None
            or when the data has fewer rows.
        variable_splits: Precomputed grids
        grid_points: Number of grid points for numerical variables
        variable_type: "numerical" or "categorical"
        random_state: Seed for sampling observations
        **aggregate_kwargs: Passed to :func:`aggregate_profiles` (groups, center)

    Returns:
        AggregatedProfiles
    """
    return _dependence(
        x, "partial", data=data, predict_function=predict_function, label=label,
        variables=variables, N=N, variable_splits=variable_splits,
        grid_points=grid_points, variable_type=variable_type,
        random_state=random_state, **aggregate_kwargs,
    )


def conditional_dependence(
    x: Any,
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
    N: Optional[int] = CONFIG.n_samples,
    variable_splits: Optional[Dict[Hashable, Sequence[Any]]] = None,
    grid_points: int = CONFIG.grid_points,
    variable_type: str = NUMERICAL,
    random_state: Optional[int] = RANDOM_SEED,
    **aggregate_kwargs,
) -> AggregatedProfiles:
    """Conditional (local) dependence profiles.

    Same arguments as :func:`partial_dependence`; ``span`` may be passed to
    control the kernel bandwidth.
    """
    return _dependence(
        x, "conditional", data=data, predict_function=predict_function, label=label,
        variables=variables, N=N, variable_splits=variable_splits,
        grid_points=grid_points, variable_type=variable_type,
        random_state=random_state, **aggregate_kwargs,
    )


def accumulated_dependence(
    x: Any,
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
    N: Optional[int] = CONFIG.n_samples,
    variable_splits: Optional[Dict[Hashable, Sequence[Any]]] = None,
    grid_points: int = CONFIG.grid_points,
    variable_type: str = NUMERICAL,
    random_state: Optional[int] = RANDOM_SEED,
    **aggregate_kwargs,
) -> AggregatedProfiles:
    """Accumulated local effects profiles.

    Same arguments as :func:`partial_dependence`.
    """
    return _dependence(
        x, "accumulated", data=data, predict_function=predict_function, label=label,
        variables=variables, N=N, variable_splits=variable_splits,
        grid_points=grid_points, variable_type=variable_type,
        random_state=random_state, **aggregate_kwargs,
    )


partial_dependency = partial_dependence
conditional_dependency = conditional_dependence
accumulated_dependency = accumulated_dependence
