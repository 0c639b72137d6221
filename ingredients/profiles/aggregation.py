"""Aggregation of ceteris paribus profiles into dependence curves."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import CONFIG
from ..exceptions import EmptyProfileSet, InvalidConfiguration, UnknownVariable
from .ceteris_paribus import CeterisParibusProfiles, IDS, LABEL, VNAME, YHAT
from .splits import CATEGORICAL, NUMERICAL, VARIABLE_TYPES, categorical_levels

logger = logging.getLogger(__name__)

AGGREGATION_TYPES = ("partial", "conditional", "accumulated")
X = "_x_"


@dataclass
class AggregatedProfiles:
    """Result of :func:`aggregate_profiles`.

    Attributes:
        table: One row per (label, variable, grid value) with columns
            ``_vname_``, ``_label_``, ``_x_``, ``_yhat_`` and ``_ids_``
        type: "partial", "conditional" or "accumulated"
        variable_type: "numerical" or "categorical"
        observations: Source observations of all aggregated profiles
        variable_types: Type of every aggregated variable
    """

    table: pd.DataFrame
    type: str = "partial"
    variable_type: str = NUMERICAL
    observations: pd.DataFrame = field(default_factory=pd.DataFrame)
    variable_types: Dict[Hashable, str] = field(default_factory=dict)

    @property
    def labels(self) -> List[str]:
        return list(pd.unique(self.table[LABEL]))

    @property
    def variables(self) -> List[Hashable]:
        return list(pd.unique(self.table[VNAME]))

    def __len__(self) -> int:
        return len(self.table)


def _profile_matrix(
    profiles: pd.DataFrame,
    variable: Hashable,
    grid: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Arrange the profile points of one variable as an (observation x grid) matrix.

    Returns:
        Tuple of (observation ids, prediction matrix)
    """
    ids = pd.unique(profiles[IDS])
    id_position = {obs_id: i for i, obs_id in enumerate(ids)}
    grid_position = {value: k for k, value in enumerate(grid.tolist())}

    rows = profiles[IDS].map(id_position).to_numpy()
    cols = profiles[variable].astype(object).map(grid_position).to_numpy()

    matrix = np.full((len(ids), len(grid)), np.nan)
    matrix[rows.astype(int), cols.astype(int)] = profiles[YHAT].to_numpy(dtype=float)
    return ids, matrix


def _weighted_curve(matrix: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Column-wise weighted mean; falls back to the plain mean where weights vanish."""
    valid = ~np.isnan(matrix)
    weights = np.where(valid, weights, 0.0)
    total = weights.sum(axis=0)
    weighted = np.where(valid, matrix, 0.0) * weights
    plain = np.nanmean(matrix, axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        curve = weighted.sum(axis=0) / total
    return np.where(total > 0, curve, plain)


def _original_positions(original: np.ndarray, grid: np.ndarray, variable_type: str) -> np.ndarray:
    """Bucket index of every observation's own value on the grid.

    Numerical values in ``(x_{k-1}, x_k]`` fall in bucket k, values at or
    below ``x_0`` in bucket 0 and values above the last point in the last
    bucket. Categorical values map to their level position, -1 if unknown.
    """
    if variable_type == NUMERICAL:
        positions = np.searchsorted(grid.astype(float), original.astype(float), side="left")
        return np.clip(positions, 0, len(grid) - 1)
    level_position = {level: k for k, level in enumerate(grid.tolist())}
    return np.array([level_position.get(value, -1) for value in original.tolist()])


def _partial(matrix: np.ndarray) -> np.ndarray:
    return np.nanmean(matrix, axis=0)


def _conditional(
    matrix: np.ndarray,
    grid: np.ndarray,
    original: np.ndarray,
    variable_type: str,
    span: float,
) -> np.ndarray:
    if variable_type == NUMERICAL:
        original = original.astype(float)
        sd = np.nanstd(original, ddof=1) if len(original) > 1 else np.nan
        if not np.isfinite(sd) or sd == 0:
            sd = 1.0
        bandwidth = span * sd
        distance = (grid.astype(float)[None, :] - original[:, None]) / bandwidth
        weights = np.exp(-0.5 * distance ** 2)
    else:
        weights = (original[:, None] == grid[None, :]).astype(float)
    return _weighted_curve(matrix, weights)


def _accumulated(
    matrix: np.ndarray,
    grid: np.ndarray,
    original: np.ndarray,
    variable_type: str,
) -> np.ndarray:
    n_points = len(grid)
    buckets = _original_positions(original, grid, variable_type)

    effects = np.zeros(n_points)
    counts = np.array([(buckets == k).sum() for k in range(n_points)], dtype=float)
    for k in range(1, n_points):
        members = buckets == k
        if members.any():
            diffs = matrix[members, k] - matrix[members, k - 1]
            if not np.all(np.isnan(diffs)):
                effects[k] = np.nanmean(diffs)

    # Grid points must be accumulated in increasing order
    curve = np.cumsum(effects)
    if counts.sum() > 0:
        curve = curve - np.sum(counts * curve) / counts.sum()
    return curve


def _aggregate_variable(
    profiles: pd.DataFrame,
    observations: pd.DataFrame,
    variable: Hashable,
    grid: np.ndarray,
    variable_type: str,
    type: str,
    span: float,
) -> np.ndarray:
    ids, matrix = _profile_matrix(profiles, variable, grid)
    if type == "partial":
        return _partial(matrix)

    original = observations.set_index(IDS).loc[ids, variable].to_numpy()
    # Observations without an own value cannot be weighted or bucketed
    observed = ~pd.isna(original)
    if not observed.all():
        logger.debug(
            f"Skipping {int((~observed).sum())} observations with missing '{variable}' ({type})"
        )
        matrix, original = matrix[observed], original[observed]
    if len(original) == 0:
        raise EmptyProfileSet(
            f"No observations with an observed value of '{variable}' for {type} aggregation"
        )
    if type == "conditional":
        return _conditional(matrix, grid, original, variable_type, span)
    return _accumulated(matrix, grid, original, variable_type)


def _select_variables(
    cp: CeterisParibusProfiles,
    variables: Optional[Sequence[Hashable]],
    variable_type: str,
) -> List[Hashable]:
    if variables is None:
        candidates = cp.variables
    else:
        for variable in variables:
            if variable not in cp.variable_types:
                raise UnknownVariable(variable, cp.variables)
        candidates = list(variables)
    return [v for v in candidates if cp.variable_types[v] == variable_type]


def _groups_of(cp: CeterisParibusProfiles, groups: Optional[Hashable]) -> List[Tuple[str, np.ndarray]]:
    """Split observation ids into labelled groups."""
    observations = cp.observations
    if groups is None:
        return [(cp.label, observations[IDS].to_numpy())]
    if groups not in observations.columns:
        raise UnknownVariable(groups, observations.columns)
    result = []
    for value in categorical_levels(observations[groups]):
        ids = observations.loc[observations[groups] == value, IDS].to_numpy()
        result.append((f"{cp.label}_{value}", ids))
    return result


def check_aggregation_options(type: str, variable_type: str, span: float) -> None:
    """Raise InvalidConfiguration for an unknown aggregation option."""
    if type not in AGGREGATION_TYPES:
        raise InvalidConfiguration(f"type must be one of {AGGREGATION_TYPES}, got '{type}'")
    if variable_type not in VARIABLE_TYPES:
        raise InvalidConfiguration(
            f"variable_type must be one of {VARIABLE_TYPES}, got '{variable_type}'"
        )
    if span is None or span <= 0:
        raise InvalidConfiguration(f"span must be positive, got {span}")


def aggregate_profiles(
    *profiles: CeterisParibusProfiles,
    variables: Optional[Sequence[Hashable]] = None,
    type: str = "partial",
    variable_type: str = NUMERICAL,
    groups: Optional[Hashable] = None,
    span: float = CONFIG.span,
    center: bool = False,
) -> AggregatedProfiles:
    """Aggregate ceteris paribus profiles into one curve per model and variable.

    Args:
        *profiles: One or more CeterisParibusProfiles, e.g. for several models
        variables: Variables to aggregate. All profiled variables by default.
        type: "partial" (plain mean), "conditional" (locally weighted mean)
            or "accumulated" (accumulated local effects)
        variable_type: Aggregate only "numerical" or only "categorical" variables
        groups: Column of the observations; profiles are aggregated within
            each of its values and labelled ``"{label}_{value}"``
        span: Kernel bandwidth, as a multiple of the standard deviation of
            the observed values, for conditional aggregation
        center: Shift partial and conditional curves so that their mean
            equals the mean prediction of the observations

    Returns:
        AggregatedProfiles

    Raises:
        InvalidConfiguration: For unknown ``type`` or ``variable_type``
        UnknownVariable: For a requested variable that was not profiled
        EmptyProfileSet: If there is nothing to aggregate
    """
    check_aggregation_options(type, variable_type, span)
    if not profiles:
        raise EmptyProfileSet("No profiles were passed for aggregation")

    frames = []
    observations = []
    variable_types: Dict[Hashable, str] = {}
    for cp in profiles:
        if not isinstance(cp, CeterisParibusProfiles):
            raise InvalidConfiguration(
                f"Expected CeterisParibusProfiles, got {cp.__class__.__name__}"
            )
        observations.append(cp.observations)
        selected = _select_variables(cp, variables, variable_type)

        for label, ids in _groups_of(cp, groups):
            group_observations = cp.observations[cp.observations[IDS].isin(ids)]
            for variable in selected:
                subset = cp.profiles[
                    (cp.profiles[VNAME] == variable) & cp.profiles[IDS].isin(ids)
                ]
                if subset.empty:
                    raise EmptyProfileSet(
                        f"No profiles for variable '{variable}' of '{label}'"
                    )
                grid = np.asarray(cp.variable_splits[variable])
                curve = _aggregate_variable(
                    subset, group_observations, variable, grid,
                    cp.variable_types[variable], type, span,
                )
                if center and type != "accumulated":
                    curve = curve - np.nanmean(curve) + group_observations[YHAT].mean()

                frames.append(pd.DataFrame({
                    VNAME: variable,
                    LABEL: label,
                    X: pd.Series(grid, dtype=object if variable_type == CATEGORICAL else float),
                    YHAT: curve,
                    IDS: 0,
                }))
                variable_types[variable] = cp.variable_types[variable]
                logger.debug(f"Aggregated '{variable}' for '{label}' ({type}, {len(ids)} observations)")

    if not frames:
        raise EmptyProfileSet(
            f"No {variable_type} variables left to aggregate"
            + (f" among {list(variables)}" if variables is not None else "")
        )

    table = pd.concat(frames, ignore_index=True)
    logger.info(
        f"Aggregated {len(variable_types)} variables from {len(profiles)} profile sets ({type})"
    )
    return AggregatedProfiles(
        table=table,
        type=type,
        variable_type=variable_type,
        observations=pd.concat(observations, ignore_index=True),
        variable_types=variable_types,
    )
