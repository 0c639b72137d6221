"""Ceteris paribus (individual conditional expectation) profiles.

A profile shows how the prediction for one observation changes when a
single variable is swept across its grid while all other variables stay
fixed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from ..config import CONFIG, RANDOM_SEED
from ..exceptions import InvalidConfiguration, UnknownVariable
from ..explainer import Explainer, PredictFunction, as_explainer
from .splits import calculate_variable_split, variable_type_of, NUMERICAL

logger = logging.getLogger(__name__)

YHAT = "_yhat_"
VNAME = "_vname_"
IDS = "_ids_"
LABEL = "_label_"


@dataclass
class CeterisParibusProfiles:
    """Result of :func:`ceteris_paribus`.

    Attributes:
        profiles: One row per (observation, variable, grid value) with every
            input column (the swept one substituted), plus ``_yhat_``,
            ``_vname_``, ``_ids_`` and ``_label_``
        observations: Source observations with their own ``_yhat_``,
            ``_label_`` and ``_ids_``
        variable_splits: Grid used for each variable
        variable_types: "numerical" or "categorical" for each variable
        label: Model label
    """

    profiles: pd.DataFrame
    observations: pd.DataFrame
    variable_splits: Dict[Hashable, np.ndarray] = field(default_factory=dict)
    variable_types: Dict[Hashable, str] = field(default_factory=dict)
    label: str = ""

    @property
    def variables(self) -> List[Hashable]:
        return list(self.variable_splits)

    def __len__(self) -> int:
        return len(self.profiles)


def _as_frame(
    new_observation: Union[pd.DataFrame, pd.Series, Mapping[str, Any]],
    reference: pd.DataFrame,
) -> pd.DataFrame:
    """Convert a single row or a frame of observations to a DataFrame with the data's dtypes."""
    if isinstance(new_observation, pd.DataFrame):
        frame = new_observation.copy()
    elif isinstance(new_observation, pd.Series):
        frame = new_observation.to_frame().T
    elif isinstance(new_observation, Mapping):
        frame = pd.DataFrame([dict(new_observation)])
    else:
        frame = pd.DataFrame(new_observation, columns=reference.columns)

    if len(frame) == 0:
        raise InvalidConfiguration("new_observation contains no rows")

    # Single rows lose their dtypes when transposed
    common = [col for col in reference.columns if col in frame.columns]
    dtypes = {col: reference[col].dtype for col in common if frame[col].dtype != reference[col].dtype}
    if dtypes:
        frame = frame.astype(dtypes)

    if not frame.index.is_unique:
        frame = frame.reset_index(drop=True)
    return frame


def _substitute(batch: pd.DataFrame, variable: Hashable, grid: np.ndarray) -> None:
    """Replace one column of a batch with grid values keeping its dtype family."""
    column = batch[variable]
    if isinstance(column.dtype, pd.CategoricalDtype):
        batch[variable] = pd.Categorical(
            grid, categories=column.cat.categories, ordered=column.cat.ordered
        )
    elif ptypes.is_bool_dtype(column):
        batch[variable] = np.asarray(grid, dtype=bool)
    else:
        batch[variable] = grid


def ceteris_paribus(
    x: Any,
    new_observation: Union[pd.DataFrame, pd.Series, Mapping[str, Any]],
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
    variable_splits: Optional[Dict[Hashable, Sequence[Any]]] = None,
    grid_points: int = CONFIG.grid_points,
    variable_splits_with_obs: bool = False,
) -> CeterisParibusProfiles:
    """Compute ceteris paribus profiles for one or more observations.

    For every observation and variable, all grid values are predicted in a
    single call of the prediction function.

    Args:
        x: Raw model or Explainer
        new_observation: Observations to explain (DataFrame, or a single row
            as Series/dict)
        data: Validation data used to build the grids (taken from the
            explainer when omitted)
        predict_function: Prediction function ``f(model, data)``
        label: Model label
        variables: Variables to profile. All columns of ``data`` by default,
            or the keys of ``variable_splits`` when those are given.
        variable_splits: Precomputed grids; missing ones are calculated
        grid_points: Number of grid points for numerical variables
        variable_splits_with_obs: Add the observations' own values to
            numerical grids

    Returns:
        CeterisParibusProfiles

    Raises:
        UnknownVariable: If a variable is missing from the data or observations
        PredictionFailure: If any prediction call fails
    """
    explainer = as_explainer(x, data=data, predict_function=predict_function, label=label)
    data = explainer.data
    observations = _as_frame(new_observation, data)

    if variables is None:
        if variable_splits is not None:
            variables = list(variable_splits)
        else:
            variables = [col for col in data.columns if col in observations.columns]
    variables = list(variables)

    for variable in variables:
        if variable not in data.columns:
            raise UnknownVariable(variable, data.columns)
        if variable not in observations.columns:
            raise UnknownVariable(variable, observations.columns)

    splits: Dict[Hashable, np.ndarray] = {}
    given = dict(variable_splits or {})
    missing = [variable for variable in variables if variable not in given]
    computed = calculate_variable_split(
        data,
        variables=missing,
        grid_points=grid_points,
        new_observations=observations if variable_splits_with_obs else None,
    )
    for variable in variables:
        if variable in given:
            splits[variable] = np.asarray(given[variable])
        else:
            splits[variable] = computed[variable]

    variable_types = {variable: variable_type_of(data[variable]) for variable in variables}

    ids = observations.index.to_numpy()
    frames = []
    for position, obs_id in enumerate(ids):
        row = observations.iloc[[position]]
        for variable in variables:
            grid = splits[variable]
            if len(grid) == 0:
                continue
            batch = row.loc[row.index.repeat(len(grid))].reset_index(drop=True)
            _substitute(batch, variable, grid)
            batch[YHAT] = explainer.predict(batch)
            batch[VNAME] = variable
            batch[IDS] = obs_id
            batch[LABEL] = explainer.label
            frames.append(batch)

    if frames:
        profiles = pd.concat(frames, ignore_index=True)
    else:
        profiles = pd.DataFrame(columns=list(observations.columns) + [YHAT, VNAME, IDS, LABEL])

    observed = observations.copy()
    observed[YHAT] = explainer.predict(observations)
    observed[LABEL] = explainer.label
    observed[IDS] = ids

    logger.info(
        f"Ceteris paribus for '{explainer.label}': {len(observations)} observations, "
        f"{len(variables)} variables, {len(profiles)} profile points"
    )

    return CeterisParibusProfiles(
        profiles=profiles,
        observations=observed,
        variable_splits=splits,
        variable_types=variable_types,
        label=explainer.label,
    )


def select_sample(
    data: pd.DataFrame,
    n: int = 100,
    seed: Optional[int] = RANDOM_SEED,
) -> pd.DataFrame:
    """Select ``n`` random rows without replacement.

    Args:
        data: Dataset
        n: Number of rows. The whole dataset is returned when ``n >= len(data)``.
        seed: Random seed

    Returns:
        Sampled rows with their original index
    """
    if n is None or n >= len(data):
        return data
    rng = np.random.default_rng(seed)
    positions = np.sort(rng.choice(len(data), size=n, replace=False))
    return data.iloc[positions]


def gower_distance(
    data: pd.DataFrame,
    observation: pd.Series,
    variables: Sequence[Hashable],
) -> np.ndarray:
    """Gower distance between every row of ``data`` and one observation.

    Numerical variables contribute their range-normalised absolute
    difference, categorical variables a 0/1 mismatch.
    """
    distances = np.zeros(len(data))
    for variable in variables:
        column = data[variable]
        if variable_type_of(column) == NUMERICAL:
            values = column.to_numpy(dtype=float)
            spread = np.nanmax(values) - np.nanmin(values)
            diff = np.abs(values - float(observation[variable]))
            distances += diff / spread if spread > 0 else np.zeros(len(data))
        else:
            distances += (column.to_numpy() != observation[variable]).astype(float)
    return distances / max(len(variables), 1)


def select_neighbours(
    data: pd.DataFrame,
    observation: Union[pd.DataFrame, pd.Series],
    variables: Optional[Sequence[Hashable]] = None,
    distance: Callable[[pd.DataFrame, pd.Series, Sequence[Hashable]], np.ndarray] = gower_distance,
    n: int = 20,
    frac: Optional[float] = None,
) -> pd.DataFrame:
    """Select the rows of ``data`` closest to an observation.

    Args:
        data: Dataset to pick neighbours from
        observation: A single observation
        variables: Variables used in the distance. Columns shared by both by default.
        distance: Function ``distance(data, observation, variables)`` returning
            one distance per row. Gower distance by default.
        n: Number of neighbours
        frac: Fraction of ``data`` to select; overrides ``n``

    Returns:
        The nearest rows, closest first
    """
    if isinstance(observation, pd.DataFrame):
        observation = observation.iloc[0]
    if variables is None:
        variables = [col for col in data.columns if col in observation.index]
    for variable in variables:
        if variable not in data.columns:
            raise UnknownVariable(variable, data.columns)

    if frac is not None:
        n = int(round(frac * len(data)))
    n = min(max(n, 1), len(data))

    distances = np.asarray(distance(data, observation, variables), dtype=float)
    order = np.argsort(distances, kind="stable")[:n]
    return data.iloc[order]
