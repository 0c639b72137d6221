"""Grids of values probed for each variable of a profile."""
from __future__ import annotations

import logging
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from ..config import CONFIG
from ..exceptions import InvalidConfiguration, UnknownVariable

logger = logging.getLogger(__name__)

NUMERICAL = "numerical"
CATEGORICAL = "categorical"
VARIABLE_TYPES = (NUMERICAL, CATEGORICAL)
SPLIT_TYPES = ("quantiles", "uniform")


def variable_type_of(series: pd.Series) -> str:
    """Classify a column as numerical or categorical.

    Booleans count as categorical, as do categorical, object and string dtypes.
    """
    if ptypes.is_bool_dtype(series) or isinstance(series.dtype, pd.CategoricalDtype):
        return CATEGORICAL
    if ptypes.is_numeric_dtype(series):
        return NUMERICAL
    return CATEGORICAL


def categorical_levels(series: pd.Series) -> List[Any]:
    """Observed levels of a categorical column in declared order.

    For pandas categoricals the order of ``categories`` is kept and unused
    categories are dropped. Other columns keep the order of first appearance.
    """
    observed = series.dropna()
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(observed.unique())
        return [level for level in series.cat.categories if level in present]
    return list(pd.unique(observed))


def _check_variable(data: pd.DataFrame, variable: Hashable) -> None:
    if variable not in data.columns:
        raise UnknownVariable(variable, data.columns)


def build_grid(
    data: pd.DataFrame,
    variable: Hashable,
    grid_points: int = CONFIG.grid_points,
    split_type: str = "quantiles",
) -> np.ndarray:
    """Compute the ordered values at which one variable is probed.

    Args:
        data: Dataset providing the observed values
        variable: Column name
        grid_points: Number of points for numerical variables
        split_type: "quantiles" for quantile-spaced points or "uniform"
            for evenly spaced points between min and max

    Returns:
        Array of grid values. Numerical grids are sorted and contain at most
        ``grid_points`` distinct values; categorical grids hold every
        observed level.

    Raises:
        UnknownVariable: If the variable is not a column of ``data``
        InvalidConfiguration: For a non-positive grid size or unknown split type
    """
    _check_variable(data, variable)
    if grid_points is None or grid_points < 1:
        raise InvalidConfiguration(f"grid_points must be a positive integer, got {grid_points}")
    if split_type not in SPLIT_TYPES:
        raise InvalidConfiguration(
            f"split_type must be one of {SPLIT_TYPES}, got '{split_type}'"
        )

    series = data[variable]
    if variable_type_of(series) == CATEGORICAL:
        return np.array(categorical_levels(series), dtype=object)

    values = series.dropna().to_numpy(dtype=float)
    if len(values) == 0:
        return values

    if split_type == "uniform":
        grid = np.linspace(values.min(), values.max(), grid_points)
    else:
        probs = np.linspace(0, 1, grid_points)
        grid = np.quantile(values, probs)

    # Quantiles are non-decreasing, so unique keeps their order
    return np.unique(grid)


def calculate_variable_split(
    data: pd.DataFrame,
    variables: Optional[Sequence[Hashable]] = None,
    grid_points: int = CONFIG.grid_points,
    split_type: str = "quantiles",
    new_observations: Optional[pd.DataFrame] = None,
) -> Dict[Hashable, np.ndarray]:
    """Compute grids for several variables.

    Args:
        data: Dataset providing the observed values
        variables: Columns to split. All columns when None.
        grid_points: Number of points for numerical variables
        split_type: "quantiles" or "uniform"
        new_observations: Optional observations whose values are merged into
            numerical grids, so that every profile passes through its
            observation

    Returns:
        Dictionary variable -> grid, in the order of ``variables``
    """
    if variables is None:
        variables = list(data.columns)

    splits = {}
    for variable in variables:
        grid = build_grid(data, variable, grid_points=grid_points, split_type=split_type)
        if (
            new_observations is not None
            and variable in new_observations.columns
            and variable_type_of(data[variable]) == NUMERICAL
        ):
            extra = new_observations[variable].dropna().to_numpy(dtype=float)
            grid = np.unique(np.concatenate([grid, extra]))
        splits[variable] = grid
        logger.debug(f"Split for '{variable}': {len(grid)} values")

    return splits


class SplitCache:
    """Caller-owned memo of grids.

    Entries are keyed by ``(id(data), variable, grid_points, split_type)``,
    so the cache is only valid while the same DataFrame object is unchanged.
    Call :meth:`clear` after mutating the data.
    """

    def __init__(self):
        self._grids: Dict[Tuple[int, Hashable, int, str], np.ndarray] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._grids)

    def get_or_compute(
        self,
        data: pd.DataFrame,
        variable: Hashable,
        grid_points: int = CONFIG.grid_points,
        split_type: str = "quantiles",
    ) -> np.ndarray:
        key = (id(data), variable, grid_points, split_type)
        if key in self._grids:
            self.hits += 1
            return self._grids[key]
        self.misses += 1
        grid = build_grid(data, variable, grid_points=grid_points, split_type=split_type)
        self._grids[key] = grid
        return grid

    def splits(
        self,
        data: pd.DataFrame,
        variables: Optional[Sequence[Hashable]] = None,
        grid_points: int = CONFIG.grid_points,
        split_type: str = "quantiles",
    ) -> Dict[Hashable, np.ndarray]:
        """Cached counterpart of :func:`calculate_variable_split`."""
        if variables is None:
            variables = list(data.columns)
        return {
            variable: self.get_or_compute(data, variable, grid_points, split_type)
            for variable in variables
        }

    def clear(self) -> None:
        self._grids.clear()
        self.hits = 0
        self.misses = 0
