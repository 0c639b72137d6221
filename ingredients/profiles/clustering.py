"""Hierarchical clustering of ceteris paribus profiles."""
from __future__ import annotations

import logging
from typing import Hashable, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage

from ..exceptions import EmptyProfileSet, InvalidConfiguration, UnknownVariable
from .aggregation import X, AggregatedProfiles, _profile_matrix
from .ceteris_paribus import CeterisParibusProfiles, IDS, LABEL, VNAME, YHAT
from .splits import NUMERICAL

logger = logging.getLogger(__name__)


def cluster_profiles(
    cp: CeterisParibusProfiles,
    k: int = 3,
    distance: str = "euclidean",
    method: str = "average",
    variables: Optional[Sequence[Hashable]] = None,
) -> AggregatedProfiles:
    """Group observations with similar profiles and average each group.

    Every observation is represented by the concatenation of its profiles
    over the selected variables. Observations are clustered with SciPy
    hierarchical clustering and the tree is cut into ``k`` clusters.

    Args:
        cp: Ceteris paribus profiles of several observations
        k: Number of clusters
        distance: Metric passed to ``scipy.cluster.hierarchy.linkage``
        method: Linkage method
        variables: Numerical variables to use. All numerical ones by default.

    Returns:
        AggregatedProfiles with one curve per cluster and variable, labelled
        ``"{label}_{cluster}"``
    """
    if k < 1:
        raise InvalidConfiguration(f"k must be positive, got {k}")

    if variables is None:
        variables = [v for v in cp.variables if cp.variable_types[v] == NUMERICAL]
    for variable in variables:
        if variable not in cp.variable_types:
            raise UnknownVariable(variable, cp.variables)
    if not variables:
        raise EmptyProfileSet("No numerical profiles to cluster")

    ids = cp.observations[IDS].to_numpy()
    if len(ids) < 2:
        raise InvalidConfiguration("At least two observations are needed for clustering")

    blocks = {}
    for variable in variables:
        subset = cp.profiles[cp.profiles[VNAME] == variable]
        block_ids, matrix = _profile_matrix(subset, variable, np.asarray(cp.variable_splits[variable]))
        # Align rows with the observation order
        order = {obs_id: i for i, obs_id in enumerate(block_ids)}
        blocks[variable] = matrix[[order[obs_id] for obs_id in ids]]

    features = np.nan_to_num(np.hstack([blocks[v] for v in variables]))
    tree = linkage(features, method=method, metric=distance)
    clusters = fcluster(tree, t=min(k, len(ids)), criterion="maxclust")
    logger.info(f"Clustered {len(ids)} profiles of '{cp.label}' into {len(set(clusters))} groups")

    frames = []
    for cluster in sorted(set(clusters)):
        members = clusters == cluster
        for variable in variables:
            frames.append(pd.DataFrame({
                VNAME: variable,
                LABEL: f"{cp.label}_{cluster}",
                X: np.asarray(cp.variable_splits[variable], dtype=float),
                YHAT: np.nanmean(blocks[variable][members], axis=0),
                IDS: 0,
            }))

    return AggregatedProfiles(
        table=pd.concat(frames, ignore_index=True),
        type="clustered",
        variable_type=NUMERICAL,
        observations=cp.observations.assign(_cluster_=clusters),
        variable_types={v: NUMERICAL for v in variables},
    )
