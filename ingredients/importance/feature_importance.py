"""Permutation-based feature importance.

The importance of a variable is the loss of the model after the values of
that variable are permuted, compared with the loss on unchanged data.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance

from ..config import CONFIG, RANDOM_SEED
from ..exceptions import InvalidConfiguration, UnknownVariable
from ..explainer import Explainer, PredictFunction, as_explainer
from .losses import LOSS_FUNCTIONS, loss_root_mean_square

logger = logging.getLogger(__name__)

FULL_MODEL = "_full_model_"
BASELINE = "_baseline_"
IMPORTANCE_TYPES = ("raw", "ratio", "difference")

LossFunction = Callable[[np.ndarray, np.ndarray], float]


@dataclass
class FeatureImportance:
    """Result of :func:`feature_importance`.

    Attributes:
        table: Columns ``variable``, ``permutation``, ``dropout_loss`` and
            ``label``. Rows with ``permutation == 0`` hold the mean over
            all permutation rounds.
        type: "raw", "ratio" or "difference"
        loss_name: Name of the loss function
    """

    table: pd.DataFrame
    type: str = "raw"
    loss_name: str = "loss_root_mean_square"

    @property
    def label(self) -> str:
        return str(self.table["label"].iloc[0])

    def mean_losses(self) -> pd.Series:
        """Mean drop-out loss per variable, without the helper rows."""
        means = self.table[self.table["permutation"] == 0].set_index("variable")["dropout_loss"]
        return means[[not str(name).startswith("_") for name in means.index]]

    def __len__(self) -> int:
        return len(self.table)


def _resolve_loss(loss_function: Union[str, LossFunction]) -> LossFunction:
    if callable(loss_function):
        return loss_function
    name = str(loss_function).replace("loss_", "", 1)
    if name not in LOSS_FUNCTIONS:
        raise InvalidConfiguration(
            f"Unknown loss function '{loss_function}'. Available: {sorted(LOSS_FUNCTIONS)}"
        )
    return LOSS_FUNCTIONS[name]


class _FittedPredictor:
    """Estimator facade letting scikit-learn inspection tools call an explainer.

    The wrapped model is already fitted, so ``fit`` does nothing.
    """

    def __init__(self, explainer: Explainer):
        self.explainer = explainer

    def fit(self, X, y=None):
        return self

    def predict(self, X):
        return self.explainer.predict(X)


def _variable_losses(
    explainer: Explainer,
    data: pd.DataFrame,
    observed: np.ndarray,
    loss: LossFunction,
    full_loss: float,
    names: List[Hashable],
    N: Optional[int],
    B: int,
    random_state: Optional[int],
) -> Dict[Hashable, np.ndarray]:
    """Loss after permuting each single variable, one value per round."""

    def negative_loss(estimator, X, y):
        return -loss(y, estimator.predict(X))

    result = permutation_importance(
        _FittedPredictor(explainer),
        data,
        observed,
        scoring=negative_loss,
        n_repeats=B,
        random_state=random_state,
        max_samples=N if N is not None and N < len(data) else 1.0,
    )
    # Score drops are the loss increases over the full model
    position = {column: i for i, column in enumerate(data.columns)}
    return {name: full_loss + result.importances[position[name]] for name in names}


def _group_losses(
    explainer: Explainer,
    data: pd.DataFrame,
    observed: np.ndarray,
    loss: LossFunction,
    groups: Dict[str, List[Hashable]],
    N: Optional[int],
    B: int,
    rng: np.random.Generator,
) -> Dict[Hashable, np.ndarray]:
    """Loss after permuting the columns of each group jointly, one value per round."""
    losses = {name: np.zeros(B) for name in groups}
    for b in range(B):
        if N is not None and N < len(data):
            rows = rng.choice(len(data), size=N, replace=False)
            sample = data.iloc[rows].reset_index(drop=True)
            target = observed[rows]
        else:
            sample, target = data, observed

        for name, columns in groups.items():
            permuted = sample.copy()
            order = rng.permutation(len(sample))
            for column in columns:
                permuted[column] = sample[column].iloc[order].set_axis(sample.index)
            losses[name][b] = loss(target, explainer.predict(permuted))
    return losses


def feature_importance(
    x: Any,
    data: Optional[pd.DataFrame] = None,
    y: Optional[np.ndarray] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    loss_function: Union[str, LossFunction] = loss_root_mean_square,
    type: str = "raw",
    N: Optional[int] = None,
    B: int = CONFIG.n_permutations,
    variables: Optional[Sequence[Hashable]] = None,
    variable_groups: Optional[Dict[str, Sequence[Hashable]]] = None,
    random_state: Optional[int] = RANDOM_SEED,
) -> FeatureImportance:
    """Compute permutation feature importance.

    Args:
        x: Raw model or Explainer
        data: Validation data (taken from the explainer when omitted)
        y: Target values (taken from the explainer when omitted)
        predict_function: Prediction function ``f(model, data)``
        label: Model label
        loss_function: Callable ``loss(observed, predicted)`` or its name
        type: "raw" losses, "ratio" to the full model loss, or "difference"
            from the full model loss
        N: Number of rows the permuted losses are computed on, sampled
            without replacement. All rows when None.
        B: Number of permutation rounds
        variables: Variables to permute. All columns by default.
        variable_groups: Named groups of variables permuted together;
            overrides ``variables``
        random_state: Seed for sampling and permutations

    Returns:
        FeatureImportance
    """
    if type not in IMPORTANCE_TYPES:
        raise InvalidConfiguration(f"type must be one of {IMPORTANCE_TYPES}, got '{type}'")
    if B is None or B < 1:
        raise InvalidConfiguration(f"B must be a positive integer, got {B}")
    if N is not None and N < 1:
        raise InvalidConfiguration(f"N must be a positive integer, got {N}")

    explainer = as_explainer(x, data=data, predict_function=predict_function, label=label, y=y)
    if explainer.y is None:
        raise InvalidConfiguration(
            f"Target values are required for feature importance of '{explainer.label}'"
        )
    data = explainer.data
    observed = np.asarray(explainer.y)
    if len(observed) != len(data):
        raise InvalidConfiguration(
            f"y has {len(observed)} values but data has {len(data)} rows"
        )
    loss = _resolve_loss(loss_function)

    if variable_groups is not None:
        groups = {name: list(columns) for name, columns in variable_groups.items()}
    else:
        names = list(data.columns) if variables is None else list(variables)
        groups = {name: [name] for name in names}
    for columns in groups.values():
        for column in columns:
            if column not in data.columns:
                raise UnknownVariable(column, data.columns)

    data = data.reset_index(drop=True)
    predicted = explainer.predict(data)
    full_loss = loss(observed, predicted)

    rng = np.random.default_rng(random_state)
    rounds: Dict[Hashable, np.ndarray] = {FULL_MODEL: np.full(B, full_loss)}
    if variable_groups is None:
        rounds.update(_variable_losses(
            explainer, data, observed, loss, full_loss, list(groups), N, B, random_state
        ))
    else:
        rounds.update(_group_losses(explainer, data, observed, loss, groups, N, B, rng))
    rounds[BASELINE] = np.array([loss(rng.permutation(observed), predicted) for _ in range(B)])

    raw = pd.DataFrame(rounds)
    if type == "ratio":
        raw = raw.div(raw[FULL_MODEL], axis=0)
    elif type == "difference":
        raw = raw.sub(raw[FULL_MODEL], axis=0)

    means = raw.mean(axis=0)
    ordered = [FULL_MODEL] + sorted(groups, key=lambda name: means[name]) + [BASELINE]

    records = []
    for name in ordered:
        records.append((name, 0, float(means[name])))
        for permutation, value in enumerate(raw[name], start=1):
            records.append((name, permutation, float(value)))

    table = pd.DataFrame(records, columns=["variable", "permutation", "dropout_loss"])
    table["label"] = explainer.label
    logger.info(
        f"Feature importance for '{explainer.label}': {len(groups)} variables, "
        f"B={B}, full model loss {means[FULL_MODEL]:.4f}"
    )
    return FeatureImportance(table=table, type=type, loss_name=getattr(loss, "__name__", "loss"))
