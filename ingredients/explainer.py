"""Uniform access to a model, its data and its prediction function.

Every explanation routine works on an :class:`Explainer`. Raw models are
wrapped on the fly by :func:`as_explainer`, so callers can pass either a
fitted estimator together with data or a pre-built explainer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from .exceptions import InvalidConfiguration, PredictionFailure

logger = logging.getLogger(__name__)

PredictFunction = Callable[[Any, pd.DataFrame], np.ndarray]


def default_predict_function(model: Any, data: pd.DataFrame) -> np.ndarray:
    """Predict one number per row with a scikit-learn style estimator.

    Classifiers exposing ``predict_proba`` return the probability of the
    last class (the positive class for binary problems). Other models
    return the output of ``predict``.

    Args:
        model: Fitted model
        data: Rows to predict

    Returns:
        1-D array of predictions
    """
    if hasattr(model, "predict_proba"):
        proba = np.asarray(model.predict_proba(data))
        if proba.ndim == 2:
            return proba[:, -1]
        return proba
    if hasattr(model, "predict"):
        return np.asarray(model.predict(data))
    if callable(model):
        return np.asarray(model(data))
    raise InvalidConfiguration(
        f"Model of type {type(model).__name__} has neither predict_proba nor predict"
    )


@dataclass
class Explainer:
    """A model bundled with the data and prediction function used to explain it.

    Attributes:
        model: Fitted model (treated as opaque)
        data: Validation data without the target column
        y: Optional target values aligned with ``data``
        predict_function: ``f(model, data) -> predictions``
        label: Name of the model used in outputs and plots
    """

    model: Any
    data: Optional[pd.DataFrame] = None
    y: Optional[np.ndarray] = None
    predict_function: Optional[PredictFunction] = None
    label: Optional[str] = None

    def __post_init__(self):
        if self.predict_function is None:
            self.predict_function = default_predict_function
        if self.label is None:
            self.label = type(self.model).__name__
        if self.data is not None and not isinstance(self.data, pd.DataFrame):
            self.data = pd.DataFrame(self.data)
        if self.y is not None:
            self.y = np.asarray(self.y)

    def get_model(self) -> Any:
        return self.model

    def get_data(self) -> Optional[pd.DataFrame]:
        return self.data

    def get_predict_fn(self) -> PredictFunction:
        return self.predict_function

    def get_label(self) -> str:
        return self.label

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Call the prediction function and validate its output.

        Args:
            data: Rows to predict

        Returns:
            1-D float array with one prediction per row

        Raises:
            PredictionFailure: If the prediction function raises, or returns
                a number of predictions different from the number of rows
        """
        try:
            raw = self.predict_function(self.model, data)
        except Exception as err:
            raise PredictionFailure(
                f"Prediction function of '{self.label}' failed on {len(data)} rows: {err}"
            ) from err

        predictions = np.asarray(raw, dtype=float)
        if predictions.ndim > 1:
            predictions = np.squeeze(predictions)
        if predictions.ndim == 0:
            predictions = predictions.reshape(1)
        if predictions.ndim != 1 or len(predictions) != len(data):
            raise PredictionFailure(
                f"Prediction function of '{self.label}' returned shape "
                f"{np.shape(raw)} for {len(data)} rows"
            )
        return predictions


def as_explainer(
    x: Any,
    data: Optional[pd.DataFrame] = None,
    predict_function: Optional[PredictFunction] = None,
    label: Optional[str] = None,
    y: Optional[np.ndarray] = None,
    require_data: bool = True,
) -> Explainer:
    """Return an Explainer for either a raw model or an existing Explainer.

    Fields passed explicitly override the ones carried by an Explainer.

    Args:
        x: Raw model or Explainer
        data: Validation data
        predict_function: Prediction function
        label: Model label
        y: Target values
        require_data: Raise if no data is available after resolution

    Returns:
        Explainer
    """
    if isinstance(x, Explainer):
        overrides = {
            key: value
            for key, value in (
                ("data", data),
                ("predict_function", predict_function),
                ("label", label),
                ("y", y),
            )
            if value is not None
        }
        explainer = replace(x, **overrides) if overrides else x
    else:
        explainer = Explainer(
            model=x,
            data=data,
            y=y,
            predict_function=predict_function,
            label=label,
        )
        logger.debug(f"Wrapped raw model {type(x).__name__} as explainer '{explainer.label}'")

    if require_data and explainer.data is None:
        raise InvalidConfiguration(
            f"No data available for '{explainer.label}'. Pass data= or build an Explainer with data."
        )
    return explainer
