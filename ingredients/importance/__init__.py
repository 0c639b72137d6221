"""Permutation feature importance and its loss functions."""

from .losses import (
    loss_root_mean_square,
    loss_sum_of_squares,
    loss_one_minus_auc,
    loss_accuracy,
    loss_cross_entropy,
    LOSS_FUNCTIONS,
)
from .feature_importance import FeatureImportance, feature_importance, FULL_MODEL, BASELINE

__all__ = [
    "loss_root_mean_square",
    "loss_sum_of_squares",
    "loss_one_minus_auc",
    "loss_accuracy",
    "loss_cross_entropy",
    "LOSS_FUNCTIONS",
    "FeatureImportance",
    "feature_importance",
    "FULL_MODEL",
    "BASELINE",
]
