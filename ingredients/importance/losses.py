"""Loss functions used by permutation feature importance.

Every loss has the signature ``loss(observed, predicted) -> float`` where
lower is better.
"""
from __future__ import annotations

import numpy as np
from sklearn.metrics import accuracy_score, log_loss, mean_squared_error, roc_auc_score


def loss_root_mean_square(observed: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(observed, predicted)))


def loss_sum_of_squares(observed: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sum((np.asarray(observed, dtype=float) - np.asarray(predicted, dtype=float)) ** 2))


def loss_one_minus_auc(observed: np.ndarray, predicted: np.ndarray) -> float:
    """1 - ROC AUC for binary targets and scores of the positive class."""
    return float(1 - roc_auc_score(observed, predicted))


def loss_accuracy(observed: np.ndarray, predicted: np.ndarray, threshold: float = 0.5) -> float:
    """Share of misclassified observations after thresholding the scores."""
    labels = (np.asarray(predicted, dtype=float) >= threshold).astype(int)
    return float(1 - accuracy_score(np.asarray(observed).astype(int), labels))


def loss_cross_entropy(observed: np.ndarray, predicted: np.ndarray) -> float:
    """Binary cross entropy of positive-class probabilities."""
    predicted = np.clip(np.asarray(predicted, dtype=float), 1e-15, 1 - 1e-15)
    return float(log_loss(np.asarray(observed).astype(int), predicted, labels=[0, 1]))


LOSS_FUNCTIONS = {
    "root_mean_square": loss_root_mean_square,
    "sum_of_squares": loss_sum_of_squares,
    "one_minus_auc": loss_one_minus_auc,
    "accuracy": loss_accuracy,
    "cross_entropy": loss_cross_entropy,
}
