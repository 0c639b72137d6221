"""Plotly figures for profiles and feature importance."""

from .profiles import plot_profiles
from .importance import (
    feature_importance_plot_data,
    plot_feature_importance,
    plot_feature_importance_static,
)

__all__ = [
    "plot_profiles",
    "feature_importance_plot_data",
    "plot_feature_importance",
    "plot_feature_importance_static",
]
