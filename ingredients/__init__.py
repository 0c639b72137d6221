"""Ingredients - model-agnostic explanations

This package provides:
- Ceteris paribus (ICE) profiles for individual observations
- Partial, conditional and accumulated dependence profiles
- Clustering of profiles
- Permutation feature importance
- Interactive Plotly figures and text descriptions of the results

## Module Structure

- **explainer**: Uniform wrapper around a model, its data and predict function
- **profiles**: Variable grids, ceteris paribus profiles and their aggregation
- **importance**: Permutation feature importance and loss functions
- **visualization**: Plotly (and static matplotlib) figures
- **describe**: Natural language descriptions

## Quick Start

```python
from sklearn.ensemble import RandomForestClassifier
from ingredients import Explainer, partial_dependence, feature_importance, describe

model = RandomForestClassifier().fit(X, y)
explainer = Explainer(model, data=X, y=y, label="forest")

pdp = partial_dependence(explainer, variables=["age", "fare"], N=100)
print(pdp.table.head())
print(describe(pdp))

fi = feature_importance(explainer, B=5)
```
"""

from .config import CONFIG, IngredientsConfig, RANDOM_SEED, validate_config
from .exceptions import (
    IngredientsError,
    UnknownVariable,
    PredictionFailure,
    EmptyProfileSet,
    InvalidConfiguration,
)
from .explainer import Explainer, as_explainer, default_predict_function

from .profiles import (
    build_grid,
    calculate_variable_split,
    SplitCache,
    CeterisParibusProfiles,
    ceteris_paribus,
    select_sample,
    select_neighbours,
    AggregatedProfiles,
    aggregate_profiles,
    partial_dependence,
    conditional_dependence,
    accumulated_dependence,
    partial_dependency,
    conditional_dependency,
    accumulated_dependency,
    cluster_profiles,
)
from .importance import (
    FeatureImportance,
    feature_importance,
    loss_root_mean_square,
    loss_sum_of_squares,
    loss_one_minus_auc,
    loss_accuracy,
    loss_cross_entropy,
)
from .visualization import (
    plot_profiles,
    plot_feature_importance,
    plot_feature_importance_static,
    feature_importance_plot_data,
)
from .describe import describe

__all__ = [
    # Config
    "CONFIG",
    "IngredientsConfig",
    "RANDOM_SEED",
    "validate_config",
    # Errors
    "IngredientsError",
    "UnknownVariable",
    "PredictionFailure",
    "EmptyProfileSet",
    "InvalidConfiguration",
    # Explainer
    "Explainer",
    "as_explainer",
    "default_predict_function",
    # Profiles
    "build_grid",
    "calculate_variable_split",
    "SplitCache",
    "CeterisParibusProfiles",
    "ceteris_paribus",
    "select_sample",
    "select_neighbours",
    "AggregatedProfiles",
    "aggregate_profiles",
    "partial_dependence",
    "conditional_dependence",
    "accumulated_dependence",
    "partial_dependency",
    "conditional_dependency",
    "accumulated_dependency",
    "cluster_profiles",
    # Importance
    "FeatureImportance",
    "feature_importance",
    "loss_root_mean_square",
    "loss_sum_of_squares",
    "loss_one_minus_auc",
    "loss_accuracy",
    "loss_cross_entropy",
    # Visualization
    "plot_profiles",
    "plot_feature_importance",
    "plot_feature_importance_static",
    "feature_importance_plot_data",
    # Description
    "describe",
]

# Version
__version__ = "0.1.0"
