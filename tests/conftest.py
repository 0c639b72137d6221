"""
Shared pytest fixtures and configuration for all tests.
"""

import pytest
import warnings
import numpy as np
import pandas as pd


# Configure pytest to handle warnings properly
def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "integration: tests using fitted scikit-learn models")
    config.addinivalue_line("markers", "plots: tests building figures")
    warnings.filterwarnings('ignore', category=DeprecationWarning)
    warnings.filterwarnings('ignore', category=FutureWarning)


# ============================================================================
# Simple models
# ============================================================================

class ConstantModel:
    """Model predicting the same value for every row."""

    def __init__(self, value=0.7):
        self.value = value

    def predict(self, X):
        return np.full(len(X), self.value)


class LinearModel:
    """Additive model over numerical columns: sum of coef * column."""

    def __init__(self, coefs):
        self.coefs = coefs

    def predict(self, X):
        result = np.zeros(len(X))
        for column, coef in self.coefs.items():
            result = result + coef * X[column].to_numpy(dtype=float)
        return result


class FailingModel:
    """Model whose prediction always raises."""

    def predict(self, X):
        raise RuntimeError("model is broken")


class WrongLengthModel:
    """Model returning one prediction too few."""

    def predict(self, X):
        return np.zeros(max(len(X) - 1, 0))


@pytest.fixture
def constant_model():
    return ConstantModel(0.7)


@pytest.fixture
def linear_model():
    return LinearModel({"age": 2.0, "fare": 0.5})


@pytest.fixture
def age_only_model():
    return LinearModel({"age": 2.0})


@pytest.fixture
def fare_only_model():
    return LinearModel({"fare": 1.0})


@pytest.fixture
def failing_model():
    return FailingModel()


@pytest.fixture
def wrong_length_model():
    return WrongLengthModel()


# ============================================================================
# Data fixtures
# ============================================================================

@pytest.fixture(scope='session')
def random_seed():
    """Fixed random seed for reproducible tests."""
    return 42


@pytest.fixture
def tiny_dataset():
    """Three passengers with distinct ages."""
    return pd.DataFrame({
        'age': [20, 30, 40],
        'fare': [10.0, 20.0, 15.0],
    })


@pytest.fixture
def five_row_dataset():
    """Five rows with distinct numerical values."""
    return pd.DataFrame({
        'age': [18, 25, 33, 47, 60],
        'fare': [7.5, 12.0, 30.0, 55.0, 80.0],
    })


@pytest.fixture
def mixed_dataset(random_seed):
    """Titanic-like data with two numerical and two categorical variables.

    ``fare`` is strongly correlated with ``age`` and depends on ``class``.
    """
    rng = np.random.default_rng(random_seed)
    n_samples = 200

    age = rng.uniform(20, 80, n_samples)
    klass = rng.choice(['3rd', '1st', '2nd'], n_samples, p=[0.6, 0.15, 0.25])
    class_bonus = pd.Series(klass).map({'1st': 40.0, '2nd': 20.0, '3rd': 0.0}).to_numpy()
    fare = 2 * age + class_bonus + rng.normal(0, 1, n_samples)

    X = pd.DataFrame({
        'age': age,
        'fare': fare,
        'class': pd.Categorical(klass, categories=['1st', '2nd', '3rd']),
        'gender': rng.choice(['male', 'female'], n_samples),
    })
    y = (rng.uniform(0, 1, n_samples) < 0.4).astype(int)
    return X, y


@pytest.fixture
def numeric_dataset(mixed_dataset):
    X, _ = mixed_dataset
    return X[['age', 'fare']].copy()


# ============================================================================
# Model fixtures
# ============================================================================

@pytest.fixture
def trained_pipeline(mixed_dataset):
    """Return a fitted one-hot encoding + random forest pipeline."""
    from sklearn.compose import ColumnTransformer
    from sklearn.ensemble import RandomForestClassifier
    from sklearn.pipeline import Pipeline
    from sklearn.preprocessing import OneHotEncoder

    X, y = mixed_dataset

    pipeline = Pipeline([
        ('encode', ColumnTransformer(
            [('onehot', OneHotEncoder(handle_unknown='ignore'), ['class', 'gender'])],
            remainder='passthrough',
        )),
        ('classifier', RandomForestClassifier(n_estimators=10, random_state=42)),
    ])

    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        pipeline.fit(X, y)

    return pipeline


@pytest.fixture
def pipeline_explainer(trained_pipeline, mixed_dataset):
    from ingredients import Explainer

    X, y = mixed_dataset
    return Explainer(trained_pipeline, data=X, y=y, label="forest")


# ============================================================================
# Marks
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their names."""
    for item in items:
        if 'pipeline' in item.nodeid or 'sklearn' in item.nodeid:
            item.add_marker(pytest.mark.integration)
        if 'visualization' in item.nodeid or 'plot' in item.nodeid:
            item.add_marker(pytest.mark.plots)
