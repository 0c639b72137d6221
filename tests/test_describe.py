"""Tests for natural language descriptions."""

import numpy as np
import pytest

from ingredients import (
    InvalidConfiguration,
    UnknownVariable,
    aggregate_profiles,
    ceteris_paribus,
    describe,
    feature_importance,
    partial_dependence,
)
from ingredients.describe import breakpoint_index


class TestBreakpoint:
    """Test breakpoint detection."""

    def test_step_function(self):
        assert breakpoint_index(np.array([0, 0, 0, 1, 1, 1])) == 2

    def test_single_point(self):
        assert breakpoint_index(np.array([3.0])) == 0


class TestDescribeCeterisParibus:
    """Test descriptions of single-observation profiles."""

    def test_numeric_description(self, linear_model, numeric_dataset):
        cp = ceteris_paribus(linear_model, numeric_dataset.iloc[[0]], data=numeric_dataset, grid_points=5)
        text = describe(cp)

        assert text.startswith("For the selected instance, prediction estimated by LinearModel")
        assert "The highest prediction occurs for (age = " in text
        assert "*higher* for variable values *higher* than breakpoint" in text

    def test_custom_label_and_numbers(self, linear_model, numeric_dataset):
        cp = ceteris_paribus(linear_model, numeric_dataset.iloc[[0]], data=numeric_dataset,
                             variables=['age'], grid_points=5)
        text = describe(cp, label="the expected fare", display_numbers=True)
        assert "the expected fare estimated by LinearModel" in text
        highest = f"{cp.profiles['_yhat_'].max():.3g}"
        assert highest in text

    def test_constant_model_is_insensitive(self, constant_model, numeric_dataset):
        cp = ceteris_paribus(constant_model, numeric_dataset.iloc[[0]], data=numeric_dataset, grid_points=5)
        text = describe(cp, variables=['age'])
        assert "almost insensitive to changes of age" in text

    def test_categorical_description(self, mixed_dataset):
        from ingredients import Explainer

        X, _ = mixed_dataset
        bonus = {'1st': 3.0, '2nd': 1.0, '3rd': 0.0}

        def predict(model, data):
            return data['class'].astype(object).map(bonus).to_numpy(dtype=float)

        explainer = Explainer(None, data=X, predict_function=predict, label='class model')
        observation = X[X['class'] == '2nd'].iloc[[0]]
        text = describe(ceteris_paribus(explainer, observation, variables=['class']))

        assert 'would increase the most if class changed to "1st"' in text
        assert 'decrease the most if class changed to "3rd"' in text

    def test_requires_single_observation(self, linear_model, numeric_dataset):
        cp = ceteris_paribus(linear_model, numeric_dataset.iloc[:2], data=numeric_dataset, grid_points=3)
        with pytest.raises(InvalidConfiguration):
            describe(cp)

    def test_unknown_variable(self, linear_model, numeric_dataset):
        cp = ceteris_paribus(linear_model, numeric_dataset.iloc[[0]], data=numeric_dataset, grid_points=3)
        with pytest.raises(UnknownVariable):
            describe(cp, variables=['height'])


class TestDescribeAggregated:
    """Test descriptions of aggregated profiles."""

    def test_partial_dependence(self, linear_model, numeric_dataset):
        pdp = partial_dependence(linear_model, data=numeric_dataset, N=50, grid_points=9)
        text = describe(pdp, variables=['age'])

        assert text.startswith("LinearModel's mean prediction is equal to")
        assert "Average model responses are *higher*" in text

    def test_categorical(self, fare_only_model, mixed_dataset):
        X, _ = mixed_dataset
        cp = ceteris_paribus(fare_only_model, X, data=X, variables=['class'])
        agg = aggregate_profiles(cp, type='conditional', variable_type='categorical')
        text = describe(agg)
        assert 'is between "1st" and "3rd"' in text


class TestDescribeFeatureImportance:
    """Test descriptions of feature importance."""

    def test_important_variables(self, age_only_model, numeric_dataset):
        y = 2.0 * numeric_dataset['age'].to_numpy()
        fi = feature_importance(age_only_model, data=numeric_dataset, y=y, B=2)
        text = describe(fi)
        assert text == (
            "The number of important variables for LinearModel's prediction is 1 out of 2. "
            "Variable age has the highest importance."
        )

    def test_unsupported_object(self):
        with pytest.raises(InvalidConfiguration):
            describe("not an explanation")
