"""Tests for profile and feature importance figures."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import plotly.graph_objects as go

from ingredients import (
    EmptyProfileSet,
    InvalidConfiguration,
    UnknownVariable,
    aggregate_profiles,
    ceteris_paribus,
    feature_importance,
    feature_importance_plot_data,
    partial_dependence,
    plot_feature_importance,
    plot_feature_importance_static,
    plot_profiles,
)


@pytest.fixture
def mixed_cp(pipeline_explainer, mixed_dataset):
    X, _ = mixed_dataset
    return ceteris_paribus(pipeline_explainer, X.iloc[:3], grid_points=7)


@pytest.fixture
def importance_pair(linear_model, age_only_model, numeric_dataset, random_seed):
    rng = np.random.default_rng(random_seed)
    y = 2.0 * numeric_dataset['age'].to_numpy() + rng.normal(0, 1, len(numeric_dataset))
    first = feature_importance(linear_model, data=numeric_dataset, y=y, B=3, label='linear')
    second = feature_importance(age_only_model, data=numeric_dataset, y=y, B=3, label='age only')
    return first, second


class TestPlotProfiles:
    """Test profile figures."""

    def test_ceteris_paribus_figure(self, mixed_cp):
        fig = plot_profiles(mixed_cp)
        assert isinstance(fig, go.Figure)
        # 3 profiles + 1 observation trace for each of the 2 numerical variables
        assert len(fig.data) == 2 * (3 + 1)

    def test_without_observations(self, mixed_cp):
        fig = plot_profiles(mixed_cp, show_observations=False)
        assert len(fig.data) == 2 * 3

    def test_categorical_bars(self, mixed_cp):
        fig = plot_profiles(mixed_cp, variable_type='categorical', variables=['class'])
        assert all(isinstance(trace, go.Bar) for trace in fig.data)

    def test_aggregated_profiles_of_two_results(self, pipeline_explainer, linear_model, numeric_dataset):
        pdp_a = partial_dependence(pipeline_explainer, N=20, grid_points=5, variables=['age', 'fare'])
        pdp_b = partial_dependence(linear_model, data=numeric_dataset, N=20, grid_points=5)
        fig = plot_profiles(pdp_a, pdp_b)

        assert len(fig.data) == 4
        assert {trace.name for trace in fig.data} == {'forest', 'LinearModel'}
        assert fig.layout.title.text == 'Partial dependence profiles'

    def test_save_html(self, mixed_cp, tmp_path):
        path = tmp_path / 'profiles.html'
        result = plot_profiles(mixed_cp, save_path=str(path))
        assert result == str(path)
        assert Path(path).exists()

    def test_unknown_variable(self, mixed_cp):
        with pytest.raises(UnknownVariable):
            plot_profiles(mixed_cp, variables=['height'])

    def test_nothing_of_requested_type(self, linear_model, numeric_dataset):
        cp = ceteris_paribus(linear_model, numeric_dataset.iloc[[0]], data=numeric_dataset, grid_points=3)
        with pytest.raises(EmptyProfileSet):
            plot_profiles(cp, variable_type='categorical')


class TestFeatureImportancePlotData:
    """Test reshaping of feature importance for plots."""

    def test_helper_rows_removed_and_full_model_added(self, importance_pair):
        df = feature_importance_plot_data(*importance_pair)
        assert not df['variable'].str.startswith('_').any()
        assert {'full_model', 'min', 'q1', 'q3', 'max'} <= set(df.columns)
        assert set(df['label']) == {'linear', 'age only'}

    def test_order_by_mean_loss(self, importance_pair):
        df = feature_importance_plot_data(*importance_pair)
        # fare matters less than age in both models
        assert list(pd.unique(df['variable'])) == ['fare', 'age']

    def test_feature_split_order(self, importance_pair):
        df = feature_importance_plot_data(*importance_pair, split='feature')
        assert list(pd.unique(df['variable'])) == ['age', 'fare']

    def test_max_vars_per_model(self, importance_pair):
        df = feature_importance_plot_data(*importance_pair, max_vars=1)
        assert len(df) == 2
        assert set(df['variable']) == {'age'}

    def test_without_boxplots(self, importance_pair):
        df = feature_importance_plot_data(*importance_pair, show_boxplots=False)
        assert 'q1' not in df.columns

    def test_invalid_split(self, importance_pair):
        with pytest.raises(InvalidConfiguration):
            feature_importance_plot_data(*importance_pair, split='panel')


class TestPlotFeatureImportance:
    """Test feature importance figures."""

    def test_model_split(self, importance_pair):
        fig = plot_feature_importance(*importance_pair)
        assert isinstance(fig, go.Figure)
        bars = [trace for trace in fig.data if isinstance(trace, go.Bar)]
        assert len(bars) == 4

    def test_feature_split_without_boxplots(self, importance_pair):
        fig = plot_feature_importance(*importance_pair, split='feature', show_boxplots=False)
        assert all(isinstance(trace, go.Bar) for trace in fig.data)
        assert fig.layout.title.text == 'Feature importance'

    def test_static_png(self, importance_pair, tmp_path):
        path = plot_feature_importance_static(importance_pair[0], str(tmp_path / 'fi' / 'importance.png'))
        assert Path(path).exists()

    def test_import_keeps_matplotlib_backend(self, monkeypatch):
        """Importing the plotting module must not switch the user's backend."""
        import importlib

        import matplotlib

        import ingredients.visualization.importance as importance_module

        calls = []
        monkeypatch.setattr(matplotlib, 'use', lambda *args, **kwargs: calls.append(args))
        importlib.reload(importance_module)
        assert calls == []
