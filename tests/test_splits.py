"""Tests for variable grids."""

import numpy as np
import pandas as pd
import pytest

from ingredients import (
    InvalidConfiguration,
    SplitCache,
    UnknownVariable,
    build_grid,
    calculate_variable_split,
)
from ingredients.profiles.splits import categorical_levels, variable_type_of


class TestBuildGrid:
    """Test grid construction for single variables."""

    def test_three_distinct_values_with_three_points(self, tiny_dataset):
        """Quantile grid of 3 points over 3 values returns those values."""
        grid = build_grid(tiny_dataset, 'age', grid_points=3)
        np.testing.assert_allclose(grid, [20, 30, 40])

    def test_numeric_grid_is_bounded_and_sorted(self, mixed_dataset):
        """Numerical grid stays within observed range and has at most k values."""
        X, _ = mixed_dataset
        grid = build_grid(X, 'fare', grid_points=11)

        assert len(grid) <= 11
        assert len(np.unique(grid)) == len(grid)
        assert grid.min() >= X['fare'].min()
        assert grid.max() <= X['fare'].max()
        assert np.all(np.diff(grid) > 0)

    def test_grid_deduplicates_repeated_quantiles(self):
        """Few unique values give a grid no longer than the number of values."""
        df = pd.DataFrame({'x': [1, 1, 1, 1, 2]})
        grid = build_grid(df, 'x', grid_points=101)
        assert len(grid) <= 101
        assert grid[0] == 1 and grid[-1] == 2

    def test_categorical_grid_follows_declared_order(self):
        """Levels come in declared order regardless of frequency."""
        df = pd.DataFrame({
            'class': pd.Categorical(
                ['3rd', '3rd', '3rd', '2nd', '1st', '3rd'],
                categories=['1st', '2nd', '3rd'],
            )
        })
        grid = build_grid(df, 'class', grid_points=2)
        assert list(grid) == ['1st', '2nd', '3rd']

    def test_unused_categories_are_dropped(self):
        df = pd.DataFrame({
            'class': pd.Categorical(['1st', '3rd'], categories=['1st', '2nd', '3rd'])
        })
        assert list(build_grid(df, 'class')) == ['1st', '3rd']

    def test_object_column_keeps_first_appearance_order(self):
        df = pd.DataFrame({'gender': ['male', 'female', 'male']})
        assert list(build_grid(df, 'gender')) == ['male', 'female']

    def test_uniform_split(self, tiny_dataset):
        grid = build_grid(tiny_dataset, 'age', grid_points=5, split_type='uniform')
        np.testing.assert_allclose(grid, [20, 25, 30, 35, 40])

    def test_unknown_variable_raises(self, tiny_dataset):
        with pytest.raises(UnknownVariable):
            build_grid(tiny_dataset, 'height')

    def test_unknown_variable_is_key_error(self, tiny_dataset):
        with pytest.raises(KeyError):
            build_grid(tiny_dataset, 'height')

    def test_invalid_grid_points(self, tiny_dataset):
        with pytest.raises(InvalidConfiguration):
            build_grid(tiny_dataset, 'age', grid_points=0)

    def test_invalid_split_type(self, tiny_dataset):
        with pytest.raises(InvalidConfiguration):
            build_grid(tiny_dataset, 'age', split_type='random')


class TestVariableTypes:
    """Test classification of columns."""

    def test_types(self, mixed_dataset):
        X, _ = mixed_dataset
        assert variable_type_of(X['age']) == 'numerical'
        assert variable_type_of(X['class']) == 'categorical'
        assert variable_type_of(X['gender']) == 'categorical'
        assert variable_type_of(pd.Series([True, False])) == 'categorical'

    def test_categorical_levels_ignore_missing(self):
        series = pd.Series(['a', None, 'b', 'a'])
        assert categorical_levels(series) == ['a', 'b']


class TestCalculateVariableSplit:
    """Test grids for several variables."""

    def test_all_columns_by_default(self, mixed_dataset):
        X, _ = mixed_dataset
        splits = calculate_variable_split(X, grid_points=5)
        assert list(splits) == list(X.columns)

    def test_new_observations_are_merged(self, tiny_dataset):
        new = pd.DataFrame({'age': [27], 'fare': [12.0]})
        splits = calculate_variable_split(tiny_dataset, ['age'], grid_points=3, new_observations=new)
        np.testing.assert_allclose(splits['age'], [20, 27, 30, 40])


class TestSplitCache:
    """Test explicit grid memoization."""

    def test_cache_hits_and_clear(self, tiny_dataset):
        cache = SplitCache()
        first = cache.get_or_compute(tiny_dataset, 'age', 3)
        second = cache.get_or_compute(tiny_dataset, 'age', 3)

        assert first is second
        assert cache.hits == 1 and cache.misses == 1
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0

    def test_different_grid_points_are_separate_entries(self, tiny_dataset):
        cache = SplitCache()
        splits = cache.splits(tiny_dataset, grid_points=3)
        cache.splits(tiny_dataset, grid_points=2)
        assert set(splits) == {'age', 'fare'}
        assert len(cache) == 4
