"""Global configuration for the ingredients package.

Defaults can be overridden through environment variables before the
package is imported. Never hardcode these values elsewhere in the codebase.
"""
from __future__ import annotations
import os
from dataclasses import dataclass

from .exceptions import InvalidConfiguration


RANDOM_SEED: int = int(os.environ.get("INGREDIENTS_RANDOM_SEED", 42))


@dataclass
class IngredientsConfig:
    """Package-wide default parameters.

    Attributes:
        n_samples: Number of observations sampled for dependence profiles.
        grid_points: Number of grid points per numerical variable.
        span: Kernel bandwidth multiplier for conditional aggregation.
        n_permutations: Number of permutation rounds for feature importance.
        random_seed: Seed used for sampling and permutations.
    """

    n_samples: int = int(os.environ.get("INGREDIENTS_N", 500))
    grid_points: int = int(os.environ.get("INGREDIENTS_GRID_POINTS", 101))
    span: float = float(os.environ.get("INGREDIENTS_SPAN", 0.25))
    n_permutations: int = int(os.environ.get("INGREDIENTS_B", 10))
    random_seed: int = RANDOM_SEED


CONFIG = IngredientsConfig()


def validate_config(cfg: IngredientsConfig) -> None:
    """Validate configuration values and raise helpful errors.

    Args:
        cfg: IngredientsConfig
    """
    if cfg.n_samples < 1:
        raise InvalidConfiguration(
            f"INGREDIENTS_N must be positive, got {cfg.n_samples}"
        )
    if cfg.grid_points < 1:
        raise InvalidConfiguration(
            f"INGREDIENTS_GRID_POINTS must be positive, got {cfg.grid_points}"
        )
    if cfg.span <= 0:
        raise InvalidConfiguration(
            f"INGREDIENTS_SPAN must be positive, got {cfg.span}"
        )
    if cfg.n_permutations < 1:
        raise InvalidConfiguration(
            f"INGREDIENTS_B must be positive, got {cfg.n_permutations}"
        )
