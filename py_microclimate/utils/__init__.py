"""Shared utilities."""

from .random import create_rng, get_rng, set_random_seed

__all__ = ["create_rng", "get_rng", "set_random_seed"]
