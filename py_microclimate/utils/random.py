"""
Random number generation utilities.

The simulation never touches NumPy's global random state. Every stochastic
subsystem (precipitation gating, gust jitter, landscape noise) draws from a
``numpy.random.Generator`` that is handed in explicitly, so a run can be
replayed by seeding it.
"""

import hashlib
from typing import Optional, Union

import numpy as np

Seed = Union[int, str, None]

# Global generator instance
_rng = None


def _seed_to_int(seed: Union[int, str]) -> int:
    """Map an integer or string seed onto a 64-bit integer."""
    if isinstance(seed, (int, np.integer)):
        return int(seed)
    digest = hashlib.sha256(str(seed).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


def create_rng(seed: Seed = None) -> np.random.Generator:
    """
    Create an independent generator.

    Args:
        seed: Integer or string seed. ``None`` gives an unseeded generator.

    Returns:
        numpy Generator
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(_seed_to_int(seed))


def set_random_seed(seed: Seed) -> None:
    """
    Reset the shared generator used by callers that do not bring their own.

    Args:
        seed: Seed string or integer
    """
    global _rng
    _rng = create_rng(seed)


def get_rng(seed: Optional[Seed] = None) -> np.random.Generator:
    """
    Get the shared generator, creating it on first use.

    Returns:
        numpy Generator
    """
    global _rng
    if _rng is None:
        _rng = create_rng(seed)
    return _rng
