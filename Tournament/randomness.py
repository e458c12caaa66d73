# randomness.py

import numpy as np
from typing import List, Optional, Sequence, Tuple, TypeVar

from .config import RNG_SEED

T = TypeVar("T")


# ============================================================
# 1. GENERATOR
# ============================================================

def make_rng(seed: Optional[int] = RNG_SEED) -> np.random.Generator:
    """Fresh seeded generator. Pass seed=None for OS entropy."""
    return np.random.default_rng(seed)


# ============================================================
# 2. NOISE
# ============================================================

def normal_like(rng: np.random.Generator, size=None):
    """
    Approximately normal noise: sum of three U(-0.5, 0.5) draws.

    Mean 0, variance 1/4, support [-1.5, 1.5]. Used both for skill at
    population creation and for per-event performance noise.

    Returns a float when size is None, else an array of that shape.
    """
    if size is None:
        return float((rng.random(3) - 0.5).sum())
    shape = (size,) if np.isscalar(size) else tuple(size)
    return (rng.random(shape + (3,)) - 0.5).sum(axis=-1)


# ============================================================
# 3. SAMPLING WITHOUT REPLACEMENT
# ============================================================

def choice_indexes(rng: np.random.Generator, n: int, k: int) -> List[int]:
    """Sample k unique indexes from 0..n-1."""
    if k < 0 or k > n:
        raise ValueError(f"Cannot sample {k} unique indexes from {n}")
    return [int(i) for i in rng.choice(n, size=k, replace=False)]


def choice_from_list(rng: np.random.Generator, items: Sequence[T], k: int) -> List[T]:
    """Sample k unique items from a list (order of the draw is kept)."""
    idx = choice_indexes(rng, len(items), k)
    return [items[i] for i in idx]


# ============================================================
# 4. RANKING
# ============================================================

def rank_by(values) -> Tuple[np.ndarray, np.ndarray]:
    """
    Rank values descending (rank 1 = largest).

    Ties keep slot order: the earlier slot gets the better rank.

    Returns
    -------
    order : np.ndarray
        order[k] = slot holding rank k+1.
    ranks : np.ndarray
        ranks[slot] = 1-based rank of that slot.
    """
    values = np.asarray(values, dtype=float)
    order = np.argsort(-values, kind="stable")
    ranks = np.empty(len(values), dtype=int)
    ranks[order] = np.arange(1, len(values) + 1)
    return order, ranks
