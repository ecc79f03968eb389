"""
Seeded random orderings used to split markers into target/reference halves
"""

from typing import Tuple

import numpy as np

# Seed offset between consecutive QC rounds
RESHUFFLE_SEED_STEP = 20000


def generate_random_order(n: int, seed: int) -> np.ndarray:
    """Return a seeded permutation of ``0 .. n-1``

    Uses a single-pass Fisher-Yates shuffle from numpy's Generator, so every
    value appears exactly once and the same ``(n, seed)`` always gives the
    same order.

    Args:
        n: Number of elements
        seed: Random seed

    Returns:
        Integer array holding a permutation of range(n)
    """
    if n < 0:
        raise ValueError(f"Permutation size must be non-negative, got {n}")
    rng = np.random.default_rng(seed)
    return rng.permutation(n).astype(np.int64, copy=False)


def round_seed(seed: int, round_index: int) -> int:
    """Seed used to partition markers at the start of a QC round"""
    return int(seed) + RESHUFFLE_SEED_STEP * int(round_index)


def split_by_random_order(active_idx: np.ndarray, order: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Bipartition marker indices by a random order

    Position ``p`` of ``active_idx`` goes to the reference subset when
    ``order[p] > len(active_idx) // 2`` and to the target subset otherwise.

    Args:
        active_idx: Marker indices in the active set
        order: Permutation of range(len(active_idx))

    Returns:
        Tuple of (reference_idx, target_idx), both in ascending active-set order
    """
    active_idx = np.asarray(active_idx, dtype=np.int64)
    order = np.asarray(order)
    if order.shape[0] != active_idx.shape[0]:
        raise ValueError(
            f"Order length ({order.shape[0]}) must match active set size ({active_idx.shape[0]})"
        )
    to_reference = order > active_idx.shape[0] // 2
    return active_idx[to_reference], active_idx[~to_reference]
