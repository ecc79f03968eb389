"""
LD matrix helpers: construction from genotypes and duplicate-variant detection
"""

import numpy as np
from typing import Union, Tuple, List

from ..utils.data_types import LDMatrix, as_ld_array


def compute_ld_matrix(genotypes: np.ndarray,
                      missing_value: int = -9,
                      verbose: bool = False) -> LDMatrix:
    """Pearson correlation between markers of a reference panel

    Missing genotypes are filled with the marker mean before correlating.
    Monomorphic markers get zero correlation with all others and a unit
    diagonal.

    Args:
        genotypes: Genotype matrix (n_individuals × n_markers)
        missing_value: Value representing missing data
        verbose: Print progress information

    Returns:
        LDMatrix (n_markers × n_markers)
    """
    geno = np.asarray(genotypes, dtype=np.float64)
    if geno.ndim != 2:
        raise ValueError("Genotype matrix must be 2D (individuals × markers)")
    if geno.shape[0] < 2:
        raise ValueError("At least two individuals are required to estimate LD")

    if verbose:
        print(f"Computing LD matrix from {geno.shape[0]} individuals × {geno.shape[1]} markers")

    missing = (geno == missing_value) | np.isnan(geno)
    if missing.any():
        geno = geno.copy()
        masked = np.ma.array(geno, mask=missing)
        means = masked.mean(axis=0).filled(0.0)
        rows, cols = np.nonzero(missing)
        geno[rows, cols] = means[cols]

    with np.errstate(divide='ignore', invalid='ignore'):
        correlation = np.corrcoef(geno, rowvar=False)
    correlation = np.atleast_2d(np.nan_to_num(correlation, nan=0.0))
    np.fill_diagonal(correlation, 1.0)
    # corrcoef can leave asymmetry at the 1e-16 level
    correlation = (correlation + correlation.T) / 2.0
    return LDMatrix(correlation)


def find_duplicate_variants(ld: Union[LDMatrix, np.ndarray],
                            dup_threshold: float = 0.99) -> Tuple[np.ndarray, np.ndarray]:
    """Cluster markers in near-perfect LD

    Markers are linked when ``|r| >= dup_threshold``; connected components
    form duplicate clusters and the lowest-index member represents each one.

    Args:
        ld: LD matrix (n_markers × n_markers)
        dup_threshold: Absolute correlation at or above which markers are duplicates

    Returns:
        Tuple of (representative_idx, representative_of) where
        representative_idx lists the kept markers in ascending order and
        representative_of[i] is the representative marker of marker i
    """
    if not (0.0 < dup_threshold <= 1.0):
        raise ValueError("Duplicate threshold must be in (0, 1]")
    ld_arr = as_ld_array(ld)
    n = ld_arr.shape[0]

    adjacency = np.abs(ld_arr) >= dup_threshold
    np.fill_diagonal(adjacency, True)

    representative_of = np.full(n, -1, dtype=np.int64)
    for start in range(n):
        if representative_of[start] >= 0:
            continue
        queue: List[int] = [start]
        representative_of[start] = start
        while queue:
            node = queue.pop()
            for neighbor in np.flatnonzero(adjacency[node]):
                if representative_of[neighbor] < 0:
                    representative_of[neighbor] = start
                    queue.append(int(neighbor))

    representative_idx = np.flatnonzero(representative_of == np.arange(n))
    return representative_idx, representative_of
