"""
Truncated-eigenbasis z-score imputation for DENTIST

Each call imputes the z-scores of a target marker subset from a reference
subset through a rank-truncated pseudo-inverse of the reference LD block:

    z_imp = LD[t, r] U_K W_K^-1 U_K' z[r]
    rsq   = diag(LD[t, r] U_K W_K^-1 U_K' LD[r, t])
    z_adj = (z[t] - z_imp) / sqrt(LD[t, t] - rsq)

where U_K, W_K are the K leading eigenvectors/eigenvalues of LD[r, r].

Block gathers and residuals are computed in row chunks; with cpu > 1 the
chunks run on a joblib thread pool over nogil Numba kernels.
"""

import math
import multiprocessing
from dataclasses import dataclass
from typing import Union

import numba
import numpy as np
from joblib import Parallel, delayed

from ..utils.data_types import LDMatrix, as_ld_array
from ..utils.errors import DentistError, RankTooLowError, DegenerateVarianceError

# Eigenvalues below this count as zero when computing the effective rank
EIGEN_ZERO_TOL = 1e-4

# Below this many rows a thread pool costs more than it saves
PARALLEL_MIN_ROWS = 256


@numba.njit(cache=True, nogil=True)
def _gather_block(ld, rows, cols):
    """Copy LD[rows, cols] into a new dense block"""
    out = np.empty((rows.shape[0], cols.shape[0]))
    for i in range(rows.shape[0]):
        r = rows[i]
        for k in range(cols.shape[0]):
            out[i, k] = ld[r, cols[k]]
    return out


@numba.njit(cache=True, nogil=True)
def _studentized_residuals(ld, target_idx, zscores, imputed, rsq):
    """(z - z_imp) / sqrt(LD[j, j] - rsq) for each target marker j"""
    out = np.empty(target_idx.shape[0])
    for i in range(target_idx.shape[0]):
        j = target_idx[i]
        out[i] = (zscores[j] - imputed[i]) / np.sqrt(ld[j, j] - rsq[i])
    return out


def resolve_cpu(cpu: int) -> int:
    """Map cpu=0 to all available cores"""
    if cpu == 0:
        return multiprocessing.cpu_count()
    if cpu < 0:
        raise ValueError(f"cpu must be >= 0, got {cpu}")
    return cpu


def _gather(ld: np.ndarray, rows: np.ndarray, cols: np.ndarray, cpu: int) -> np.ndarray:
    if cpu <= 1 or rows.shape[0] < PARALLEL_MIN_ROWS:
        return _gather_block(ld, rows, cols)
    chunks = np.array_split(rows, min(cpu, rows.shape[0]))
    parts = Parallel(n_jobs=cpu, backend='threading')(
        delayed(_gather_block)(ld, chunk, cols) for chunk in chunks
    )
    return np.vstack(parts)


def _residuals(ld: np.ndarray, target_idx: np.ndarray, zscores: np.ndarray,
               imputed: np.ndarray, rsq: np.ndarray, cpu: int) -> np.ndarray:
    if cpu <= 1 or target_idx.shape[0] < PARALLEL_MIN_ROWS:
        return _studentized_residuals(ld, target_idx, zscores, imputed, rsq)
    bounds = np.array_split(np.arange(target_idx.shape[0]), min(cpu, target_idx.shape[0]))
    parts = Parallel(n_jobs=cpu, backend='threading')(
        delayed(_studentized_residuals)(ld, target_idx[b], zscores, imputed[b], rsq[b])
        for b in bounds
    )
    return np.concatenate(parts)


@dataclass
class ImputationBatch:
    """Imputation output for one target subset

    Arrays are parallel to ``target_idx``; ``scatter`` writes them into
    full-length result vectors.
    """

    target_idx: np.ndarray
    imputed_z: np.ndarray
    rsq: np.ndarray
    z_adjusted: np.ndarray
    k: int = 0
    n_rank: int = 0

    @property
    def n_target(self) -> int:
        return int(self.target_idx.shape[0])

    def scatter(self, imputed_z: np.ndarray, rsq: np.ndarray, z_adjusted: np.ndarray) -> None:
        """Write this batch into result vectors at target indices only"""
        imputed_z[self.target_idx] = self.imputed_z
        rsq[self.target_idx] = self.rsq
        z_adjusted[self.target_idx] = self.z_adjusted


def _empty_batch() -> ImputationBatch:
    empty = np.zeros(0, dtype=np.float64)
    return ImputationBatch(np.zeros(0, dtype=np.int64), empty, empty.copy(), empty.copy())


def _check_indices(name: str, idx: np.ndarray, n_markers: int) -> np.ndarray:
    idx = np.ascontiguousarray(idx, dtype=np.int64)
    if idx.ndim != 1:
        raise ValueError(f"{name} must be a 1D index array")
    if idx.size and (idx.min() < 0 or idx.max() >= n_markers):
        raise ValueError(f"{name} contains indices outside [0, {n_markers})")
    return idx


def DENTIST_Impute(ld: Union[LDMatrix, np.ndarray],
                   reference_idx: np.ndarray,
                   target_idx: np.ndarray,
                   zscores: np.ndarray,
                   n_sample: int,
                   prop_svd: float = 0.4,
                   cpu: int = 1,
                   verbose: bool = False) -> ImputationBatch:
    """Impute target z-scores from reference markers by truncated eigen regression

    Args:
        ld: LD matrix (n_markers × n_markers)
        reference_idx: Marker indices used as the regression basis
        target_idx: Marker indices to impute (disjoint from reference_idx)
        zscores: Observed z-scores for all markers
        n_sample: GWAS sample size; caps the truncation rank
        prop_svd: Proportion of min(n_reference, n_sample) eigen-components kept
        cpu: Worker threads for block gathers and residuals (0 = all cores)
        verbose: Print progress information

    Returns:
        ImputationBatch with imputed z, rsq and adjusted z per target marker

    Raises:
        RankTooLowError: If the truncation rank K is <= 1
        DegenerateVarianceError: If any target marker has rsq >= 1 or
            LD[j, j] - rsq <= 0
    """
    ld_arr = as_ld_array(ld)
    n_markers = ld_arr.shape[0]
    zscores = np.ascontiguousarray(zscores, dtype=np.float64)
    if zscores.shape != (n_markers,):
        raise ValueError("Z-score vector length must match LD matrix dimension")
    if n_sample <= 0:
        raise ValueError(f"Sample size must be positive, got {n_sample}")
    if not (0.0 < prop_svd <= 1.0):
        raise ValueError(f"prop_svd must be in (0, 1], got {prop_svd}")
    cpu = resolve_cpu(cpu)

    reference_idx = _check_indices("reference_idx", reference_idx, n_markers)
    target_idx = _check_indices("target_idx", target_idx, n_markers)
    if np.intersect1d(reference_idx, target_idx).size:
        raise ValueError("Reference and target marker sets must be disjoint")

    # K <= |reference| * prop_svd, so fewer than two references can never pass
    if reference_idx.size < 2:
        raise RankTooLowError(int(reference_idx.size), int(reference_idx.size))

    ref_block = _gather(ld_arr, reference_idx, reference_idx, cpu)
    z_ref = zscores[reference_idx]

    try:
        eigvals, eigvecs = np.linalg.eigh(ref_block)
    except np.linalg.LinAlgError as e:
        raise DentistError(f"Failed to compute eigendecomposition: {e}") from e

    n_rank = int(eigvals.size - np.count_nonzero(eigvals < EIGEN_ZERO_TOL))
    k = int(math.floor(min(reference_idx.size, n_sample) * prop_svd))
    k = min(k, n_rank)
    if k <= 1:
        raise RankTooLowError(k, int(reference_idx.size))

    if target_idx.size == 0:
        batch = _empty_batch()
        batch.k, batch.n_rank = k, n_rank
        return batch

    cross = _gather(ld_arr, target_idx, reference_idx, cpu)

    # eigh returns ascending eigenvalues; keep the K largest
    top = np.argsort(eigvals)[::-1][:k]
    ui = eigvecs[:, top]
    inv_w = 1.0 / eigvals[top]

    proj = cross @ ui
    beta = proj * inv_w[np.newaxis, :]
    imputed = beta @ (ui.T @ z_ref)
    rsq = np.einsum('ij,ij->i', beta, proj)

    residual_var = ld_arr[target_idx, target_idx] - rsq
    bad = np.flatnonzero((rsq >= 1.0) | (residual_var <= 0.0))
    if bad.size:
        j = int(target_idx[bad[0]])
        raise DegenerateVarianceError(j, float(rsq[bad[0]]), float(ld_arr[j, j]))

    z_adjusted = _residuals(ld_arr, target_idx, zscores, imputed, rsq, cpu)

    if verbose:
        print(f"   Imputed {target_idx.size} markers from {reference_idx.size} "
              f"(K={k}, effective rank={n_rank})")

    return ImputationBatch(
        target_idx=target_idx,
        imputed_z=imputed,
        rsq=rsq,
        z_adjusted=z_adjusted,
        k=k,
        n_rank=n_rank,
    )
