"""
Core data structures for pyDENTIST package
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Optional, Union, Tuple, List, Sequence
from pathlib import Path

from .stats import chisq_pvalue


class LDMatrix:
    """LD (marker correlation) matrix with validation and properties

    Must be a square, symmetric, finite matrix. The wrapped array is marked
    read-only; it is shared by every imputation call of a run.
    """

    def __init__(self, data: Union[np.ndarray, str, Path], symmetry_tol: float = 1e-6):
        if isinstance(data, LDMatrix):
            self._data = data._data
        elif isinstance(data, (str, Path)):
            from ..data.io_utils import read_ld_matrix
            self._data = read_ld_matrix(data).to_numpy()
        elif isinstance(data, np.ndarray):
            self._data = np.array(data, dtype=np.float64, copy=True)
        else:
            raise ValueError("Data must be array or file path")

        if self._data.ndim != 2:
            raise ValueError("LD matrix must be 2D")
        if self._data.shape[0] != self._data.shape[1]:
            raise ValueError("LD matrix must be square")
        if not np.all(np.isfinite(self._data)):
            raise ValueError("LD matrix contains NaN or infinite values")
        if not np.allclose(self._data, self._data.T, atol=symmetry_tol):
            raise ValueError("LD matrix must be symmetric")

        self._data = np.ascontiguousarray(self._data)
        self._data.setflags(write=False)
        self.n = self._data.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """Matrix shape"""
        return self._data.shape

    @property
    def n_markers(self) -> int:
        """Number of markers"""
        return self.n

    @property
    def diagonal(self) -> np.ndarray:
        return np.diag(self._data)

    def __getitem__(self, key):
        """Support array indexing"""
        return self._data[key]

    def to_numpy(self) -> np.ndarray:
        """Read-only view of the underlying array"""
        return self._data

    def subset(self, indices: Sequence[int]) -> "LDMatrix":
        """LD matrix restricted to the given markers"""
        indices = np.asarray(indices, dtype=np.int64)
        return LDMatrix(self._data[np.ix_(indices, indices)])


def as_ld_array(ld: Union[LDMatrix, np.ndarray]) -> np.ndarray:
    """Return a float64 C-contiguous array for an LD matrix input"""
    if isinstance(ld, LDMatrix):
        return ld.to_numpy()
    if isinstance(ld, np.ndarray):
        if ld.ndim != 2 or ld.shape[0] != ld.shape[1]:
            raise ValueError("LD matrix must be a square 2D array")
        return np.ascontiguousarray(ld, dtype=np.float64)
    raise ValueError("LD matrix must be LDMatrix or numpy array")


@dataclass
class RoundSummary:
    """Diagnostics recorded for one QC round"""

    round_index: int
    seed: int
    n_active: int
    n_reference: int
    n_target: int
    n_target_cleaned: int
    threshold: float
    threshold_significant: float
    threshold_nonsignificant: float
    n_retained: int
    n_rescued: int = 0
    inflation_factor: Optional[float] = None
    k_target: int = 0
    k_refine: int = 0


class DentistResults:
    """DENTIST QC results, one entry per input marker

    Holds the imputed z-scores, imputation r², adjusted (studentized) z-scores,
    the number of rounds each marker survived and its significance group.
    """

    def __init__(self,
                 zscores: np.ndarray,
                 imputed_z: np.ndarray,
                 rsq: np.ndarray,
                 z_adjusted: np.ndarray,
                 iter_id: np.ndarray,
                 grouping: np.ndarray,
                 n_iter: int = 0,
                 pvalue_threshold: float = 5.0369e-8,
                 is_duplicate: Optional[np.ndarray] = None,
                 is_discordant: Optional[np.ndarray] = None,
                 snp_ids: Optional[Sequence[str]] = None,
                 rounds: Optional[List[RoundSummary]] = None):

        n = len(zscores)
        if not (len(imputed_z) == len(rsq) == len(z_adjusted) == len(iter_id) == len(grouping) == n):
            raise ValueError("All result arrays must have same length")
        if snp_ids is not None and len(snp_ids) != n:
            raise ValueError("SNP labels must match number of markers")

        self.zscores = np.asarray(zscores, dtype=np.float64)
        self.imputed_z = np.asarray(imputed_z, dtype=np.float64)
        self.rsq = np.asarray(rsq, dtype=np.float64)
        self.z_adjusted = np.asarray(z_adjusted, dtype=np.float64)
        self.iter_id = np.asarray(iter_id, dtype=np.int64)
        self.grouping = np.asarray(grouping, dtype=bool)
        self.n_iter = int(n_iter)
        self.pvalue_threshold = float(pvalue_threshold)
        if is_duplicate is None:
            is_duplicate = np.zeros(n, dtype=bool)
        self.is_duplicate = np.asarray(is_duplicate, dtype=bool)
        if is_discordant is None:
            is_discordant = np.zeros(n, dtype=bool)
        self.is_discordant = np.asarray(is_discordant, dtype=bool)
        self.snp_ids = list(snp_ids) if snp_ids is not None else None
        self.rounds = list(rounds) if rounds is not None else []

    @property
    def n_markers(self) -> int:
        """Number of markers"""
        return len(self.zscores)

    @property
    def outlier_stat(self) -> np.ndarray:
        """Squared adjusted z-score (1-df chi-squared under the null)"""
        return self.z_adjusted ** 2

    @property
    def outlier_pvalue(self) -> np.ndarray:
        return chisq_pvalue(self.outlier_stat)

    def outliers(self, pvalue_threshold: Optional[float] = None) -> np.ndarray:
        """Boolean mask of markers whose adjusted z-score is significant

        Duplicates flagged as discordant with their representative are
        always included.

        Args:
            pvalue_threshold: Defaults to the threshold the run was made with
        """
        if pvalue_threshold is None:
            pvalue_threshold = self.pvalue_threshold
        return (self.outlier_pvalue < pvalue_threshold) | self.is_discordant

    @property
    def n_outliers(self) -> int:
        return int(np.count_nonzero(self.outliers()))

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to pandas DataFrame"""
        df = pd.DataFrame({
            'original_z': self.zscores,
            'imputed_z': self.imputed_z,
            'rsq': self.rsq,
            'corrected_z': self.z_adjusted,
            'iter_to_correct': self.iter_id,
            'grouping': self.grouping.astype(np.int8),
            'outlier_stat': self.outlier_stat,
            'outlier_pvalue': self.outlier_pvalue,
            'outlier': self.outliers(),
            'is_duplicate': self.is_duplicate,
            'is_discordant': self.is_discordant,
        })
        if self.snp_ids is not None:
            df.insert(0, 'SNP', self.snp_ids)
        return df

    def to_numpy(self) -> np.ndarray:
        """Convert to numpy array [imputed_z, rsq, z_adjusted, iter_id, grouping]"""
        return np.column_stack([
            self.imputed_z,
            self.rsq,
            self.z_adjusted,
            self.iter_id.astype(np.float64),
            self.grouping.astype(np.float64),
        ])

    def rounds_dataframe(self) -> pd.DataFrame:
        """Per-round diagnostics as a DataFrame"""
        if not self.rounds:
            return pd.DataFrame(columns=list(RoundSummary.__dataclass_fields__))
        return pd.DataFrame([vars(r) for r in self.rounds])
