"""
Exceptions raised by the DENTIST QC engine
"""

from typing import Optional


class DentistError(RuntimeError):
    """Base class for conditions that abort a DENTIST run"""


class RankTooLowError(DentistError):
    """Truncated eigenbasis of the reference LD block has rank <= 1"""

    def __init__(self, rank: int, n_reference: int):
        self.rank = rank
        self.n_reference = n_reference
        super().__init__(
            f"Rank of eigen matrix <= 1 (K={rank}, reference markers={n_reference})"
        )


class DegenerateVarianceError(DentistError):
    """Imputation leaves no residual variance for a target marker

    Raised when rsq >= 1 or when LD[j, j] - rsq <= 0.
    """

    def __init__(self, marker_index: int, rsq: float, ld_diagonal: float = 1.0):
        self.marker_index = marker_index
        self.rsq = rsq
        self.ld_diagonal = ld_diagonal
        super().__init__(
            f"Dividing zero: Rsq = {rsq:.6f}, LD diagonal = {ld_diagonal:.6f} "
            f"(residual variance {ld_diagonal - rsq:.6f}) for marker {marker_index}"
        )


class DentistCancelledError(DentistError):
    """Run stopped by the caller's cancellation callback"""

    def __init__(self, completed_rounds: int, stage: Optional[str] = None):
        self.completed_rounds = completed_rounds
        self.stage = stage
        where = f" ({stage})" if stage else ""
        super().__init__(f"DENTIST cancelled after {completed_rounds} completed rounds{where}")


class DentistTimeoutError(DentistError):
    """Run exceeded its wall-clock budget"""

    def __init__(self, timeout: float, completed_rounds: int):
        self.timeout = timeout
        self.completed_rounds = completed_rounds
        super().__init__(
            f"DENTIST exceeded timeout of {timeout:.1f}s after {completed_rounds} completed rounds"
        )
