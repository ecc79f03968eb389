"""
pyDENTIST: Python implementation of DENTIST for GWAS summary statistic QC

Detects erroneous entries in GWAS summary statistics by comparing each
marker's z-score with the value imputed from neighbouring markers through
the LD structure of a reference panel.
"""

import os
import warnings

# Suppress OpenMP deprecation warnings that occur with Numba parallel processing
os.environ.setdefault('KMP_WARNINGS', 'off')
warnings.filterwarnings('ignore', message='.*omp_set_nested.*deprecated.*')

__version__ = "0.1.0"
__author__ = "pyDENTIST Development Team"

from .utils.data_types import LDMatrix, DentistResults, RoundSummary
from .utils.errors import (
    DentistError,
    RankTooLowError,
    DegenerateVarianceError,
    DentistCancelledError,
    DentistTimeoutError,
)
from .association.imputation import DENTIST_Impute, ImputationBatch
from .association.dentist import DENTIST, DENTIST_Dedup
from .matrix.ld import compute_ld_matrix, find_duplicate_variants
from .pipelines.qc import DentistPipeline, DentistParams
from .visualization.plots import DENTIST_Report

__all__ = [
    'DENTIST',
    'DENTIST_Dedup',
    'DENTIST_Impute',
    'DENTIST_Report',
    'DentistPipeline',
    'DentistParams',
    'DentistResults',
    'ImputationBatch',
    'LDMatrix',
    'RoundSummary',
    'compute_ld_matrix',
    'find_duplicate_variants',
    'DentistError',
    'RankTooLowError',
    'DegenerateVarianceError',
    'DentistCancelledError',
    'DentistTimeoutError',
]
