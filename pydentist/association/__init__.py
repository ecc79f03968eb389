"""
QC methods for GWAS summary statistics
"""

from .imputation import DENTIST_Impute
from .dentist import DENTIST, DENTIST_Dedup

__all__ = ['DENTIST_Impute', 'DENTIST', 'DENTIST_Dedup']
