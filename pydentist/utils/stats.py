"""
Statistical utilities for DENTIST summary statistic QC
"""

import math
import numpy as np
from typing import Optional, Sequence, Union
from scipy import stats

# Groups smaller than this have no defined quantile threshold
MIN_GROUP_SIZE = 50

# Median of a chi-squared distribution with 1 degree of freedom (rounded)
CHISQ1_MEDIAN = 0.456


def get_quantile(values: Union[Sequence[float], np.ndarray], quantile: float) -> float:
    """Return the empirical quantile of a set of values

    Sorts ascending and takes the element at 0-indexed position
    ``ceil(n * quantile) - 1``.

    Args:
        values: Values to summarise
        quantile: Quantile in (0, 1]

    Returns:
        The selected value
    """
    if not (0.0 < quantile <= 1.0):
        raise ValueError(f"Quantile must be in (0, 1], got {quantile}")
    data = np.sort(np.asarray(values, dtype=np.float64))
    if data.size == 0:
        raise ValueError("Cannot compute a quantile of an empty sequence")
    pos = int(math.ceil(data.size * quantile)) - 1
    return float(data[max(pos, 0)])


def get_grouped_quantile(values: Union[Sequence[float], np.ndarray],
                         grouping: Union[Sequence[bool], np.ndarray],
                         quantile: float,
                         group: bool = True) -> float:
    """Quantile over the members of one group

    Returns 0.0 when fewer than ``MIN_GROUP_SIZE`` values belong to the group.
    The 0.0 sentinel means the threshold is undefined, see ``within_threshold``.

    Args:
        values: Values to summarise
        grouping: Boolean group flags parallel to ``values``
        quantile: Quantile in (0, 1]
        group: Which group to summarise

    Returns:
        Quantile of the group's values, or 0.0
    """
    values = np.asarray(values, dtype=np.float64)
    grouping = np.asarray(grouping, dtype=bool)
    if values.shape != grouping.shape:
        raise ValueError("Values and grouping must have the same length")
    members = values[grouping == bool(group)]
    if members.size < MIN_GROUP_SIZE:
        return 0.0
    return get_quantile(members, quantile)


def within_threshold(abs_values: np.ndarray, threshold: float) -> np.ndarray:
    """Mask of values at or below a threshold; a 0.0 threshold excludes nothing"""
    abs_values = np.asarray(abs_values, dtype=np.float64)
    if threshold == 0.0:
        return np.ones(abs_values.shape, dtype=bool)
    return abs_values <= threshold


def minus_log10_chisq_pvalue(stat: Union[float, np.ndarray], df: int = 1) -> Union[float, np.ndarray]:
    """-log10 of the upper-tail p-value of a chi-squared statistic

    Computed on the log scale so large statistics do not underflow to p = 0.
    For 1 df, P(chi2 > s) = 2 * P(N > sqrt(s)) and the normal log tail is exact.
    """
    if df == 1:
        stat = np.maximum(np.asarray(stat, dtype=np.float64), 0.0)
        log_p = np.log(2.0) + stats.norm.logsf(np.sqrt(stat))
    else:
        log_p = stats.chi2.logsf(stat, df)
    result = -log_p / np.log(10.0)
    if np.ndim(result) == 0:
        return float(result)
    return result


def chisq_pvalue(stat: Union[float, np.ndarray], df: int = 1) -> Union[float, np.ndarray]:
    """Upper-tail p-value of a chi-squared statistic"""
    result = stats.chi2.sf(stat, df)
    if np.ndim(result) == 0:
        return float(result)
    return result


def significance_grouping(zscores: np.ndarray, grouping_pvalue_threshold: float) -> np.ndarray:
    """Classify markers as GWAS-significant from their z-scores

    Args:
        zscores: Observed z-scores
        grouping_pvalue_threshold: P-value below which a marker is significant

    Returns:
        Boolean array, True for significant markers
    """
    if not (0.0 < grouping_pvalue_threshold <= 1.0):
        raise ValueError(
            f"Grouping p-value threshold must be in (0, 1], got {grouping_pvalue_threshold}"
        )
    zscores = np.asarray(zscores, dtype=np.float64)
    minus_log_p = minus_log10_chisq_pvalue(zscores * zscores)
    return np.asarray(minus_log_p > -np.log10(grouping_pvalue_threshold), dtype=bool)


def genomic_inflation_from_chisq(chisq: np.ndarray, expected_median: Optional[float] = None) -> float:
    """Genomic control inflation factor from 1-df chi-squared statistics

    Args:
        chisq: Chi-squared statistics (e.g. squared z-scores)
        expected_median: Null median, defaults to ``CHISQ1_MEDIAN``

    Returns:
        median(chisq) / expected_median, or 1.0 when no finite statistics exist
    """
    chisq = np.asarray(chisq, dtype=np.float64)
    chisq = chisq[np.isfinite(chisq)]
    if chisq.size == 0:
        return 1.0
    if expected_median is None:
        expected_median = CHISQ1_MEDIAN
    return float(np.median(chisq) / expected_median)


def zscore_cutoff(pvalue_threshold: float) -> float:
    """|z| above which a 1-df chi-squared test is significant at the threshold"""
    if not (0.0 < pvalue_threshold <= 1.0):
        raise ValueError(f"P-value threshold must be in (0, 1], got {pvalue_threshold}")
    return float(np.sqrt(stats.chi2.isf(pvalue_threshold, 1)))
