import numpy as np
import pytest
from scipy import stats

from pydentist.utils import stats as stats_utils


def test_get_quantile_uses_ceiling_position() -> None:
    rng = np.random.default_rng(3)
    values = rng.permutation(np.arange(1000, dtype=float) * 0.5)

    result = stats_utils.get_quantile(values, 0.995)

    # 0-indexed position ceil(1000 * 0.995) - 1 = 994
    assert result == pytest.approx(994 * 0.5)


def test_get_quantile_bounds() -> None:
    values = np.array([3.0, 1.0, 2.0])

    assert stats_utils.get_quantile(values, 1.0) == 3.0
    assert stats_utils.get_quantile(values, 0.2) == 1.0
    with pytest.raises(ValueError):
        stats_utils.get_quantile(values, 0.0)
    with pytest.raises(ValueError):
        stats_utils.get_quantile(values, 1.5)
    with pytest.raises(ValueError):
        stats_utils.get_quantile(np.array([]), 0.5)


def test_get_grouped_quantile_small_group_returns_zero() -> None:
    values = np.full(100, 1e6)
    grouping = np.zeros(100, dtype=bool)
    grouping[:49] = True

    assert stats_utils.get_grouped_quantile(values, grouping, 0.995, group=True) == 0.0
    assert stats_utils.get_grouped_quantile(values, grouping, 0.995, group=False) == 1e6


def test_get_grouped_quantile_selects_group_members() -> None:
    values = np.arange(100, dtype=float)
    grouping = np.arange(100) < 50

    assert stats_utils.get_grouped_quantile(values, grouping, 0.995, group=True) == 49.0
    assert stats_utils.get_grouped_quantile(values, grouping, 0.995, group=False) == 99.0


def test_within_threshold_treats_zero_as_no_exclusion() -> None:
    values = np.array([0.0, 1.0, 50.0])

    np.testing.assert_array_equal(stats_utils.within_threshold(values, 0.0), [True, True, True])
    np.testing.assert_array_equal(stats_utils.within_threshold(values, 1.0), [True, True, False])


def test_minus_log10_chisq_pvalue() -> None:
    assert stats_utils.minus_log10_chisq_pvalue(0.0) == pytest.approx(0.0)
    assert stats_utils.minus_log10_chisq_pvalue(1.959964 ** 2) == pytest.approx(-np.log10(0.05), rel=1e-4)

    # Survival function underflows here; the log form must stay finite
    large = stats_utils.minus_log10_chisq_pvalue(5000.0)
    assert np.isfinite(large)
    assert large > 1000


def test_significance_grouping() -> None:
    zscores = np.array([0.0, 1.0, -2.0, 5.0])

    grouping = stats_utils.significance_grouping(zscores, 0.05)

    np.testing.assert_array_equal(grouping, [False, False, True, True])
    with pytest.raises(ValueError):
        stats_utils.significance_grouping(zscores, 0.0)


def test_genomic_inflation_from_chisq() -> None:
    assert stats_utils.genomic_inflation_from_chisq(np.array([])) == 1.0
    assert stats_utils.genomic_inflation_from_chisq(np.full(3, 0.456)) == pytest.approx(1.0)

    chisq = np.array([0.1, 2.0, 9.0])
    expected = np.median(chisq) / stats.chi2.ppf(0.5, df=1)
    assert stats_utils.genomic_inflation_from_chisq(chisq, stats.chi2.ppf(0.5, df=1)) == pytest.approx(expected)


def test_zscore_cutoff_matches_genome_wide_threshold() -> None:
    assert stats_utils.zscore_cutoff(5e-8) == pytest.approx(5.4513, abs=1e-3)
    assert stats_utils.chisq_pvalue(stats_utils.zscore_cutoff(1e-4) ** 2) == pytest.approx(1e-4)
