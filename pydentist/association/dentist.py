"""
DENTIST (Detecting Errors iN analyses of summary staTISTics) iterative QC.

Each round splits the active markers into random target/reference halves,
imputes the target half from the reference half, derives 99.5% residual
thresholds separately for GWAS-significant and non-significant markers,
re-imputes the reference half from the cleaned target half, and keeps the
markers whose adjusted z-scores fall within their group's threshold.

Based on the method of Chen et al. (2021), Nature Communications 12:7117.
"""

import time
import warnings
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from ..utils.data_types import LDMatrix, DentistResults, RoundSummary, as_ld_array
from ..utils.errors import DegenerateVarianceError, DentistCancelledError, DentistTimeoutError
from ..utils.random_order import generate_random_order, round_seed, split_by_random_order
from ..utils.stats import (
    chisq_pvalue,
    genomic_inflation_from_chisq,
    get_grouped_quantile,
    get_quantile,
    significance_grouping,
    within_threshold,
)
from ..matrix.ld import find_duplicate_variants
from .imputation import DENTIST_Impute, resolve_cpu

QC_QUANTILE = 0.995


def _validate_inputs(n_markers: int,
                     zscores: np.ndarray,
                     n_sample: int,
                     pvalue_threshold: float,
                     prop_svd: float,
                     n_iter: int,
                     grouping_pvalue_threshold: float) -> None:
    if zscores.shape != (n_markers,):
        raise ValueError(
            f"Z-score vector length ({zscores.shape[0]}) must match LD matrix dimension ({n_markers})"
        )
    if not np.all(np.isfinite(zscores)):
        raise ValueError("Z-scores must be finite")
    if n_sample <= 0:
        raise ValueError("Sample size must be positive")
    if not (0.0 < pvalue_threshold <= 1.0):
        raise ValueError("P-value threshold must be in (0, 1]")
    if not (0.0 < prop_svd <= 1.0):
        raise ValueError("prop_svd must be in (0, 1]")
    if n_iter < 0:
        raise ValueError("Number of iterations must be non-negative")
    if not (0.0 < grouping_pvalue_threshold <= 1.0):
        raise ValueError("Grouping p-value threshold must be in (0, 1]")


def _passes_group_thresholds(abs_z: np.ndarray,
                             grouping: np.ndarray,
                             threshold_significant: float,
                             threshold_nonsignificant: float) -> np.ndarray:
    """Mask of markers within their own significance group's threshold"""
    return np.where(
        grouping,
        within_threshold(abs_z, threshold_significant),
        within_threshold(abs_z, threshold_nonsignificant),
    )


def _genomic_control_rescue(z_active: np.ndarray,
                            retained: np.ndarray,
                            pvalue_threshold: float) -> Tuple[Optional[float], np.ndarray]:
    """Rescue excluded markers whose GC-corrected statistic is negligible

    The inflation factor is the median squared adjusted z-score of the
    retained markers over the 1-df chi-squared median. An excluded marker is
    rescued when its squared adjusted z-score divided by the inflation factor
    falls below ``pvalue_threshold``.

    Returns:
        Tuple of (inflation_factor or None, rescued mask)
    """
    rescued = np.zeros(z_active.shape[0], dtype=bool)
    chisq = z_active ** 2
    if not retained.any():
        warnings.warn("No markers retained in this round; skipping genomic control rescue")
        return None, rescued
    inflation = genomic_inflation_from_chisq(chisq[retained])
    if inflation <= 0.0:
        warnings.warn(f"Non-positive inflation factor ({inflation}); skipping genomic control rescue")
        return inflation, rescued
    rescued = ~retained & (chisq / inflation < pvalue_threshold)
    return inflation, rescued


def DENTIST(ld: Union[LDMatrix, np.ndarray],
            zscores: np.ndarray,
            n_sample: int,
            pvalue_threshold: float = 5.0369e-8,
            prop_svd: float = 0.4,
            gc_control: bool = False,
            n_iter: int = 10,
            grouping_pvalue_threshold: float = 0.05,
            cpu: int = 1,
            seed: int = 999,
            final_pvalue_filter: bool = True,
            snp_ids: Optional[Sequence[str]] = None,
            should_stop: Optional[Callable[[], bool]] = None,
            timeout: Optional[float] = None,
            verbose: bool = True) -> DentistResults:
    """Iterative summary statistic QC against LD-based imputation

    Args:
        ld: LD matrix from a reference panel (n_markers × n_markers)
        zscores: GWAS z-scores (n_markers)
        n_sample: GWAS sample size
        pvalue_threshold: Genome-wide threshold used for the final-round cut
            and the genomic control rescue
        prop_svd: Proportion of eigen-components kept in each imputation
        gc_control: Rescue excluded markers after genomic control correction
        n_iter: Number of QC rounds
        grouping_pvalue_threshold: P-value splitting markers into significant
            and non-significant groups for thresholding
        cpu: Worker threads for the imputation kernel (0 = all cores)
        seed: Seed of the first round's partition; later rounds add a fixed step
        final_pvalue_filter: On the last round, also drop retained markers whose
            adjusted z-score is significant at ``pvalue_threshold``. This cut
            is applied on top of the per-round group quantile thresholds, which
            exclude nothing when both significance groups have fewer than 50
            members; pass False for the group thresholds alone
        snp_ids: Optional marker labels carried into the results
        should_stop: Callback polled between rounds and imputation passes;
            returning True cancels the run
        timeout: Wall-clock limit in seconds, checked at the same points
        verbose: Print progress information

    Returns:
        DentistResults with imputed z, rsq, adjusted z, rounds survived and
        significance group for every marker

    Raises:
        RankTooLowError: If an imputation basis has truncated rank <= 1
        DegenerateVarianceError: If an imputed marker has rsq >= 1
        DentistCancelledError: If ``should_stop`` returned True
        DentistTimeoutError: If ``timeout`` elapsed
    """
    ld_arr = as_ld_array(ld)
    n_markers = ld_arr.shape[0]
    zscores = np.ascontiguousarray(zscores, dtype=np.float64)
    _validate_inputs(n_markers, zscores, n_sample, pvalue_threshold, prop_svd,
                     n_iter, grouping_pvalue_threshold)
    cpu = resolve_cpu(cpu)

    start_time = time.monotonic()

    def checkpoint(completed_rounds: int, stage: str) -> None:
        if should_stop is not None and should_stop():
            raise DentistCancelledError(completed_rounds, stage)
        if timeout is not None and time.monotonic() - start_time > timeout:
            raise DentistTimeoutError(timeout, completed_rounds)

    if verbose:
        print("=" * 60)
        print("DENTIST SUMMARY STATISTIC QC")
        print("=" * 60)
        print(f"Markers: {n_markers}, sample size: {n_sample}, rounds: {n_iter}")
        print(f"prop_svd={prop_svd}, P threshold={pvalue_threshold:g}, "
              f"GC control={'on' if gc_control else 'off'}, cpu={cpu}")

    grouping = significance_grouping(zscores, grouping_pvalue_threshold)

    imputed_z = np.zeros(n_markers, dtype=np.float64)
    rsq = np.zeros(n_markers, dtype=np.float64)
    z_adjusted = np.zeros(n_markers, dtype=np.float64)
    iter_id = np.zeros(n_markers, dtype=np.int64)

    active = np.arange(n_markers, dtype=np.int64)
    rounds = []

    for t in range(n_iter):
        checkpoint(t, "round start")

        seed_t = round_seed(seed, t)
        order = generate_random_order(active.size, seed_t)
        reference, target = split_by_random_order(active, order)

        batch = DENTIST_Impute(ld_arr, reference, target, zscores, n_sample, prop_svd, cpu)
        batch.scatter(imputed_z, rsq, z_adjusted)

        diff = np.abs(batch.z_adjusted)
        group_target = grouping[target]
        threshold = get_quantile(diff, QC_QUANTILE)
        threshold1 = get_grouped_quantile(diff, group_target, QC_QUANTILE, group=True)
        threshold0 = get_grouped_quantile(diff, group_target, QC_QUANTILE, group=False)

        cleaned = target[_passes_group_thresholds(diff, group_target, threshold1, threshold0)]

        checkpoint(t, "between imputation passes")

        # Reference half re-imputed from the cleaned target half, so every
        # active marker carries a residual from this round
        refine = DENTIST_Impute(ld_arr, cleaned, reference, zscores, n_sample, prop_svd, cpu)
        refine.scatter(imputed_z, rsq, z_adjusted)

        z_active = z_adjusted[active]
        abs_active = np.abs(z_active)
        retained = _passes_group_thresholds(abs_active, grouping[active], threshold1, threshold0)
        if final_pvalue_filter and t == n_iter - 1:
            retained &= chisq_pvalue(z_active ** 2) >= pvalue_threshold

        inflation = None
        n_rescued = 0
        if gc_control:
            inflation, rescued = _genomic_control_rescue(z_active, retained, pvalue_threshold)
            n_rescued = int(np.count_nonzero(rescued))
            retained |= rescued

        iter_id[active[retained]] += 1

        summary = RoundSummary(
            round_index=t,
            seed=seed_t,
            n_active=int(active.size),
            n_reference=int(reference.size),
            n_target=int(target.size),
            n_target_cleaned=int(cleaned.size),
            threshold=threshold,
            threshold_significant=threshold1,
            threshold_nonsignificant=threshold0,
            n_retained=int(np.count_nonzero(retained)),
            n_rescued=n_rescued,
            inflation_factor=inflation,
            k_target=batch.k,
            k_refine=refine.k,
        )
        rounds.append(summary)

        if verbose:
            print(f"Round {t + 1}/{n_iter}: active={summary.n_active} "
                  f"(target={summary.n_target}, reference={summary.n_reference}), "
                  f"K={batch.k}/{refine.k}")
            print(f"   Thresholds |z|: all={threshold:.3f}, significant={threshold1:.3f}, "
                  f"non-significant={threshold0:.3f}")
            message = f"   Retained {summary.n_retained} markers"
            if gc_control:
                message += f" ({n_rescued} rescued by GC"
                message += f", lambda={inflation:.3f})" if inflation is not None else ")"
            print(message)

        active = active[retained]

    results = DentistResults(
        zscores=zscores,
        imputed_z=imputed_z,
        rsq=rsq,
        z_adjusted=z_adjusted,
        iter_id=iter_id,
        grouping=grouping,
        n_iter=n_iter,
        pvalue_threshold=pvalue_threshold,
        snp_ids=snp_ids,
        rounds=rounds,
    )

    if verbose:
        elapsed = time.monotonic() - start_time
        print(f"DENTIST completed in {elapsed:.2f} seconds; "
              f"{results.n_outliers} markers flagged at P < {pvalue_threshold:g}")

    return results


def DENTIST_Dedup(ld: Union[LDMatrix, np.ndarray],
                  zscores: np.ndarray,
                  n_sample: int,
                  dup_threshold: float = 0.99,
                  dup_z_tolerance: Optional[float] = 2.0,
                  snp_ids: Optional[Sequence[str]] = None,
                  verbose: bool = True,
                  **dentist_kwargs) -> DentistResults:
    """Run DENTIST on one representative per duplicate-LD cluster

    Markers with ``|r| >= dup_threshold`` are collapsed onto their
    lowest-index representative before QC. Each other cluster member is then
    tested against the representative's imputation through its own z-score:

        z_imp = r * z_imp[rep],  rsq = r^2 * rsq[rep]
        z_adj = (z - z_imp) / sqrt(LD[i, i] - rsq)

    with r the member's LD with its representative, so a flipped allele
    (r < 0) is imputed with the opposite sign. Members whose z-score differs
    from ``sign(r) * z[rep]`` by more than ``dup_z_tolerance`` are flagged in
    ``is_discordant``, reported as outliers and given a survival count of 0.

    Args:
        ld: LD matrix (n_markers × n_markers)
        zscores: GWAS z-scores (n_markers)
        n_sample: GWAS sample size
        dup_threshold: Absolute correlation defining duplicates
        dup_z_tolerance: Largest allowed |z| gap between a duplicate and its
            representative; None disables the check
        snp_ids: Optional marker labels
        verbose: Print progress information
        **dentist_kwargs: Passed to DENTIST

    Returns:
        DentistResults covering all input markers
    """
    ld_arr = as_ld_array(ld)
    zscores = np.ascontiguousarray(zscores, dtype=np.float64)
    n_markers = ld_arr.shape[0]
    if zscores.shape != (n_markers,):
        raise ValueError("Z-score vector length must match LD matrix dimension")
    if dup_z_tolerance is not None and dup_z_tolerance < 0:
        raise ValueError("Duplicate z tolerance must be non-negative")

    kept, representative_of = find_duplicate_variants(ld_arr, dup_threshold)
    is_duplicate = representative_of != np.arange(n_markers)
    if verbose:
        print(f"Duplicate detection (|r| >= {dup_threshold}): "
              f"{int(is_duplicate.sum())} duplicates collapsed, {kept.size} markers kept")

    sub_ld = ld_arr[np.ix_(kept, kept)]
    sub_results = DENTIST(sub_ld, zscores[kept], n_sample, verbose=verbose, **dentist_kwargs)

    position = np.full(n_markers, -1, dtype=np.int64)
    position[kept] = np.arange(kept.size)
    source = position[representative_of]

    imputed_z = sub_results.imputed_z[source]
    rsq = sub_results.rsq[source]
    z_adjusted = sub_results.z_adjusted[source]
    iter_id = sub_results.iter_id[source]
    is_discordant = np.zeros(n_markers, dtype=bool)

    dup = np.flatnonzero(is_duplicate)
    if dup.size:
        r = ld_arr[dup, representative_of[dup]]
        if dup_z_tolerance is not None:
            gap = np.abs(zscores[dup] - np.sign(r) * zscores[representative_of[dup]])
            is_discordant[dup] = gap > dup_z_tolerance
            iter_id[dup[is_discordant[dup]]] = 0

        # Representatives are imputed in every round they are active
        if sub_results.n_iter > 0:
            imputed_z[dup] = r * imputed_z[dup]
            rsq[dup] = r * r * rsq[dup]
            residual_var = ld_arr[dup, dup] - rsq[dup]
            bad = np.flatnonzero(residual_var <= 0.0)
            if bad.size:
                i = int(dup[bad[0]])
                raise DegenerateVarianceError(i, float(rsq[i]), float(ld_arr[i, i]))
            z_adjusted[dup] = (zscores[dup] - imputed_z[dup]) / np.sqrt(residual_var)

        if verbose and is_discordant.any():
            print(f"   {int(is_discordant.sum())} duplicates disagree with their representative "
                  f"by more than |z| = {dup_z_tolerance}")

    grouping_threshold = dentist_kwargs.get('grouping_pvalue_threshold', 0.05)
    return DentistResults(
        zscores=zscores,
        imputed_z=imputed_z,
        rsq=rsq,
        z_adjusted=z_adjusted,
        iter_id=iter_id,
        grouping=significance_grouping(zscores, grouping_threshold),
        n_iter=sub_results.n_iter,
        pvalue_threshold=sub_results.pvalue_threshold,
        is_duplicate=is_duplicate,
        is_discordant=is_discordant,
        snp_ids=snp_ids,
        rounds=sub_results.rounds,
    )
