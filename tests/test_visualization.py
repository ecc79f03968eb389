import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from pydentist.utils.data_types import DentistResults
from pydentist.visualization import plots


def _make_results(n: int = 40) -> DentistResults:
    rng = np.random.default_rng(1)
    zscores = rng.normal(size=n)
    zscores[3] = 9.0
    imputed = zscores * 0.5
    imputed[3] = 0.2
    z_adjusted = rng.normal(size=n)
    z_adjusted[3] = 8.5
    iter_id = np.full(n, 2)
    iter_id[3] = 1
    return DentistResults(
        zscores=zscores,
        imputed_z=imputed,
        rsq=rng.uniform(0.05, 0.9, size=n),
        z_adjusted=z_adjusted,
        iter_id=iter_id,
        grouping=np.abs(zscores) > 1.96,
        n_iter=2,
    )


def test_individual_plots_return_figures() -> None:
    results = _make_results()

    for fig in (
        plots.create_zscore_scatter(results),
        plots.create_qq_plot(results),
        plots.create_rsq_histogram(results),
    ):
        assert isinstance(fig, matplotlib.figure.Figure)
        plt.close(fig)


def test_plots_handle_unimputed_results() -> None:
    n = 5
    results = DentistResults(
        zscores=np.ones(n),
        imputed_z=np.zeros(n),
        rsq=np.zeros(n),
        z_adjusted=np.zeros(n),
        iter_id=np.zeros(n),
        grouping=np.zeros(n, dtype=bool),
    )

    fig = plots.create_rsq_histogram(results)
    assert isinstance(fig, matplotlib.figure.Figure)
    plt.close(fig)


def test_calculate_dentist_summary() -> None:
    results = _make_results()

    summary = plots.calculate_dentist_summary(results, results.pvalue_threshold)

    assert summary["n_markers"] == 40
    assert summary["n_outliers"] == 1
    assert summary["n_survived_all_rounds"] == 39
    assert summary["max_abs_adjusted_z"] == pytest.approx(8.5)
    assert summary["zscore_cutoff"] == pytest.approx(5.45, abs=0.01)


def test_dentist_report_saves_files(tmp_path) -> None:
    results = _make_results()
    prefix = tmp_path / "locus"

    report = plots.DENTIST_Report(results, output_prefix=str(prefix), dpi=50, verbose=False)

    assert sorted(report["plots"]) == ["qq", "rsq", "zscores"]
    assert len(report["files_created"]) == 3
    for filename in report["files_created"]:
        assert (tmp_path / filename.split("/")[-1]).exists()
    assert report["summary"]["n_outliers"] == 1


def test_dentist_report_rejects_unknown_plot(tmp_path) -> None:
    with pytest.raises(ValueError):
        plots.DENTIST_Report(_make_results(), plot_types=["manhattan"],
                             output_prefix=str(tmp_path / "x"), verbose=False)
    with pytest.raises(ValueError):
        plots.DENTIST_Report(object(), verbose=False)
