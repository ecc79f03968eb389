import h5py
import numpy as np
import pandas as pd
import pytest

from pydentist.data.io_utils import (
    load_dentist_results,
    read_ld_matrix,
    read_summary_stats,
    save_dentist_results,
    validate_input_files,
    write_ld_matrix,
)
from pydentist.utils.data_types import DentistResults, LDMatrix


LD = np.array([
    [1.0, 0.3, 0.1],
    [0.3, 1.0, 0.2],
    [0.1, 0.2, 1.0],
])


def test_read_summary_stats_with_zscore_column(tmp_path) -> None:
    path = tmp_path / "sumstats.tsv"
    path.write_text("SNP\tZ\nrs1\t1.5\nrs2\t-0.3\nrs3\t4.0\n")

    df = read_summary_stats(path)

    assert list(df.columns) == ["SNP", "Z"]
    assert df["SNP"].tolist() == ["rs1", "rs2", "rs3"]
    np.testing.assert_allclose(df["Z"].to_numpy(), [1.5, -0.3, 4.0])


def test_read_summary_stats_derives_z_from_beta_se(tmp_path) -> None:
    path = tmp_path / "sumstats.csv"
    path.write_text("beta,se\n0.2,0.1\n-0.3,0.2\n")

    df = read_summary_stats(path)

    assert df["SNP"].tolist() == ["marker1", "marker2"]
    np.testing.assert_allclose(df["Z"].to_numpy(), [2.0, -1.5])


def test_read_summary_stats_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_summary_stats(tmp_path / "missing.tsv")

    no_z = tmp_path / "no_z.csv"
    no_z.write_text("SNP,P\nrs1,0.1\nrs2,0.5\n")
    with pytest.raises(ValueError):
        read_summary_stats(no_z)

    bad_z = tmp_path / "bad_z.csv"
    bad_z.write_text("SNP,Z\nrs1,0.1\nrs2,NA\n")
    with pytest.raises(ValueError):
        read_summary_stats(bad_z)


@pytest.mark.parametrize("name", ["ld.npy", "ld.h5"])
def test_ld_matrix_round_trip(tmp_path, name) -> None:
    path = write_ld_matrix(LDMatrix(LD), tmp_path / name)

    ld = read_ld_matrix(path)

    np.testing.assert_allclose(ld.to_numpy(), LD)


def test_read_ld_matrix_from_npz_and_text(tmp_path) -> None:
    npz_path = tmp_path / "ld.npz"
    np.savez(npz_path, ld=LD, other=np.zeros(2))
    np.testing.assert_allclose(read_ld_matrix(npz_path).to_numpy(), LD)

    csv_path = tmp_path / "ld.csv"
    labels = ["rs1", "rs2", "rs3"]
    pd.DataFrame(LD, index=labels, columns=labels).to_csv(csv_path)
    np.testing.assert_allclose(read_ld_matrix(csv_path).to_numpy(), LD)


def test_read_ld_matrix_hdf5_requires_ld_dataset(tmp_path) -> None:
    path = tmp_path / "bad.h5"
    with h5py.File(path, "w") as f:
        f.create_dataset("corr", data=LD)

    with pytest.raises(ValueError):
        read_ld_matrix(path)


def test_ld_matrix_accepts_file_path(tmp_path) -> None:
    path = write_ld_matrix(LD, tmp_path / "panel.h5")

    assert LDMatrix(str(path)).n_markers == 3


def test_save_and_load_results(tmp_path) -> None:
    results = DentistResults(
        zscores=np.array([1.0, 8.0, -0.5]),
        imputed_z=np.array([0.9, 0.5, -0.4]),
        rsq=np.array([0.2, 0.3, 0.1]),
        z_adjusted=np.array([0.1, 9.0, -0.1]),
        iter_id=np.array([2, 1, 2]),
        grouping=np.array([False, True, False]),
        n_iter=2,
        snp_ids=["rs1", "rs2", "rs3"],
    )

    path = save_dentist_results(results, tmp_path / "out" / "results.tsv")
    df = load_dentist_results(path)

    assert path.exists()
    assert df["SNP"].tolist() == ["rs1", "rs2", "rs3"]
    assert df["iter_to_correct"].tolist() == [2, 1, 2]
    assert df["outlier"].tolist() == [False, True, False]
    np.testing.assert_allclose(df["corrected_z"].to_numpy(), results.z_adjusted)


def test_validate_input_files(tmp_path) -> None:
    sumstats = tmp_path / "sumstats.tsv"
    sumstats.write_text("SNP\tZ\nrs1\t1.0\nrs2\t2.0\n")
    ld_path = write_ld_matrix(LD, tmp_path / "ld.npy")

    report = validate_input_files(str(sumstats), str(ld_path))
    assert not report["valid"]
    assert "3 markers" in report["errors"][0]

    report = validate_input_files(str(tmp_path / "missing.tsv"), None)
    assert not report["valid"]
    assert "not found" in report["errors"][0]
