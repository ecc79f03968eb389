"""Integration tests for DentistPipeline and the command line entry point."""

import matplotlib

matplotlib.use("Agg")

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from pydentist.cli.main import main
from pydentist.data.io_utils import write_ld_matrix
from pydentist.pipelines.qc import DentistParams, DentistPipeline


@pytest.fixture
def synthetic_locus(tmp_path: Path):
    """Summary statistics and LD for a 120-marker locus with two injected errors."""
    n_markers = 120
    idx = np.arange(n_markers)
    ld = 0.5 ** np.abs(idx[:, None] - idx[None, :])

    rng = np.random.default_rng(7)
    zscores = np.linalg.cholesky(ld) @ rng.normal(size=n_markers)
    zscores[[30, 90]] += 9.0

    snps = [f"rs{1000 + i}" for i in range(n_markers)]
    sumstats_file = tmp_path / "sumstats.tsv"
    pd.DataFrame({'SNP': snps, 'Z': zscores}).to_csv(sumstats_file, sep='\t', index=False)

    ld_file = write_ld_matrix(ld, tmp_path / "ld.h5")

    return {
        'sumstats_file': sumstats_file,
        'ld_file': ld_file,
        'snps': snps,
        'n_markers': n_markers,
        'injected': [30, 90],
    }


def test_pipeline_end_to_end(tmp_path: Path, synthetic_locus) -> None:
    output_dir = tmp_path / "qc"
    pipeline = DentistPipeline(output_dir=str(output_dir), verbose=False)

    pipeline.load_data(str(synthetic_locus['sumstats_file']), str(synthetic_locus['ld_file']))
    results = pipeline.run(DentistParams(n_sample=20000, n_iter=2))
    files = pipeline.save_outputs(prefix="locus")

    assert results.n_markers == synthetic_locus['n_markers']
    assert results.snp_ids == synthetic_locus['snps']
    assert results.outliers()[synthetic_locus['injected']].all()
    assert len(results.rounds) == 2

    names = {f.name for f in files}
    assert {"locus.dentist.tsv", "locus.outliers.tsv", "locus.rounds.tsv"} <= names
    assert "locus_qq.png" in names

    table = pd.read_csv(output_dir / "locus.dentist.tsv", sep='\t')
    assert table['SNP'].tolist() == synthetic_locus['snps']
    outliers = pd.read_csv(output_dir / "locus.outliers.tsv", sep='\t')
    assert {"rs1030", "rs1090"} <= set(outliers['SNP'])
    rounds = pd.read_csv(output_dir / "locus.rounds.tsv", sep='\t')
    assert rounds['round_index'].tolist() == [0, 1]


def test_pipeline_requires_data_and_results(tmp_path: Path) -> None:
    pipeline = DentistPipeline(output_dir=str(tmp_path), verbose=False)

    with pytest.raises(ValueError):
        pipeline.run(DentistParams(n_sample=100))
    with pytest.raises(ValueError):
        pipeline.save_outputs()
    with pytest.raises(ValueError):
        pipeline.load_data(str(tmp_path / "missing.tsv"), str(tmp_path / "missing.npy"))


def test_pipeline_rejects_mismatched_inputs(tmp_path: Path) -> None:
    pipeline = DentistPipeline(output_dir=str(tmp_path), verbose=False)
    sumstats = pd.DataFrame({'SNP': ['a', 'b'], 'Z': [0.1, 0.2]})

    with pytest.raises(ValueError):
        pipeline.set_data(sumstats, np.eye(3))


def test_params_validation() -> None:
    with pytest.raises(ValueError):
        DentistParams(n_sample=0).validate()
    with pytest.raises(ValueError):
        DentistParams(n_sample=10, dup_threshold=1.5).validate()
    with pytest.raises(ValueError):
        DentistParams(n_sample=10, dup_z_tolerance=-1.0).validate()

    kwargs = DentistParams(n_sample=10, seed=3).dentist_kwargs()
    assert 'n_sample' not in kwargs
    assert 'dup_threshold' not in kwargs
    assert 'dup_z_tolerance' not in kwargs
    assert kwargs['seed'] == 3


def test_cli_main_writes_selected_outputs(tmp_path: Path, synthetic_locus) -> None:
    output_dir = tmp_path / "cli"

    exit_code = main([
        "--sumstats", str(synthetic_locus['sumstats_file']),
        "--ld", str(synthetic_locus['ld_file']),
        "--n-sample", "20000",
        "--n-iter", "1",
        "--outputdir", str(output_dir),
        "--prefix", "run",
        "--outputs", "results,rounds",
        "--quiet",
    ])

    assert exit_code == 0
    assert (output_dir / "run.dentist.tsv").exists()
    assert (output_dir / "run.rounds.tsv").exists()
    assert not (output_dir / "run.outliers.tsv").exists()


def test_cli_main_reports_rank_failure(tmp_path: Path, capsys) -> None:
    sumstats_file = tmp_path / "tiny.tsv"
    pd.DataFrame({'SNP': list("abcd"), 'Z': [0.1, 0.2, 0.3, 0.4]}).to_csv(sumstats_file, sep='\t', index=False)
    ld_file = write_ld_matrix(np.eye(4), tmp_path / "tiny.npy")

    exit_code = main([
        "-s", str(sumstats_file),
        "-l", str(ld_file),
        "-n", "1000",
        "-o", str(tmp_path / "out"),
        "--quiet",
    ])

    assert exit_code == 1
    assert "DENTIST failed" in capsys.readouterr().err
