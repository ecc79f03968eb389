"""
File I/O utilities for pyDENTIST package
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Union, Optional, Tuple
import h5py

from ..utils.data_types import LDMatrix, DentistResults

Z_COLUMN_ALIASES = ('z', 'Z', 'zscore', 'z_score', 'Zscore', 'ZSCORE', 'z.score', 'STAT')
BETA_COLUMN_ALIASES = ('beta', 'BETA', 'b', 'effect', 'Effect')
SE_COLUMN_ALIASES = ('se', 'SE', 'stderr', 'standard_error')
SNP_COLUMN_ALIASES = ('SNP', 'snp', 'rsid', 'RSID', 'variant_id', 'ID', 'marker')

HDF5_LD_DATASET = 'ld'


def _read_table(file_path: Path) -> pd.DataFrame:
    """Read a delimited text table, trying comma, tab then whitespace"""
    df = pd.read_csv(file_path)
    if df.shape[1] < 2:
        df = pd.read_csv(file_path, sep='\t')
        if df.shape[1] < 2:
            df = pd.read_csv(file_path, sep=r'\s+')
    return df


def _find_column(df: pd.DataFrame, aliases: Tuple[str, ...]) -> Optional[str]:
    for name in aliases:
        if name in df.columns:
            return name
    return None


def read_summary_stats(file_path: Union[str, Path]) -> pd.DataFrame:
    """Read GWAS summary statistics

    Accepts a z-score column (``z``, ``zscore``, ...) or a beta/se column
    pair from which z = beta / se is derived. An optional SNP column is kept.

    Returns:
        DataFrame with columns ['SNP', 'Z'] (SNP is generated when absent)
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Summary statistics file not found: {file_path}")

    df = _read_table(file_path)

    z_col = _find_column(df, Z_COLUMN_ALIASES)
    if z_col is not None:
        z = pd.to_numeric(df[z_col], errors='coerce')
    else:
        beta_col = _find_column(df, BETA_COLUMN_ALIASES)
        se_col = _find_column(df, SE_COLUMN_ALIASES)
        if beta_col is None or se_col is None:
            raise ValueError(
                "Summary statistics need a z-score column or beta and se columns; "
                f"found {list(df.columns)}"
            )
        z = pd.to_numeric(df[beta_col], errors='coerce') / pd.to_numeric(df[se_col], errors='coerce')

    snp_col = _find_column(df, SNP_COLUMN_ALIASES)
    if snp_col is not None:
        snps = df[snp_col].astype(str)
    else:
        snps = pd.Series([f"marker{i + 1}" for i in range(len(df))])

    result = pd.DataFrame({'SNP': snps.values, 'Z': z.values.astype(np.float64)})
    if result['Z'].isna().any():
        n_bad = int(result['Z'].isna().sum())
        raise ValueError(f"Summary statistics contain {n_bad} non-numeric or missing z-scores")
    return result


def read_ld_matrix(file_path: Union[str, Path]) -> LDMatrix:
    """Read an LD matrix from .npy, .npz, HDF5 or delimited text

    HDF5 files must hold a dataset named ``ld``; .npz files use the ``ld``
    entry or, failing that, the first array. Text files may carry a header row.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"LD matrix file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == '.npy':
        data = np.load(file_path)
    elif suffix == '.npz':
        with np.load(file_path) as archive:
            key = HDF5_LD_DATASET if HDF5_LD_DATASET in archive.files else archive.files[0]
            data = archive[key]
    elif suffix in ('.h5', '.hdf5'):
        with h5py.File(file_path, 'r') as f:
            if HDF5_LD_DATASET not in f:
                raise ValueError(f"HDF5 file has no '{HDF5_LD_DATASET}' dataset: {file_path}")
            data = f[HDF5_LD_DATASET][:]
    else:
        sep = '\t' if suffix in ('.tsv', '.txt') else ','
        df = pd.read_csv(file_path, sep=sep, header=None)
        # Drop a header row of marker labels if present
        first = pd.to_numeric(df.iloc[0], errors='coerce')
        if first.isna().all():
            df = df.iloc[1:]
        data = df.apply(pd.to_numeric, errors='coerce').to_numpy(dtype=np.float64)
        if data.shape[1] == data.shape[0] + 1 and np.isnan(data[:, 0]).all():
            data = data[:, 1:]

    return LDMatrix(np.asarray(data, dtype=np.float64))


def write_ld_matrix(ld: Union[LDMatrix, np.ndarray], file_path: Union[str, Path],
                    compression: Optional[str] = 'gzip') -> Path:
    """Write an LD matrix as .npy or compressed HDF5 (by file suffix)"""
    file_path = Path(file_path)
    data = ld.to_numpy() if isinstance(ld, LDMatrix) else np.asarray(ld, dtype=np.float64)

    if file_path.suffix.lower() in ('.h5', '.hdf5'):
        with h5py.File(file_path, 'w') as f:
            f.create_dataset(HDF5_LD_DATASET, data=data,
                             compression=compression, chunks=True)
    else:
        if file_path.suffix.lower() != '.npy':
            file_path = file_path.with_suffix('.npy')
        np.save(file_path, data)
    return file_path


def save_dentist_results(results: DentistResults, output_file: Union[str, Path]) -> Path:
    """Save DENTIST results as a tab-separated table"""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    results.to_dataframe().to_csv(output_file, sep='\t', index=False)
    return output_file


def load_dentist_results(file_path: Union[str, Path]) -> pd.DataFrame:
    """Load DENTIST results from file"""
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Results file not found: {file_path}")

    return pd.read_csv(file_path, sep='\t')


def validate_input_files(sumstats_file: Optional[str] = None,
                         ld_file: Optional[str] = None) -> dict:
    """Validate input files exist and can be parsed

    Returns dictionary with validation results
    """
    results = {'valid': True, 'errors': []}

    n_markers = None
    if sumstats_file:
        if not Path(sumstats_file).exists():
            results['valid'] = False
            results['errors'].append(f"Summary statistics file not found: {sumstats_file}")
        else:
            try:
                n_markers = len(read_summary_stats(sumstats_file))
            except ValueError as e:
                results['valid'] = False
                results['errors'].append(f"Error reading summary statistics file: {e}")

    if ld_file:
        if not Path(ld_file).exists():
            results['valid'] = False
            results['errors'].append(f"LD matrix file not found: {ld_file}")
        else:
            try:
                ld = read_ld_matrix(ld_file)
                if n_markers is not None and ld.n_markers != n_markers:
                    results['valid'] = False
                    results['errors'].append(
                        f"LD matrix has {ld.n_markers} markers but summary statistics have {n_markers}"
                    )
            except (ValueError, OSError) as e:
                results['valid'] = False
                results['errors'].append(f"Error reading LD matrix file: {e}")

    return results
