"""
DENTIST QC Pipeline Module

Wraps loading of summary statistics and the LD reference, the iterative
DENTIST QC, result export and diagnostic plots into a reusable pipeline class.
"""

import time
import numpy as np
import pandas as pd
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional, Dict, Any

from ..data.io_utils import read_summary_stats, read_ld_matrix, save_dentist_results
from ..utils.data_types import LDMatrix, DentistResults
from ..association.dentist import DENTIST, DENTIST_Dedup
from ..visualization.plots import DENTIST_Report

OUTPUT_CHOICES = (
    'results',
    'outliers',
    'rounds',
    'plots',
)


@dataclass
class DentistParams:
    """Run settings for DENTIST QC"""

    n_sample: int
    pvalue_threshold: float = 5.0369e-8
    prop_svd: float = 0.4
    gc_control: bool = False
    n_iter: int = 10
    grouping_pvalue_threshold: float = 0.05
    dup_threshold: Optional[float] = 0.99
    dup_z_tolerance: Optional[float] = 2.0
    final_pvalue_filter: bool = True
    cpu: int = 1
    seed: int = 999
    timeout: Optional[float] = None

    def validate(self) -> None:
        if self.n_sample <= 0:
            raise ValueError("Sample size must be positive")
        if not (0.0 < self.prop_svd <= 1.0):
            raise ValueError("prop_svd must be in (0, 1]")
        if not (0.0 < self.pvalue_threshold <= 1.0):
            raise ValueError("P-value threshold must be in (0, 1]")
        if not (0.0 < self.grouping_pvalue_threshold <= 1.0):
            raise ValueError("Grouping p-value threshold must be in (0, 1]")
        if self.n_iter < 0:
            raise ValueError("Number of iterations must be non-negative")
        if self.dup_threshold is not None and not (0.0 < self.dup_threshold <= 1.0):
            raise ValueError("Duplicate threshold must be in (0, 1]")
        if self.dup_z_tolerance is not None and self.dup_z_tolerance < 0:
            raise ValueError("Duplicate z tolerance must be non-negative")
        if self.cpu < 0:
            raise ValueError("cpu must be >= 0")

    def dentist_kwargs(self) -> Dict[str, Any]:
        kwargs = asdict(self)
        kwargs.pop('n_sample')
        kwargs.pop('dup_threshold')
        kwargs.pop('dup_z_tolerance')
        return kwargs


class DentistPipeline:
    """
    Pipeline for summary statistic QC with DENTIST.

    Typical workflow:
        1. Initialize pipeline with output directory
        2. Load summary statistics and LD matrix
        3. Run DENTIST
        4. Results and plots are written to the output directory

    Example:
        >>> pipeline = DentistPipeline(output_dir='./qc')
        >>> pipeline.load_data('sumstats.tsv', 'ld.npy')
        >>> results = pipeline.run(DentistParams(n_sample=50000))
        >>> pipeline.save_outputs(prefix='locus1')
    """

    def __init__(self, output_dir: str = "./DENTIST_results", verbose: bool = True):
        """
        Initialize the DENTIST Pipeline.

        Args:
            output_dir: Directory where results and plots will be saved.
            verbose: Print progress information
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.verbose = verbose

        self.sumstats: Optional[pd.DataFrame] = None
        self.ld: Optional[LDMatrix] = None
        self.params: Optional[DentistParams] = None
        self.results: Optional[DentistResults] = None

    def log(self, message: str):
        """Internal logger"""
        if self.verbose:
            print(message)

    def log_step(self, step_name: str, start_time: Optional[float] = None):
        """Log a pipeline step with optional timing"""
        if start_time is not None:
            elapsed = time.time() - start_time
            self.log(f"{step_name} completed in {elapsed:.2f} seconds")
        else:
            self.log(f"{step_name}...")

    def load_data(self, sumstats_file: str, ld_file: str):
        """
        Load summary statistics and the matching LD matrix.

        Raises:
            ValueError: If files cannot be loaded or their dimensions disagree
        """
        step_start = time.time()
        self.log_step("Step 1: Loading and validating input data")

        try:
            self.sumstats = read_summary_stats(sumstats_file)
            self.log(f"   Loaded summary statistics for {len(self.sumstats)} markers")
        except (OSError, ValueError) as e:
            raise ValueError(f"Error loading summary statistics file: {e}") from e

        try:
            self.ld = read_ld_matrix(ld_file)
            self.log(f"   Loaded LD matrix ({self.ld.n_markers}×{self.ld.n_markers})")
        except (OSError, ValueError) as e:
            raise ValueError(f"Error loading LD matrix file: {e}") from e

        self.set_data(self.sumstats, self.ld)
        self.log_step("Data loading", step_start)

    def set_data(self, sumstats: pd.DataFrame, ld: LDMatrix):
        """Use in-memory summary statistics (columns SNP, Z) and LD matrix"""
        if 'Z' not in sumstats.columns:
            raise ValueError("Summary statistics must have a 'Z' column")
        if not isinstance(ld, LDMatrix):
            ld = LDMatrix(ld)
        if len(sumstats) != ld.n_markers:
            raise ValueError(
                f"Summary statistics marker count ({len(sumstats)}) != LD matrix dimension ({ld.n_markers})"
            )
        self.sumstats = sumstats.reset_index(drop=True)
        self.ld = ld

    def run(self, params: DentistParams) -> DentistResults:
        """Run DENTIST QC on the loaded data"""
        if self.sumstats is None or self.ld is None:
            raise ValueError("Data not loaded. Call load_data() first.")
        params.validate()
        self.params = params

        step_start = time.time()
        self.log_step("Step 2: Running DENTIST QC")

        zscores = self.sumstats['Z'].to_numpy(dtype=np.float64)
        snp_ids = self.sumstats['SNP'].astype(str).tolist() if 'SNP' in self.sumstats.columns else None

        if params.dup_threshold is not None:
            self.results = DENTIST_Dedup(
                self.ld, zscores, params.n_sample,
                dup_threshold=params.dup_threshold,
                dup_z_tolerance=params.dup_z_tolerance,
                snp_ids=snp_ids,
                verbose=self.verbose,
                **params.dentist_kwargs(),
            )
        else:
            self.results = DENTIST(
                self.ld, zscores, params.n_sample,
                snp_ids=snp_ids,
                verbose=self.verbose,
                **params.dentist_kwargs(),
            )

        self.log(f"   {self.results.n_outliers} of {self.results.n_markers} markers flagged as outliers")
        self.log_step("DENTIST QC", step_start)
        return self.results

    def save_outputs(self, prefix: str = "DENTIST", outputs: Optional[List[str]] = None) -> List[Path]:
        """Write selected outputs to the output directory"""
        if self.results is None:
            raise ValueError("No results available. Call run() first.")
        outputs = list(outputs) if outputs else list(OUTPUT_CHOICES)
        for output in outputs:
            if output not in OUTPUT_CHOICES:
                raise ValueError(f"Invalid output choice: {output}")

        step_start = time.time()
        self.log_step("Step 3: Saving outputs")
        files: List[Path] = []

        if 'results' in outputs:
            files.append(save_dentist_results(self.results, self.output_dir / f"{prefix}.dentist.tsv"))

        if 'outliers' in outputs:
            df = self.results.to_dataframe()
            outlier_file = self.output_dir / f"{prefix}.outliers.tsv"
            df[df['outlier']].to_csv(outlier_file, sep='\t', index=False)
            files.append(outlier_file)

        if 'rounds' in outputs:
            rounds_file = self.output_dir / f"{prefix}.rounds.tsv"
            self.results.rounds_dataframe().to_csv(rounds_file, sep='\t', index=False)
            files.append(rounds_file)

        if 'plots' in outputs:
            report = DENTIST_Report(
                self.results,
                output_prefix=str(self.output_dir / prefix),
                verbose=self.verbose,
            )
            files.extend(Path(f) for f in report['files_created'])

        for f in files:
            self.log(f"   Wrote {f}")
        self.log_step("Saving outputs", step_start)
        return files
