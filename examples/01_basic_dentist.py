#!/usr/bin/env python3
"""
Example 01: Basic DENTIST QC

This example demonstrates the simplest summary statistic QC workflow using
pyDENTIST. We run DENTIST on one locus and write the flagged markers.

Prerequisites:
- example_sumstats.tsv: SNP and Z (or beta/se) columns, one row per marker
- example_ld.h5: LD matrix for the same markers in the same order,
  stored as dataset 'ld'
"""

from pydentist.pipelines.qc import DentistPipeline, DentistParams


def main():
    print("=" * 70)
    print("EXAMPLE 01: Basic DENTIST QC")
    print("=" * 70)

    # Initialize the pipeline with output directory
    pipeline = DentistPipeline(output_dir='./example01_results')

    # Load summary statistics and the reference LD matrix
    print("\n1. Loading data...")
    pipeline.load_data(
        sumstats_file='example_sumstats.tsv',
        ld_file='example_ld.h5'
    )

    # Run DENTIST with default settings
    # n_sample is the GWAS sample size, not the LD reference panel size
    print("\n2. Running DENTIST...")
    results = pipeline.run(DentistParams(
        n_sample=50000,
        n_iter=10,       # QC rounds
        prop_svd=0.4,    # Share of eigen-components used for imputation
    ))

    print("\n3. Saving outputs...")
    pipeline.save_outputs(prefix='locus1')

    print("\n" + "=" * 70)
    print("QC Complete!")
    print("=" * 70)
    print(f"\n{results.n_outliers} of {results.n_markers} markers flagged")
    print("\nResults saved to: ./example01_results/")
    print("- locus1.dentist.tsv    (all markers)")
    print("- locus1.outliers.tsv   (flagged markers only)")
    print("- locus1.rounds.tsv     (per-round thresholds and counts)")
    print("- locus1_zscores.png    (observed vs imputed z-scores)")
    print("- locus1_qq.png         (QQ plot of DENTIST statistics)")
    print("- locus1_rsq.png        (imputation r² distribution)")


if __name__ == '__main__':
    main()
