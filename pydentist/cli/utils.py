import argparse
from typing import List, Optional, Sequence

from ..pipelines.qc import OUTPUT_CHOICES, DentistParams


def normalize_outputs(outputs: Optional[List[str]]) -> List[str]:
    """Normalize output selections with comma splitting and deduplication."""
    if not outputs:
        return list(OUTPUT_CHOICES)

    normalized = []
    seen = set()
    for item in outputs:
        for part in str(item).split(','):
            part = part.strip().lower()
            if not part:
                continue
            if part not in OUTPUT_CHOICES:
                raise ValueError(f"Invalid output choice: {part}")
            if part not in seen:
                normalized.append(part)
                seen.add(part)

    return normalized if normalized else list(OUTPUT_CHOICES)


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments for DENTIST QC"""
    parser = argparse.ArgumentParser(
        description="Summary statistic QC with DENTIST using pyDENTIST",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Required arguments
    parser.add_argument("--sumstats", "-s", required=True,
                        help="Summary statistics file (CSV/TSV with z or beta/se columns)")
    parser.add_argument("--ld", "-l", required=True,
                        help="LD matrix file (.npy, .npz, .h5 or CSV/TSV)")
    parser.add_argument("--n-sample", "-n", type=int, required=True,
                        help="GWAS sample size")

    # Optional arguments
    parser.add_argument("--outputdir", "-o", default="./DENTIST_results",
                        help="Output directory")
    parser.add_argument("--prefix", default="DENTIST",
                        help="Output file prefix")

    # Method settings
    parser.add_argument("--pvalue-threshold", type=float, default=5.0369e-8,
                        help="Genome-wide p-value threshold for outliers")
    parser.add_argument("--prop-svd", type=float, default=0.4,
                        help="Proportion of eigen-components kept in imputation")
    parser.add_argument("--gc-control", action='store_true',
                        help="Rescue markers after genomic control correction")
    parser.add_argument("--n-iter", type=int, default=10,
                        help="Number of QC rounds")
    parser.add_argument("--grouping-pvalue-threshold", type=float, default=0.05,
                        help="P-value splitting significant and non-significant markers")
    parser.add_argument("--dup-threshold", type=float, default=0.99,
                        help="|r| at or above which markers are treated as duplicates")
    parser.add_argument("--dup-z-tolerance", type=float, default=2.0,
                        help="Largest |z| gap allowed between a duplicate and its representative")
    parser.add_argument("--no-dedup", action='store_true',
                        help="Do not collapse duplicate markers")
    parser.add_argument("--no-final-pvalue-filter", action='store_false', dest='final_pvalue_filter',
                        help="Do not apply the p-value cut in the final round")
    parser.add_argument("--cpu", type=int, default=1,
                        help="Worker threads (0 = all cores)")
    parser.add_argument("--seed", type=int, default=999,
                        help="Random seed")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Abort after this many seconds")

    # Output
    parser.add_argument("--outputs", nargs='+',
                        default=list(OUTPUT_CHOICES),
                        help=f"Outputs to generate ({', '.join(OUTPUT_CHOICES)})")
    parser.add_argument("--quiet", action='store_true',
                        help="Suppress progress output")

    parser.set_defaults(final_pvalue_filter=True)

    args = parser.parse_args(argv)
    try:
        args.outputs = normalize_outputs(args.outputs)
    except ValueError as e:
        parser.error(str(e))
    return args


def params_from_args(args) -> DentistParams:
    """Build DentistParams from parsed arguments"""
    return DentistParams(
        n_sample=args.n_sample,
        pvalue_threshold=args.pvalue_threshold,
        prop_svd=args.prop_svd,
        gc_control=args.gc_control,
        n_iter=args.n_iter,
        grouping_pvalue_threshold=args.grouping_pvalue_threshold,
        dup_threshold=None if args.no_dedup else args.dup_threshold,
        dup_z_tolerance=args.dup_z_tolerance,
        final_pvalue_filter=args.final_pvalue_filter,
        cpu=args.cpu,
        seed=args.seed,
        timeout=args.timeout,
    )
