"""
Command line entry point for DENTIST QC
"""
import sys

from .utils import parse_args, params_from_args
from ..pipelines.qc import DentistPipeline
from ..utils.errors import DentistError


def main(argv=None) -> int:
    args = parse_args(argv)

    pipeline = DentistPipeline(output_dir=args.outputdir, verbose=not args.quiet)
    pipeline.load_data(args.sumstats, args.ld)

    try:
        pipeline.run(params_from_args(args))
    except DentistError as e:
        print(f"DENTIST failed: {e}", file=sys.stderr)
        return 1

    pipeline.save_outputs(prefix=args.prefix, outputs=args.outputs)
    return 0
