"""
CLI Module for qtlcoloc
"""

import argparse
import json
import sys

from .exceptions import ColocError
from .utils.logging import get_logger, setup_logger


logger = get_logger("cli")


def _run(args) -> int:
    from .pipeline import run_pipeline
    
    results, failures = run_pipeline(
        args.config,
        workers=args.workers,
        dry_run=args.dry_run,
        output_dir=args.output,
    )
    if not args.dry_run:
        ranked = results.ranked()
        for key, result in ranked[: args.top]:
            print(f"{key.label}\tPP.H4={result.pp_h4:.3f}\t{result.interpretation}")
        logger.info(f"{len(results)} succeeded, {len(failures)} failed")
    return 0


def _pair(args) -> int:
    from .colocalization.coloc import ColocAnalysis, ColocPriors
    from .harmonization.dataset import StudyKey
    from .harmonization.harmonizer import SumstatsHarmonizer
    from .utils.io import read_sumstats, write_json
    
    harmonizer = SumstatsHarmonizer()
    eqtl = harmonizer.standardize(
        read_sumstats(args.eqtl),
        study_type=args.eqtl_type,
        key=StudyKey(study_id="eqtl"),
        sample_size=args.eqtl_n,
    )
    gwas = harmonizer.standardize(
        read_sumstats(args.gwas),
        study_type=args.gwas_type,
        key=StudyKey(study_id="gwas", quant_method="gwas"),
        sample_size=args.gwas_n,
        case_fraction=args.case_fraction,
    )
    
    analysis = ColocAnalysis(
        priors=ColocPriors(p1=args.p1, p2=args.p2, p12=args.p12),
        maf_policy=args.maf_policy,
        strict=args.strict,
    )
    result = analysis.evaluate(eqtl, gwas)
    
    if args.output:
        write_json(result.to_dict(), args.output)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bayesian colocalisation of QTL and GWAS summary statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a configured batch
    qtlcoloc run --config run.yaml --workers 8
    
    # Colocalise one eQTL/GWAS pair
    qtlcoloc pair --eqtl eqtl.tsv --gwas gwas.tsv --eqtl-n 500 --gwas-n 100000
        """
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    
    # Run command
    run_parser = subparsers.add_parser("run", help="Run a configured batch")
    run_parser.add_argument("--config", required=True, help="Configuration file")
    run_parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    run_parser.add_argument("--output", default=None, help="Output directory")
    run_parser.add_argument("--top", type=int, default=10, help="Ranked results to print")
    run_parser.add_argument("--dry-run", action="store_true", help="Dry run mode")
    
    # Pair command
    pair_parser = subparsers.add_parser("pair", help="Colocalise one dataset pair")
    pair_parser.add_argument("--eqtl", required=True, help="eQTL summary statistics")
    pair_parser.add_argument("--gwas", required=True, help="GWAS summary statistics")
    pair_parser.add_argument("--eqtl-type", default="quantitative",
                             choices=["quantitative", "case-control"])
    pair_parser.add_argument("--gwas-type", default="case-control",
                             choices=["quantitative", "case-control"])
    pair_parser.add_argument("--eqtl-n", type=float, default=None, help="eQTL sample size")
    pair_parser.add_argument("--gwas-n", type=float, default=None, help="GWAS sample size")
    pair_parser.add_argument("--case-fraction", type=float, default=None,
                             help="GWAS proportion of cases")
    pair_parser.add_argument("--p1", type=float, default=1e-4)
    pair_parser.add_argument("--p2", type=float, default=1e-4)
    pair_parser.add_argument("--p12", type=float, default=1e-5)
    pair_parser.add_argument("--maf-policy", default="own", choices=["own", "borrow"])
    pair_parser.add_argument("--strict", action="store_true",
                             help="Fail on variants lacking usable fields")
    pair_parser.add_argument("--output", default=None, help="Output JSON file")
    
    args = parser.parse_args(argv)
    
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    
    setup_logger(log_file=args.log_file, level=args.log_level)
    
    try:
        if args.command == "run":
            code = _run(args)
        elif args.command == "pair":
            code = _pair(args)
    except (ColocError, ValueError, FileNotFoundError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    
    sys.exit(code)


if __name__ == "__main__":
    main()
