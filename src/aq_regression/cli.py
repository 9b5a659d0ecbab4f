#!/usr/bin/env python3
"""
Command-line runner for the SO2 best-subset regression analysis.

Example:

    aq-subset PRSA_Data_Aotizhongxin.csv --station Aotizhongxin --target SO2 \\
        --drop-missing No wd station --drop-collinear PM10 DEWP \\
        --nvmax 8 --folds 10 --seed 1 --plots-dir figures --output results.json
"""

import argparse
import logging
import sys
from typing import List, Optional, Union

from .config import SEARCH_METHODS, create_pipeline_config, load_pipeline_config
from .pipeline import SubsetRegressionPipeline
from .reporting.plots import save_figures
from .reporting.summary import save_results

logger = logging.getLogger(__name__)


def _column_ref(value: str) -> Union[str, int]:
    """Integers are column positions, anything else a column name."""
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Best-subset regression with k-fold cross-validation for station SO2 levels'
    )
    parser.add_argument('data_path', nargs='?', help='Delimited input file with a header row')
    parser.add_argument('--config', help='JSON configuration file (command-line values take precedence)')
    parser.add_argument('--station', help='Station to analyse')
    parser.add_argument('--station-column', help='Station identifier column (default: station)')
    parser.add_argument('--target', help='Response column (default: SO2)')
    parser.add_argument('--drop-missing', nargs='*', type=_column_ref, metavar='COLUMN',
                        help='Columns (names or positions) removed for missingness')
    parser.add_argument('--max-missing-fraction', type=float,
                        help='Also remove columns missing more than this fraction')
    parser.add_argument('--drop-collinear', nargs='*', metavar='COLUMN',
                        help='Predictors removed for collinearity after the first fit')
    parser.add_argument('--vif-threshold', type=float, help='VIF above which predictors are flagged')
    parser.add_argument('--nvmax', type=int, help='Largest subset size (default: 8)')
    parser.add_argument('--method', choices=SEARCH_METHODS, help='Subset search method')
    parser.add_argument('--folds', type=int, dest='n_folds', help='Number of CV folds (default: 10)')
    parser.add_argument('--seed', type=int, help='Fold assignment seed (default: 1)')
    parser.add_argument('--reference-size', type=int,
                        help='Size whose mean CV error + SE is the one-SE cut-off (default: CV minimum)')
    parser.add_argument('--workers', type=int, dest='max_workers', help='Threads for fold evaluation')
    parser.add_argument('--plots-dir', help='Directory for PNG figures')
    parser.add_argument('--output', dest='output_path', help='JSON results file')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    overrides = {
        'data_path': args.data_path,
        'station': args.station,
        'station_column': args.station_column,
        'target': args.target,
        'columns_to_drop_for_missingness': args.drop_missing,
        'max_missing_fraction': args.max_missing_fraction,
        'columns_to_drop_for_collinearity': args.drop_collinear,
        'vif_threshold': args.vif_threshold,
        'nvmax': args.nvmax,
        'method': args.method,
        'n_folds': args.n_folds,
        'seed': args.seed,
        'reference_size': args.reference_size,
        'max_workers': args.max_workers,
        'plots_dir': args.plots_dir,
        'output_path': args.output_path,
    }

    try:
        if args.config:
            config = load_pipeline_config(args.config, **overrides)
        else:
            config = create_pipeline_config(**{k: v for k, v in overrides.items() if v is not None})

        if config.data_path is None:
            parser.error('data_path is required (positional argument or in --config)')

        pipeline = SubsetRegressionPipeline(config)
        result = pipeline.run()

        print("\n".join(pipeline.summary_lines()))

        if config.plots_dir:
            save_figures(
                result.selection,
                result.cross_validation,
                config.plots_dir,
                reference_size=config.reference_size,
                chart_width=config.chart_width,
                chart_height=config.chart_height,
                dpi=config.chart_dpi
            )

        if config.output_path:
            save_results(result.to_dict(), config.output_path)

    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        print(f"✗ Analysis failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
