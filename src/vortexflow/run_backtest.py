#!/usr/bin/env python3
"""
Digital-Root Backtest Runner

Loads a JSON price history, runs the strategy and prints the results.

Usage:
    vortexflow-backtest --data data/btc-historical-data.json
    vortexflow-backtest --data btc.json --config strategies/default.yaml --save
    vortexflow-backtest --data btc.json --buy 2 --sell 7 --no-pattern-filter
    vortexflow-backtest --data btc.json --sweep --no-sequence-filter

    # Or without installing:
    python -m vortexflow.run_backtest --data btc.json
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Settings, StrategyConfig, configure_logging, load_config
from .engine import run_backtest
from .enrichment import EnrichedSeries, export_to_csv, load_price_history, validate_series
from .errors import VortexFlowError
from .report import format_summary, generate_report
from .state import BacktestResult
from .sweep import parameter_grid, run_sweep

logger = logging.getLogger("vortexflow.run_backtest")


def build_config(args: argparse.Namespace) -> StrategyConfig:
    """YAML config (if given) with command-line overrides applied."""
    config = load_config(args.config) if args.config else StrategyConfig()

    overrides: Dict[str, Any] = {}
    if args.buy is not None:
        overrides['buy_signal'] = args.buy
    if args.sell is not None:
        overrides['sell_signal'] = args.sell
    if args.hold is not None:
        overrides['hold_signal'] = args.hold
    if args.no_sequence_filter:
        overrides['use_sequence_filter'] = False
    if args.no_pattern_filter:
        overrides['use_pattern_filter'] = False
    if args.size is not None:
        overrides['position_size'] = args.size
    if args.capital is not None:
        overrides['initial_capital'] = args.capital
    if args.fee_percent is not None:
        overrides['fee_percent'] = args.fee_percent
    if args.slippage_bps is not None:
        overrides['slippage_bps'] = args.slippage_bps

    return config.with_overrides(**overrides) if overrides else config


def print_series_summary(series: EnrichedSeries) -> None:
    stats = series.statistics
    print("\n" + "=" * 60)
    print("PRICE SERIES")
    print("=" * 60)
    print(f"Records: {stats.total_records:,} ({stats.start_date} to {stats.end_date})")
    print(f"Price range: {stats.price_min:,.2f} - {stats.price_max:,.2f} (mean {stats.price_mean:,.2f})")
    print(f"Doubling-sequence days: {stats.doubling_count} ({stats.doubling_percentage:.2f}%)")
    print(f"Pattern-number days: {stats.pattern_count} ({stats.pattern_percentage:.2f}%)")
    print("Root frequencies: " + ", ".join(f"{r}={c}" for r, c in stats.root_frequencies.items()))

    quality = validate_series(series)
    for warning in quality.warnings:
        logger.warning(warning)


def print_sweep(series: EnrichedSeries, config: StrategyConfig, max_workers: int, top: int = 10) -> None:
    print("\n" + "=" * 60)
    print("PARAMETER SWEEP (buy x sell)")
    print("=" * 60)
    grid = parameter_grid(buy_signal=range(1, 10), sell_signal=range(1, 10))
    sweep = run_sweep(series, config, grid, max_workers=max_workers)

    print(f"{'Buy':>4} {'Sell':>5} {'Return':>10} {'Trades':>7} {'WinRate':>8} {'MaxDD':>8} {'Sharpe':>7}")
    print("-" * 55)
    for row in sweep.rows[:top]:
        o = row.overrides
        print(f"{o['buy_signal']:>4} {o['sell_signal']:>5} {row.total_return_pct:>+9.2f}% "
              f"{row.total_trades:>7} {row.win_rate:>7.1f}% {row.max_drawdown_pct:>7.2f}% "
              f"{row.sharpe_ratio:>7.2f}")


def save_results(result: BacktestResult, series: EnrichedSeries, reports_path: Path) -> Path:
    """Save the full report, ledger and curve to a timestamped JSON file."""
    reports_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    filename = reports_path / f'vortex_backtest_{timestamp}.json'

    report_data = {
        'timestamp': timestamp,
        'metadata': series.metadata,
        'statistics': series.statistics.to_dict(),
        'report': generate_report(result),
        'result': result.to_dict(),
    }

    with open(filename, 'w') as f:
        json.dump(report_data, f, indent=2, allow_nan=False)

    print(f"\nResults saved to: {filename}")
    return filename


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Run a digital-root strategy backtest')
    parser.add_argument('--data', required=True, help='JSON price history ({"prices": [[ts, price], ...]})')
    parser.add_argument('--config', default=None, help='YAML strategy config')
    parser.add_argument('--buy', type=int, default=None, help='Digital root that triggers BUY')
    parser.add_argument('--sell', type=int, default=None, help='Digital root that triggers SELL')
    parser.add_argument('--hold', type=int, default=None, help='Digital root that triggers HOLD')
    parser.add_argument('--no-sequence-filter', action='store_true',
                        help='Disable the doubling-sequence gate')
    parser.add_argument('--no-pattern-filter', action='store_true',
                        help='Disable the 3-6-9 override')
    parser.add_argument('--size', type=float, default=None, help='Position size fraction (0, 1]')
    parser.add_argument('--capital', type=float, default=None, help='Initial capital')
    parser.add_argument('--fee-percent', type=float, default=None, help='Fee per leg, percent')
    parser.add_argument('--slippage-bps', type=float, default=None, help='Slippage per leg, bps')
    parser.add_argument('--sweep', action='store_true', help='Also sweep all buy/sell root pairs')
    parser.add_argument('--save', action='store_true', help='Save results to JSON')
    parser.add_argument('--csv', default=None, help='Export enriched records to this CSV path')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    configure_logging(settings)

    try:
        config = build_config(args)
        series = load_price_history(args.data)
    except (VortexFlowError, FileNotFoundError) as e:
        logger.error(f"Failed to prepare backtest: {e}")
        return 1

    print_series_summary(series)

    if args.csv:
        export_to_csv(series, args.csv)

    result = run_backtest(series, config)

    print("\n" + "=" * 60)
    print("BACKTEST RESULTS")
    print("=" * 60)
    print(format_summary(result))

    if args.sweep:
        print_sweep(series, config, settings.MAX_WORKERS)

    if args.save:
        save_results(result, series, settings.REPORTS_PATH)

    return 0


if __name__ == '__main__':
    sys.exit(main())
