"""
Digital-Root Strategy Backtesting

Evaluates a rule-based strategy that trades on the digital root (mod-9
category) of each day's price, and reports performance statistics.

Layers:
    - vortex_math.py: digital roots, doubling/tripling sequences, analytics
    - enrichment.py: raw [timestamp, price] pairs -> DailyRecords + statistics
    - signals.py: ordered signal policy (sequence gate, pattern override, targets)
    - engine.py: FLAT/LONG state machine, trade ledger, equity curve
    - metrics.py: return, win rate, drawdown, Sharpe/Sortino, pattern returns

Usage:
    from vortexflow import StrategyConfig, enrich_series, run_backtest

    series = enrich_series({'prices': [[1577836800000, 7200.17], ...]})
    result = run_backtest(series, StrategyConfig(buy_signal=1, sell_signal=5))
    print(f"Return: {result.total_return_pct:+.2f}%")
    print(f"Sharpe: {result.metrics.sharpe_ratio:.2f}")
"""

from .config import StrategyConfig, Settings, load_config
from .engine import VortexBacktester, run_backtest
from .enrichment import (
    EnrichedSeries,
    SeriesStatistics,
    DataQualityReport,
    enrich_series,
    load_price_history,
    validate_series,
    export_to_csv,
)
from .errors import (
    VortexFlowError,
    InvalidInputFormat,
    NonMonotonicTimestamp,
    InvalidConfiguration,
)
from .metrics import PerformanceMetrics, PatternReturns
from .signals import SignalPolicy, SignalDecision
from .state import (
    Action,
    PositionState,
    CloseReason,
    PricePoint,
    DailyRecord,
    Trade,
    Execution,
    EquityPoint,
    BacktestResult,
)
from .vortex_math import (
    digital_root,
    generate_sequence,
    is_in_doubling_sequence,
    is_pattern_number,
)

__all__ = [
    # Config
    'StrategyConfig',
    'Settings',
    'load_config',
    # Engine
    'VortexBacktester',
    'run_backtest',
    # Enrichment
    'EnrichedSeries',
    'SeriesStatistics',
    'DataQualityReport',
    'enrich_series',
    'load_price_history',
    'validate_series',
    'export_to_csv',
    # Errors
    'VortexFlowError',
    'InvalidInputFormat',
    'NonMonotonicTimestamp',
    'InvalidConfiguration',
    # Results
    'PerformanceMetrics',
    'PatternReturns',
    'SignalPolicy',
    'SignalDecision',
    'Action',
    'PositionState',
    'CloseReason',
    'PricePoint',
    'DailyRecord',
    'Trade',
    'Execution',
    'EquityPoint',
    'BacktestResult',
    # Transform
    'digital_root',
    'generate_sequence',
    'is_in_doubling_sequence',
    'is_pattern_number',
]

__version__ = "0.1.0"
