"""
Parameter sweep over StrategyConfig fields.

Each grid point is an independent backtest with its own forward pass and
its own accumulator. With max_workers > 1 the runs are spread over a
process pool; results are identical either way.

Usage:
    grid = parameter_grid(buy_signal=range(1, 10), sell_signal=range(1, 10))
    sweep = run_sweep(series, StrategyConfig(use_pattern_filter=False), grid)
    print(sweep.to_frame().head())
"""

import itertools
import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .config import StrategyConfig
from .engine import VortexBacktester
from .enrichment import EnrichedSeries
from .state import DailyRecord

logger = logging.getLogger(__name__)


@dataclass
class SweepRow:
    """Headline metrics of one grid point."""
    overrides: Dict[str, Any]
    total_return_pct: float
    final_capital: float
    total_trades: int
    win_rate: float
    max_drawdown_pct: float
    sharpe_ratio: float
    sortino_ratio: float

    def to_dict(self) -> Dict[str, Any]:
        row = dict(self.overrides)
        row.update({
            'total_return_pct': self.total_return_pct,
            'final_capital': self.final_capital,
            'total_trades': self.total_trades,
            'win_rate': self.win_rate,
            'max_drawdown_pct': self.max_drawdown_pct,
            'sharpe_ratio': self.sharpe_ratio,
            'sortino_ratio': self.sortino_ratio,
        })
        return row


@dataclass
class SweepResult:
    """All grid points, best total return first."""
    base_config: StrategyConfig
    rows: List[SweepRow] = field(default_factory=list)

    @property
    def best(self) -> Optional[SweepRow]:
        return self.rows[0] if self.rows else None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([r.to_dict() for r in self.rows])


def parameter_grid(**axes: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Cartesian product of field values.

    Example:
        >>> parameter_grid(buy_signal=[1, 2], use_pattern_filter=[False])
        [{'buy_signal': 1, 'use_pattern_filter': False},
         {'buy_signal': 2, 'use_pattern_filter': False}]
    """
    names = list(axes)
    values = [list(axes[n]) for n in names]
    return [dict(zip(names, combo)) for combo in itertools.product(*values)]


def _run_point(args: Tuple[List[DailyRecord], StrategyConfig, Dict[str, Any]]) -> SweepRow:
    records, config, overrides = args
    result = VortexBacktester(config).run(records)
    m = result.metrics
    return SweepRow(
        overrides=overrides,
        total_return_pct=result.total_return_pct,
        final_capital=result.final_capital,
        total_trades=m.total_trades,
        win_rate=m.win_rate,
        max_drawdown_pct=m.max_drawdown_pct,
        sharpe_ratio=m.sharpe_ratio,
        sortino_ratio=m.sortino_ratio,
    )


def run_sweep(
    series: Union[EnrichedSeries, Sequence[DailyRecord]],
    base_config: StrategyConfig,
    grid: Sequence[Dict[str, Any]],
    max_workers: int = 1
) -> SweepResult:
    """
    Backtest base_config with each set of overrides in grid.

    Configs are built (and validated) before any run starts, so an invalid
    grid point raises InvalidConfiguration without doing partial work.
    """
    records = series.records if isinstance(series, EnrichedSeries) else list(series)
    jobs = [(records, base_config.with_overrides(**overrides), dict(overrides)) for overrides in grid]

    logger.info(f"Running sweep of {len(jobs)} configurations (workers={max_workers})")

    if max_workers > 1 and len(jobs) > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            rows = list(executor.map(_run_point, jobs))
    else:
        rows = [_run_point(job) for job in jobs]

    rows.sort(key=lambda r: r.total_return_pct, reverse=True)
    return SweepResult(base_config=base_config, rows=rows)
