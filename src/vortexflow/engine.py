"""
Digital-Root Backtesting Engine.

Walks an enriched daily series once, in order, turning policy decisions
into a simulated long-only position.

Key Design Principles:
    1. SINGLE FORWARD PASS: Each record is processed exactly once. A day's
       state depends only on the previous day's state.

    2. AT MOST ONE POSITION: BUY while FLAT opens, SELL while LONG closes.
       BUY while LONG, SELL while FLAT and HOLD are no-ops.

    3. ONE EQUITY POINT PER RECORD: Every record appends exactly one
       EquityPoint, whatever the signal.

    4. FORCED CLOSE: A position still open after the last record is closed
       at that record's price with CloseReason.END_OF_PERIOD.

    5. NO SHARED STATE: All mutable bookkeeping lives in a per-run
       accumulator, so a backtester can be reused (or runs parallelised)
       safely. Same series + same config gives identical results.

Usage:
    from vortexflow import StrategyConfig, VortexBacktester, load_price_history

    series = load_price_history('btc.json')
    backtester = VortexBacktester(StrategyConfig(buy_signal=1, sell_signal=5))
    result = backtester.run(series)

    print(f"Trades: {result.metrics.total_trades}")
    print(f"Return: {result.total_return_pct:+.2f}%")
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Sequence, Union

from .config import StrategyConfig
from .enrichment import EnrichedSeries
from .metrics import compute_metrics
from .signals import SignalDecision, SignalPolicy
from .state import (
    Action,
    BacktestResult,
    CloseReason,
    DailyRecord,
    EquityPoint,
    Execution,
    ExecutionType,
    Position,
    PositionState,
    SignalRecord,
    Trade,
)

logger = logging.getLogger(__name__)

END_OF_PERIOD_REASONING = "End of backtest period"


def holding_period_days(entry_date: str, exit_date: str) -> int:
    """Calendar days between two ISO dates."""
    return (date.fromisoformat(exit_date) - date.fromisoformat(entry_date)).days


@dataclass
class SimulationState:
    """
    Mutable accumulator owned by a single run.

    capital is cash when FLAT and the capital committed at entry when LONG;
    it only changes when a position closes.
    """
    capital: float
    peak_value: float
    position: Optional[Position] = None
    trades: List[Trade] = field(default_factory=list)
    executions: List[Execution] = field(default_factory=list)
    signals: List[SignalRecord] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)

    @property
    def state(self) -> PositionState:
        return PositionState.LONG if self.position is not None else PositionState.FLAT

    def portfolio_value(self, price: float) -> float:
        if self.position is None:
            return self.capital
        return self.position.market_value(price)


class VortexBacktester:
    """
    Replays an enriched series under one StrategyConfig.

    Attributes:
        config: Strategy parameters for every run of this backtester
        policy: Ordered signal rules built from config
    """

    def __init__(self, config: Optional[StrategyConfig] = None):
        self.config = config or StrategyConfig()
        self.policy = SignalPolicy.from_config(self.config)

    def run(
        self,
        series: Union[EnrichedSeries, Sequence[DailyRecord]],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> BacktestResult:
        """
        Simulate the strategy over series.

        Args:
            series: EnrichedSeries or DailyRecords in chronological order
            progress_callback: Optional callback(n_processed, n_total),
                             called every 1000 records and at the end

        Returns:
            BacktestResult. An empty series yields zero trades, zero return
            and an empty equity curve.
        """
        records = series.records if isinstance(series, EnrichedSeries) else list(series)
        total = len(records)
        config = self.config

        logger.info(
            f"Starting backtest over {total:,} records "
            f"(rules={self.policy.rule_names}, size={config.position_size})"
        )

        sim = SimulationState(capital=config.initial_capital, peak_value=config.initial_capital)
        previous: Optional[DailyRecord] = None

        for i, record in enumerate(records):
            decision = self.policy.decide(record, previous)
            sim.signals.append(SignalRecord(
                date=record.date,
                price=record.price,
                digital_root=record.digital_root,
                action=decision.action,
                reasoning=decision.reasoning,
            ))

            if decision.action is Action.BUY and sim.position is None:
                self._open_position(sim, record, decision)
            elif decision.action is Action.SELL and sim.position is not None:
                self._close_position(sim, record, decision.reasoning, CloseReason.SIGNAL)

            self._mark_to_market(sim, record)
            previous = record

            if progress_callback and i % 1000 == 0:
                progress_callback(i, total)

        if sim.position is not None:
            self._close_position(sim, records[-1], END_OF_PERIOD_REASONING, CloseReason.END_OF_PERIOD)

        if progress_callback:
            progress_callback(total, total)

        metrics = compute_metrics(sim.trades, sim.equity_curve, config.initial_capital, sim.capital)

        logger.info(
            f"Backtest complete: {len(sim.trades)} trades, "
            f"final capital {sim.capital:,.2f} ({metrics.total_return_pct:+.2f}%)"
        )

        return BacktestResult(
            config=config,
            metrics=metrics,
            final_capital=sim.capital,
            total_return_pct=metrics.total_return_pct,
            trades=sim.trades,
            executions=sim.executions,
            signals=sim.signals,
            equity_curve=sim.equity_curve,
        )

    # -------------------------
    # Internal helpers
    # -------------------------

    def _open_position(self, sim: SimulationState, record: DailyRecord, decision: SignalDecision) -> None:
        size = self.config.position_size
        sim.position = Position(
            entry_date=record.date,
            entry_price=record.price,
            entry_digital_root=record.digital_root,
            capital_at_entry=sim.capital,
            size=size,
            quantity=sim.capital * size / record.price,
        )
        sim.executions.append(Execution(
            type=ExecutionType.OPEN,
            action=Action.BUY,
            date=record.date,
            price=record.price,
            digital_root=record.digital_root,
            reasoning=decision.reasoning,
            capital=sim.capital,
        ))
        logger.debug(f"OPEN {record.date} @ {record.price} (root {record.digital_root})")

    def _close_position(
        self,
        sim: SimulationState,
        record: DailyRecord,
        reasoning: str,
        reason: CloseReason
    ) -> None:
        pos = sim.position
        exit_price = record.price

        costs = (pos.quantity * pos.entry_price + pos.quantity * exit_price) * self.config.cost_rate
        profit = (exit_price - pos.entry_price) * pos.quantity - costs
        profit_percent = (exit_price - pos.entry_price) / pos.entry_price * 100
        sim.capital = pos.capital_at_entry + profit

        sim.trades.append(Trade(
            entry_date=pos.entry_date,
            exit_date=record.date,
            entry_price=pos.entry_price,
            exit_price=exit_price,
            entry_digital_root=pos.entry_digital_root,
            exit_digital_root=record.digital_root,
            profit=profit,
            profit_percent=profit_percent,
            holding_period_days=holding_period_days(pos.entry_date, record.date),
            capital_after=sim.capital,
            exit_reason=reason,
            costs=costs,
        ))
        sim.executions.append(Execution(
            type=ExecutionType.CLOSE,
            action=Action.SELL,
            date=record.date,
            price=exit_price,
            digital_root=record.digital_root,
            reasoning=reasoning,
            capital=sim.capital,
            profit=profit,
            profit_percent=profit_percent,
        ))
        sim.position = None
        logger.debug(
            f"CLOSE {record.date} @ {exit_price} ({reason.value}) "
            f"profit={profit:+.2f}"
        )

    def _mark_to_market(self, sim: SimulationState, record: DailyRecord) -> None:
        value = sim.portfolio_value(record.price)
        sim.peak_value = max(sim.peak_value, value)
        drawdown = (sim.peak_value - value) / sim.peak_value * 100 if sim.peak_value > 0 else 0.0
        sim.equity_curve.append(EquityPoint(
            date=record.date,
            price=record.price,
            digital_root=record.digital_root,
            portfolio_value=value,
            capital=sim.capital,
            drawdown=drawdown,
            position_state=sim.state,
        ))


def run_backtest(
    series: Union[EnrichedSeries, Sequence[DailyRecord]],
    config: Optional[StrategyConfig] = None,
    progress: bool = False
) -> BacktestResult:
    """
    Convenience function: (series, config) -> BacktestResult.

    Example:
        result = run_backtest(series, StrategyConfig(use_pattern_filter=False))
        print(result.metrics.sharpe_ratio)
    """
    def progress_callback(n, total):
        if progress:
            pct = n / total * 100 if total > 0 else 0
            print(f"\rProcessing: {n:,}/{total:,} ({pct:.1f}%)", end="", flush=True)

    backtester = VortexBacktester(config)
    result = backtester.run(series, progress_callback=progress_callback if progress else None)

    if progress:
        print()  # Newline after progress

    return result
