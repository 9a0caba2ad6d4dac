"""
Performance metrics calculations.

`PerformanceAnalytics` derives summary statistics, an equity curve and
a drawdown curve from the completed-trade log of a run.  It holds no
state; the same instance can be reused across backtests.

All percentages are expressed in percent (``4.0`` means 4 %), and an
empty trade list yields zero-valued metrics rather than missing ones.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import pandas as pd

from ..execution.models import CompletedTrade, TradingAccount


@dataclass(frozen=True)
class EquityPoint:
    """Account equity at a given timestamp."""
    timestamp: pd.Timestamp
    equity: float


@dataclass(frozen=True)
class DrawdownPoint:
    """Decline from the running equity peak at a given timestamp."""
    timestamp: pd.Timestamp
    drawdown_percent: float


@dataclass(frozen=True)
class PerformanceMetrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0
    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    avg_trade_duration: pd.Timedelta = pd.Timedelta(0)
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    expectancy: float = 0.0


class PerformanceAnalytics:
    """Compute performance statistics from completed trades."""

    def calculate_metrics(
        self,
        trades: Sequence[CompletedTrade],
        account: TradingAccount,
    ) -> PerformanceMetrics:
        """Compute a set of summary statistics for a run.

        Parameters
        ----------
        trades : sequence of CompletedTrade
            Closed round trips in the order they were closed.
        account : TradingAccount
            Final account snapshot; supplies total P&L and the
            starting balance used for drawdown.

        Returns
        -------
        PerformanceMetrics
        """
        if not trades:
            return PerformanceMetrics()

        wins = [t.pnl for t in trades if t.pnl > 0]
        losses = [t.pnl for t in trades if t.pnl < 0]

        avg_win = sum(wins) / len(wins) if wins else 0.0
        avg_loss = abs(sum(losses)) / len(losses) if losses else 0.0
        profit_factor = avg_win / avg_loss if avg_loss > 0 else 0.0

        return PerformanceMetrics(
            total_trades=len(trades),
            winning_trades=len(wins),
            losing_trades=len(losses),
            win_rate=len(wins) / len(trades) * 100,
            avg_win=avg_win,
            avg_loss=avg_loss,
            profit_factor=profit_factor,
            total_pnl=account.total_pnl,
            total_pnl_percent=account.total_pnl_percent,
            largest_win=max(wins) if wins else 0.0,
            largest_loss=min(losses) if losses else 0.0,
            avg_trade_duration=self.calculate_avg_duration(trades),
            sharpe_ratio=self.calculate_sharpe_ratio(trades),
            max_drawdown=self.calculate_max_drawdown(trades, account.starting_balance),
            expectancy=sum(t.pnl for t in trades) / len(trades),
        )

    def calculate_avg_duration(self, trades: Sequence[CompletedTrade]) -> pd.Timedelta:
        if not trades:
            return pd.Timedelta(0)
        total = sum((t.duration for t in trades), pd.Timedelta(0))
        return total / len(trades)

    def calculate_sharpe_ratio(self, trades: Sequence[CompletedTrade]) -> float:
        """Mean per-trade return over its population standard deviation.

        Uses `pnl_percent` of each trade with a zero risk-free rate and
        no annualisation.  Returns 0 for fewer than two trades or when
        every trade returned the same amount.
        """
        if len(trades) < 2:
            return 0.0
        returns = [t.pnl_percent for t in trades]
        mean_ret = sum(returns) / len(returns)
        variance = sum((r - mean_ret) ** 2 for r in returns) / len(returns)
        std_dev = math.sqrt(variance)
        if std_dev == 0:
            return 0.0
        return mean_ret / std_dev

    def calculate_max_drawdown(self, trades: Sequence[CompletedTrade], starting_balance: float) -> float:
        """Largest peak-to-trough decline of the running balance, in percent."""
        max_drawdown = 0.0
        for point in self._drawdowns(trades, starting_balance):
            max_drawdown = max(max_drawdown, point)
        return max_drawdown

    def _drawdowns(self, trades: Sequence[CompletedTrade], starting_balance: float) -> List[float]:
        peak = starting_balance
        running_balance = starting_balance
        drawdowns: List[float] = []
        for trade in trades:
            running_balance += trade.pnl
            if running_balance > peak:
                peak = running_balance
            drawdowns.append((peak - running_balance) / peak * 100 if peak > 0 else 0.0)
        return drawdowns

    def calculate_drawdown_curve(
        self,
        trades: Sequence[CompletedTrade],
        starting_balance: float,
    ) -> List[DrawdownPoint]:
        if not trades:
            return []
        curve = [DrawdownPoint(timestamp=trades[0].entry_time, drawdown_percent=0.0)]
        for trade, drawdown in zip(trades, self._drawdowns(trades, starting_balance)):
            curve.append(DrawdownPoint(timestamp=trade.exit_time, drawdown_percent=drawdown))
        return curve

    def generate_equity_curve(
        self,
        trades: Sequence[CompletedTrade],
        starting_balance: float,
    ) -> List[EquityPoint]:
        if not trades:
            return []
        equity = starting_balance
        curve = [EquityPoint(timestamp=trades[0].entry_time, equity=starting_balance)]
        for trade in trades:
            equity += trade.pnl
            curve.append(EquityPoint(timestamp=trade.exit_time, equity=equity))
        return curve

    def calculate_win_loss_ratio(self, metrics: PerformanceMetrics) -> float:
        if metrics.losing_trades == 0:
            return math.inf
        return metrics.winning_trades / metrics.losing_trades

    def calculate_profit_per_trade(self, metrics: PerformanceMetrics) -> float:
        if metrics.total_trades == 0:
            return 0.0
        return metrics.total_pnl / metrics.total_trades

    @staticmethod
    def format_duration(duration: pd.Timedelta) -> str:
        """Render a duration as e.g. ``"2d 3h"``, ``"4h 10m"`` or ``"45s"``."""
        seconds = int(pd.Timedelta(duration).total_seconds())
        minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
        if days > 0:
            return f"{days}d {hours % 24}h"
        if hours > 0:
            return f"{hours}h {minutes % 60}m"
        if minutes > 0:
            return f"{minutes}m {seconds % 60}s"
        return f"{seconds}s"
