import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import math
import statistics

import pandas as pd

from tradesim.execution.models import CompletedTrade, TradingAccount
from tradesim.reporting.metrics import PerformanceAnalytics, PerformanceMetrics

import unittest

T0 = pd.Timestamp("2024-01-01 00:00", tz="UTC")


def _completed(i: int, pnl: float, pnl_percent: float, hours: int = 2) -> CompletedTrade:
    entry = T0 + pd.Timedelta(days=i)
    return CompletedTrade(
        symbol="TEST",
        side="long",
        quantity=1,
        entry_price=100.0,
        exit_price=100.0 + pnl,
        pnl=pnl,
        pnl_percent=pnl_percent,
        entry_time=entry,
        exit_time=entry + pd.Timedelta(hours=hours),
        duration=pd.Timedelta(hours=hours),
    )


def _account(total_pnl: float, starting: float = 1_000.0) -> TradingAccount:
    return TradingAccount(
        balance=starting + total_pnl,
        starting_balance=starting,
        equity=starting + total_pnl,
        buying_power=starting + total_pnl,
        total_pnl=total_pnl,
        total_pnl_percent=total_pnl / starting * 100,
    )


class TestPerformanceAnalytics(unittest.TestCase):
    def setUp(self) -> None:
        self.analytics = PerformanceAnalytics()
        self.trades = [
            _completed(0, 100.0, 10.0, hours=1),
            _completed(1, -50.0, -5.0, hours=2),
            _completed(2, 200.0, 20.0, hours=3),
        ]

    def test_empty_trades_give_zero_metrics(self) -> None:
        metrics = self.analytics.calculate_metrics([], _account(0.0))
        self.assertEqual(metrics, PerformanceMetrics())
        self.assertEqual(metrics.avg_trade_duration, pd.Timedelta(0))
        self.assertEqual(self.analytics.generate_equity_curve([], 1_000.0), [])
        self.assertEqual(self.analytics.calculate_drawdown_curve([], 1_000.0), [])

    def test_summary_statistics(self) -> None:
        m = self.analytics.calculate_metrics(self.trades, _account(250.0))
        self.assertEqual(m.total_trades, 3)
        self.assertEqual(m.winning_trades, 2)
        self.assertEqual(m.losing_trades, 1)
        self.assertAlmostEqual(m.win_rate, 200 / 3)
        self.assertAlmostEqual(m.avg_win, 150.0)
        self.assertAlmostEqual(m.avg_loss, 50.0)
        self.assertAlmostEqual(m.profit_factor, 3.0)
        self.assertAlmostEqual(m.total_pnl, 250.0)
        self.assertAlmostEqual(m.total_pnl_percent, 25.0)
        self.assertEqual(m.largest_win, 200.0)
        self.assertEqual(m.largest_loss, -50.0)
        self.assertAlmostEqual(m.expectancy, 250 / 3)
        self.assertEqual(m.avg_trade_duration, pd.Timedelta(hours=2))

    def test_breakeven_trades_count_as_neither(self) -> None:
        m = self.analytics.calculate_metrics([_completed(0, 0.0, 0.0)], _account(0.0))
        self.assertEqual(m.total_trades, 1)
        self.assertEqual(m.winning_trades, 0)
        self.assertEqual(m.losing_trades, 0)
        self.assertEqual(m.profit_factor, 0.0)

    def test_sharpe_ratio(self) -> None:
        returns = [10.0, -5.0, 20.0]
        expected = statistics.mean(returns) / statistics.pstdev(returns)
        self.assertAlmostEqual(self.analytics.calculate_sharpe_ratio(self.trades), expected)

    def test_sharpe_ratio_degenerate_cases(self) -> None:
        self.assertEqual(self.analytics.calculate_sharpe_ratio(self.trades[:1]), 0.0)
        same = [_completed(0, 10.0, 1.0), _completed(1, 10.0, 1.0)]
        self.assertEqual(self.analytics.calculate_sharpe_ratio(same), 0.0)

    def test_max_drawdown(self) -> None:
        # Balance path 1000 -> 1100 -> 1050 -> 1250.
        self.assertAlmostEqual(self.analytics.calculate_max_drawdown(self.trades, 1_000.0), 50 / 1100 * 100)
        self.assertEqual(self.analytics.calculate_max_drawdown([], 1_000.0), 0.0)

    def test_equity_curve(self) -> None:
        curve = self.analytics.generate_equity_curve(self.trades, 1_000.0)
        self.assertEqual(len(curve), len(self.trades) + 1)
        self.assertEqual(curve[0].timestamp, self.trades[0].entry_time)
        self.assertEqual([p.equity for p in curve], [1_000.0, 1_100.0, 1_050.0, 1_250.0])
        self.assertEqual(curve[-1].timestamp, self.trades[-1].exit_time)

    def test_drawdown_curve(self) -> None:
        curve = self.analytics.calculate_drawdown_curve(self.trades, 1_000.0)
        self.assertEqual(len(curve), len(self.trades) + 1)
        values = [p.drawdown_percent for p in curve]
        self.assertEqual(values[0], 0.0)
        self.assertEqual(values[1], 0.0)
        self.assertAlmostEqual(values[2], 50 / 1100 * 100)
        self.assertEqual(values[3], 0.0)

    def test_ratios(self) -> None:
        m = self.analytics.calculate_metrics(self.trades, _account(250.0))
        self.assertAlmostEqual(self.analytics.calculate_win_loss_ratio(m), 2.0)
        self.assertAlmostEqual(self.analytics.calculate_profit_per_trade(m), 250 / 3)
        self.assertTrue(math.isinf(self.analytics.calculate_win_loss_ratio(PerformanceMetrics())))
        self.assertEqual(self.analytics.calculate_profit_per_trade(PerformanceMetrics()), 0.0)

    def test_format_duration(self) -> None:
        fmt = PerformanceAnalytics.format_duration
        self.assertEqual(fmt(pd.Timedelta(days=2, hours=3)), "2d 3h")
        self.assertEqual(fmt(pd.Timedelta(hours=4, minutes=10)), "4h 10m")
        self.assertEqual(fmt(pd.Timedelta(minutes=5, seconds=3)), "5m 3s")
        self.assertEqual(fmt(pd.Timedelta(seconds=45)), "45s")


if __name__ == '__main__':
    unittest.main()
