import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import json
import tempfile

import pandas as pd

from tradesim.data.candles import Candle
from tradesim.execution.backtest_exec import BacktestingEngine
from tradesim.execution.models import OrderSignal
from tradesim.reporting.report import generate_backtest_report, result_to_dict, trades_frame
from tradesim.strategy.base import BaseStrategy

import unittest

T0 = pd.Timestamp("2024-01-01 00:00", tz="UTC")


class BuyThenSell(BaseStrategy):
    def __init__(self) -> None:
        super().__init__("TEST", "Buy then sell")
        self.count = 0

    def analyze(self, candle):
        self.count += 1
        if self.count == 1:
            return OrderSignal(side="buy", quantity=2)
        if self.count == 3:
            return OrderSignal(side="sell", quantity=2)
        return None

    def reset(self) -> None:
        super().reset()
        self.count = 0


def _result():
    engine = BacktestingEngine(1_000.0)
    candles = [
        Candle(timestamp=T0 + pd.Timedelta(hours=i), open=c, high=c, low=c, close=c)
        for i, c in enumerate([100.0, 105.0, 110.0, 108.0])
    ]
    engine.set_historical_data("TEST", candles)
    return engine.run_backtest(BuyThenSell())


class TestReport(unittest.TestCase):
    def test_trades_frame(self) -> None:
        df = trades_frame(_result())
        self.assertEqual(len(df), 1)
        self.assertEqual(df.loc[0, "pnl"], 20.0)
        self.assertEqual(df.loc[0, "side"], "long")

    def test_result_to_dict_is_json_ready(self) -> None:
        summary = result_to_dict(_result())
        text = json.dumps(summary)
        self.assertIn('"strategy": "Buy then sell"', text)
        self.assertEqual(summary["metadata"]["start_date"], T0.isoformat())
        self.assertEqual(summary["account"]["final_balance"], 1_020.0)
        self.assertEqual(summary["metrics"]["avg_trade_duration"], "2h 0m")
        self.assertEqual(summary["trades"][0]["duration_seconds"], 7200.0)
        self.assertEqual(len(summary["equity_curve"]), 2)

    def test_generate_backtest_report_writes_files(self) -> None:
        result = _result()
        with tempfile.TemporaryDirectory() as tmp:
            out_dir = os.path.join(tmp, "report")
            generate_backtest_report(result, out_dir=out_dir)
            for name in ("trades.csv", "equity_curve.csv", "drawdown_curve.csv", "summary.json", "equity_curve.png"):
                self.assertTrue(os.path.exists(os.path.join(out_dir, name)), name)
            equity = pd.read_csv(os.path.join(out_dir, "equity_curve.csv"))
            self.assertEqual(equity["equity"].tolist(), [1_000.0, 1_020.0])


if __name__ == '__main__':
    unittest.main()
