import os
import sys
import pandas as pd

# Ensure the project root (one level above `tests`) is on sys.path so that
# `tradesim` can be imported when running tests directly via `python`.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tradesim.data.candles import Candle
from tradesim.strategy.intraday_breakout import IntradayBreakoutStrategy, IntradayState

import unittest

TZ = "Europe/Brussels"


def _bar(ts: str, high: float, low: float) -> Candle:
    return Candle(timestamp=pd.Timestamp(ts, tz=TZ), open=1.0, high=high, low=low, close=(high + low) / 2)


class TestIntradayLevels(unittest.TestCase):
    def test_intraday_levels_reset_at_midnight(self) -> None:
        strategy = IntradayBreakoutStrategy("TEST", {"timezone": TZ})
        state = IntradayState()

        # First bar on day 1
        signal1, state = strategy.evaluate_bar(_bar("2024-01-01 05:00", 2.0, 0.5), state)
        self.assertTrue(state.high == 2.0 and state.low == 0.5)
        self.assertIsNone(signal1)

        # Second bar on next day – intraday levels should reset
        signal2, state = strategy.evaluate_bar(_bar("2024-01-02 05:00", 1.5, 0.6), state)
        # After reset, intraday high/low are equal to this bar’s high/low
        self.assertEqual(state.high, 1.5)
        self.assertEqual(state.low, 0.6)
        self.assertIsNone(signal2)

    def test_new_day_follows_configured_timezone(self) -> None:
        strategy = IntradayBreakoutStrategy("TEST", {"timezone": TZ})
        state = IntradayState()
        # 23:30 UTC on Jan 1 is already Jan 2 in Brussels.
        candle = Candle(timestamp=pd.Timestamp("2024-01-01 23:30", tz="UTC"), open=1.0, high=1.1, low=0.9, close=1.0)
        _, state = strategy.evaluate_bar(candle, state)
        self.assertEqual(str(state.current_date), "2024-01-02")

    def test_levels_widen_within_the_day(self) -> None:
        strategy = IntradayBreakoutStrategy("TEST", {"timezone": TZ})
        state = IntradayState()
        _, state = strategy.evaluate_bar(_bar("2024-01-01 07:00", 1.2, 1.0), state)
        signal, state = strategy.evaluate_bar(_bar("2024-01-01 08:00", 1.3, 1.1), state)
        self.assertEqual(signal, 'long')
        self.assertEqual(state.high, 1.3)
        self.assertEqual(state.low, 1.0)


if __name__ == '__main__':
    unittest.main()
