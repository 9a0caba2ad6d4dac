import os
import sys
import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tradesim.data.candles import Candle
from tradesim.strategy.intraday_breakout import IntradayBreakoutStrategy, IntradayState
from tradesim.utils.timeutils import is_in_session, parse_time_str

import unittest

TZ = "Europe/Brussels"


def _state() -> IntradayState:
    # Set previous high/low to ensure there would be a signal if not for the session filter
    return IntradayState(high=1.0, low=1.0, current_date=pd.Timestamp("2024-01-01", tz=TZ).date())


class TestSessionFilter(unittest.TestCase):
    def setUp(self) -> None:
        # Restrict session to 06:00–20:00
        self.strategy = IntradayBreakoutStrategy(
            "TEST", {"session_start": "06:00", "session_end": "20:00", "timezone": TZ}
        )

    def test_session_filter_outside_hours(self) -> None:
        # Bar ends at 22:00, outside session end
        candle = Candle(timestamp=pd.Timestamp("2024-01-01 22:00", tz=TZ), open=1.0, high=1.5, low=1.0, close=1.2)
        signal, _ = self.strategy.evaluate_bar(candle, _state())
        self.assertIsNone(signal, "Trades should not be taken outside the configured session")

    def test_session_end_is_exclusive(self) -> None:
        candle = Candle(timestamp=pd.Timestamp("2024-01-01 20:00", tz=TZ), open=1.0, high=1.5, low=1.0, close=1.2)
        signal, _ = self.strategy.evaluate_bar(candle, _state())
        self.assertIsNone(signal)

    def test_signal_inside_session(self) -> None:
        candle = Candle(timestamp=pd.Timestamp("2024-01-01 06:00", tz=TZ), open=1.0, high=1.0, low=0.8, close=0.9)
        signal, _ = self.strategy.evaluate_bar(candle, _state())
        self.assertEqual(signal, 'short')

    def test_is_in_session_converts_timezone(self) -> None:
        start, end = parse_time_str("06:00"), parse_time_str("20:00")
        # 05:30 UTC is 06:30 in Brussels during winter.
        self.assertTrue(is_in_session(pd.Timestamp("2024-01-01 05:30", tz="UTC"), start, end, TZ))
        self.assertFalse(is_in_session(pd.Timestamp("2024-01-01 04:30", tz="UTC"), start, end, TZ))


if __name__ == '__main__':
    unittest.main()
