"""
Intraday breakout strategy implementation.

This strategy tracks the highest high and lowest low of each trading
day and signals long or short when the current bar's high or low
breaks those levels.  It does not act when both levels break on the
same bar and honours a configured trading session window.

A long breakout opens a long position (or covers a short one); a
short breakout exits a long position and, when shorting is allowed,
opens a short one from flat.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

from ..data.candles import Candle
from ..execution.models import OrderSignal, Trade
from ..utils.timeutils import is_in_session, parse_time_str, to_timezone
from .base import BaseStrategy


@dataclass
class IntradayState:
    """Holds intraday high/low levels and last processed date."""
    high: Optional[float] = None
    low: Optional[float] = None
    current_date: Optional[date] = None


class IntradayBreakoutStrategy(BaseStrategy):
    """Generate trading signals based on intraday breakout logic."""

    def __init__(self, symbol: str, params: Optional[Dict[str, Any]] = None) -> None:
        params = dict(params or {})
        params.setdefault("session_start", "06:00")
        params.setdefault("session_end", "20:00")
        params.setdefault("timezone", "Europe/Brussels")
        super().__init__(symbol, "Intraday Breakout", params)
        self.timezone: str = params["timezone"]
        self.session_start = parse_time_str(params["session_start"])
        self.session_end = parse_time_str(params["session_end"])
        self.quantity = float(params.get("quantity", 1.0))
        self.allow_short = bool(params.get("allow_short", False))
        self.state = IntradayState()
        self.net_quantity = 0.0

    def evaluate_bar(self, candle: Candle, state: IntradayState) -> Tuple[Optional[str], IntradayState]:
        """Evaluate a single bar and update the intraday state.

        Parameters
        ----------
        candle : Candle
            The bar to evaluate; its timestamp is the bar close.
        state : IntradayState
            Previous intraday high/low and date.

        Returns
        -------
        signal : str or None
            `'long'`, `'short'`, or `None` if no trade should be taken.
        state : IntradayState
            Updated intraday state for subsequent bars.
        """
        # Reset intraday levels if we are on a new day
        local_date = to_timezone(candle.timestamp, self.timezone).date()
        if state.current_date != local_date:
            state.high = None
            state.low = None
            state.current_date = local_date

        # Evaluate signals using levels from previous bars
        long_signal = state.high is not None and candle.high > state.high
        short_signal = state.low is not None and candle.low < state.low

        signal: Optional[str] = None
        if long_signal and not short_signal:
            signal = 'long'
        elif short_signal and not long_signal:
            signal = 'short'

        # Update intraday high and low with current bar
        if state.high is None or candle.high > state.high:
            state.high = float(candle.high)
        if state.low is None or candle.low < state.low:
            state.low = float(candle.low)

        if not is_in_session(candle.timestamp, self.session_start, self.session_end, self.timezone):
            signal = None

        return signal, state

    def analyze(self, candle: Candle) -> Optional[OrderSignal]:
        direction, self.state = self.evaluate_bar(candle, self.state)
        if direction == 'long':
            if self.net_quantity < 0:
                return OrderSignal(side="buy", quantity=-self.net_quantity)
            if self.net_quantity == 0:
                return OrderSignal(side="buy", quantity=self.quantity)
        elif direction == 'short':
            if self.net_quantity > 0:
                return OrderSignal(side="sell", quantity=self.net_quantity)
            if self.net_quantity == 0 and self.allow_short:
                return OrderSignal(side="sell", quantity=self.quantity)
        return None

    def on_trade(self, trade: Trade) -> None:
        self.net_quantity += trade.quantity if trade.side == "buy" else -trade.quantity

    def reset(self) -> None:
        super().reset()
        self.state = IntradayState()
        self.net_quantity = 0.0
