"""
Simple moving average crossover strategy.

Buys when the fast average crosses above the slow one (golden cross)
and sells the position when it crosses back below (death cross).
Reads the ``ma_fast`` and ``ma_slow`` outputs of the
``moving-averages`` indicator.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..data.candles import Candle
from ..execution.models import OrderSignal
from .base import BaseStrategy


logger = logging.getLogger(__name__)


class SMACrossoverStrategy(BaseStrategy):
    """Trend-following moving average crossover."""

    def __init__(self, symbol: str, params: Optional[Dict[str, Any]] = None) -> None:
        params = dict(params or {})
        self.fast_period = int(params.setdefault("fast_period", 50))
        self.slow_period = int(params.setdefault("slow_period", 200))
        self.quantity = float(params.setdefault("quantity", 1.0))
        if self.fast_period < 2 or self.slow_period < 2:
            raise ValueError("MA periods must be at least 2")
        if self.fast_period >= self.slow_period:
            raise ValueError("Fast period must be less than slow period for SMA crossover strategy")
        super().__init__(symbol, f"SMA Crossover ({self.fast_period}/{self.slow_period})", params)
        self.description = (
            f"Moving average crossover strategy using {self.fast_period} and {self.slow_period} period SMAs"
        )
        self.previous_fast: Optional[float] = None
        self.previous_slow: Optional[float] = None
        self.in_position = False

    def required_indicators(self) -> List[str]:
        return ["moving-averages"]

    def indicator_params(self) -> Dict[str, Dict[str, int]]:
        return {"moving-averages": {"fast": self.fast_period, "slow": self.slow_period}}

    def analyze(self, candle: Candle) -> Optional[OrderSignal]:
        fast = candle.indicator("ma_fast")
        slow = candle.indicator("ma_slow")
        if fast is None or slow is None:
            return None
        if self.previous_fast is None or self.previous_slow is None:
            self.previous_fast, self.previous_slow = fast, slow
            return None

        signal: Optional[OrderSignal] = None
        if self.is_bullish_crossover(fast, self.previous_fast, slow, self.previous_slow):
            logger.debug("Golden cross at %s (fast=%.4f slow=%.4f)", candle.timestamp, fast, slow)
            if not self.in_position:
                signal = OrderSignal(side="buy", type="market", quantity=self.quantity)
                self.in_position = True
        elif self.is_bearish_crossover(fast, self.previous_fast, slow, self.previous_slow):
            logger.debug("Death cross at %s (fast=%.4f slow=%.4f)", candle.timestamp, fast, slow)
            if self.in_position:
                signal = OrderSignal(side="sell", type="market", quantity=self.quantity)
                self.in_position = False

        self.previous_fast, self.previous_slow = fast, slow
        return signal

    def reset(self) -> None:
        super().reset()
        self.previous_fast = None
        self.previous_slow = None
        self.in_position = False
