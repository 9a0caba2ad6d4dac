"""
Strategy contract and shared helpers.

The backtesting engine needs only `name`, `symbol` and
`on_candle(candle)`; the `on_start`, `on_trade` and `on_end` hooks
are optional.  `BaseStrategy` supplies no-op hooks, remembers the
previous candle and offers the crossover predicates most indicator
strategies are built from.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from ..data.candles import Candle
from ..execution.models import OrderSignal, Trade, TradingAccount
from ..reporting.metrics import PerformanceMetrics


class Strategy(Protocol):
    name: str
    symbol: str

    def on_candle(self, candle: Candle) -> Optional[OrderSignal]:
        ...


class BaseStrategy:
    """Base class for strategies driven by `BacktestingEngine`."""

    description: str = ""

    def __init__(self, symbol: str, name: str, params: Optional[Dict[str, Any]] = None) -> None:
        self.symbol = symbol
        self.name = name
        self.params: Dict[str, Any] = dict(params or {})
        self.previous_candle: Optional[Candle] = None

    def on_candle(self, candle: Candle) -> Optional[OrderSignal]:
        signal = self.analyze(candle)
        self.previous_candle = candle
        return signal

    def analyze(self, candle: Candle) -> Optional[OrderSignal]:
        """Strategy-specific logic: return a signal or ``None``."""
        raise NotImplementedError

    def required_indicators(self) -> List[str]:
        """Indicator ids the data provider must attach to candles."""
        return []

    def on_start(self, account: TradingAccount) -> None:
        self.reset()

    def on_trade(self, trade: Trade) -> None:
        pass

    def on_end(self, metrics: PerformanceMetrics) -> None:
        pass

    def reset(self) -> None:
        self.previous_candle = None

    def previous_indicator(self, name: str) -> Optional[float]:
        if self.previous_candle is None:
            return None
        return self.previous_candle.indicator(name)

    @staticmethod
    def is_bullish_crossover(
        current: Optional[float],
        previous: Optional[float],
        reference: Optional[float],
        previous_reference: Optional[float],
    ) -> bool:
        """`current` moved from at-or-below `reference` to above it."""
        if None in (current, previous, reference, previous_reference):
            return False
        return current > reference and previous <= previous_reference

    @staticmethod
    def is_bearish_crossover(
        current: Optional[float],
        previous: Optional[float],
        reference: Optional[float],
        previous_reference: Optional[float],
    ) -> bool:
        if None in (current, previous, reference, previous_reference):
            return False
        return current < reference and previous >= previous_reference

    @staticmethod
    def is_above(value: Optional[float], threshold: float) -> bool:
        return value is not None and value > threshold

    @staticmethod
    def is_below(value: Optional[float], threshold: float) -> bool:
        return value is not None and value < threshold

    @staticmethod
    def crosses_above(current: Optional[float], previous: Optional[float], threshold: float) -> bool:
        if current is None or previous is None:
            return False
        return current > threshold and previous <= threshold

    @staticmethod
    def crosses_below(current: Optional[float], previous: Optional[float], threshold: float) -> bool:
        if current is None or previous is None:
            return False
        return current < threshold and previous >= threshold
