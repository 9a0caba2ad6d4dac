"""
RSI mean reversion strategy.

Buys when RSI crosses back above the oversold level and sells when it
crosses back below the overbought level.  Optional stop-loss and
take-profit exits are measured from the fill price reported through
`on_trade`, so position state follows actual fills rather than
submitted signals.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..data.candles import Candle
from ..execution.models import OrderSignal, Trade
from .base import BaseStrategy


class RSIReversionStrategy(BaseStrategy):
    """Mean reversion on RSI extremes."""

    def __init__(self, symbol: str, params: Optional[Dict[str, Any]] = None) -> None:
        params = dict(params or {})
        self.period = int(params.setdefault("period", 14))
        self.oversold = float(params.setdefault("oversold", 30.0))
        self.overbought = float(params.setdefault("overbought", 70.0))
        self.quantity = float(params.setdefault("quantity", 1.0))
        self.stop_loss_pct: Optional[float] = params.get("stop_loss_pct")
        self.take_profit_pct: Optional[float] = params.get("take_profit_pct")
        if self.oversold >= self.overbought:
            raise ValueError("Oversold level must be less than overbought level")
        if self.oversold < 0 or self.overbought > 100:
            raise ValueError("RSI levels must be between 0 and 100")
        if self.period < 2:
            raise ValueError("RSI period must be at least 2")
        super().__init__(symbol, f"RSI Mean Reversion ({self.period})", params)
        self.previous_rsi: Optional[float] = None
        self.in_position = False
        self.entry_price: Optional[float] = None

    def required_indicators(self) -> List[str]:
        return ["rsi"]

    def indicator_params(self) -> Dict[str, Dict[str, int]]:
        return {"rsi": {"period": self.period}}

    def on_trade(self, trade: Trade) -> None:
        if trade.side == "buy":
            self.in_position = True
            self.entry_price = trade.price
        else:
            self.in_position = False
            self.entry_price = None

    def _exit(self) -> OrderSignal:
        return OrderSignal(side="sell", type="market", quantity=self.quantity)

    def analyze(self, candle: Candle) -> Optional[OrderSignal]:
        current = candle.indicator("rsi")
        if current is None:
            return None

        if self.in_position and self.entry_price:
            stopped = self.stop_loss_pct is not None and candle.close <= self.entry_price * (1 - self.stop_loss_pct / 100)
            target = self.take_profit_pct is not None and candle.close >= self.entry_price * (1 + self.take_profit_pct / 100)
            if stopped or target:
                self.previous_rsi = current
                return self._exit()

        if self.previous_rsi is None:
            self.previous_rsi = current
            return None

        signal: Optional[OrderSignal] = None
        if self.crosses_above(current, self.previous_rsi, self.oversold):
            if not self.in_position:
                signal = OrderSignal(side="buy", type="market", quantity=self.quantity)
        elif self.crosses_below(current, self.previous_rsi, self.overbought):
            if self.in_position:
                signal = self._exit()

        self.previous_rsi = current
        return signal

    def is_oversold(self, value: Optional[float] = None) -> bool:
        value = self.previous_rsi if value is None else value
        return self.is_below(value, self.oversold)

    def is_overbought(self, value: Optional[float] = None) -> bool:
        value = self.previous_rsi if value is None else value
        return self.is_above(value, self.overbought)

    def reset(self) -> None:
        super().reset()
        self.previous_rsi = None
        self.in_position = False
        self.entry_price = None
