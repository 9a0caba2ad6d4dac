"""Lookup of the bundled strategies by configuration name."""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

from .base import BaseStrategy
from .intraday_breakout import IntradayBreakoutStrategy
from .rsi_reversion import RSIReversionStrategy
from .sma_crossover import SMACrossoverStrategy

STRATEGIES: Dict[str, Type[BaseStrategy]] = {
    "sma_crossover": SMACrossoverStrategy,
    "rsi_reversion": RSIReversionStrategy,
    "intraday_breakout": IntradayBreakoutStrategy,
}


def build_strategy(name: str, symbol: str, params: Optional[Dict[str, Any]] = None) -> BaseStrategy:
    cls = STRATEGIES.get(name)
    if cls is None:
        raise ValueError(f"Unknown strategy: {name!r}. Available: {sorted(STRATEGIES)}")
    return cls(symbol, params)
