"""
Engine events.

Each trading engine owns its own `EventEmitter`; there is no shared,
process-wide bus.  Listeners are registered per event name and are
called synchronously, in registration order, in the exact order the
engine emits events.  Payloads are small frozen dataclasses so that
listeners receive a typed record rather than an untyped dictionary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .models import CompletedTrade, Order, PnLResult, Position, Trade, TradingAccount

TRADE_EXECUTED = "trade-executed"
ORDER_REJECTED = "order-rejected"
POSITION_CLOSED = "position-closed"
POSITION_UPDATED = "position-updated"
ACCOUNT_UPDATED = "account-updated"
PROGRESS = "progress"
DATA_LOADED = "data-loaded"
RESET = "reset"

EVENT_NAMES = (
    TRADE_EXECUTED,
    ORDER_REJECTED,
    POSITION_CLOSED,
    POSITION_UPDATED,
    ACCOUNT_UPDATED,
    PROGRESS,
    DATA_LOADED,
    RESET,
)

Listener = Callable[..., None]


@dataclass(frozen=True)
class TradeExecutedEvent:
    trade: Trade
    position: Position


@dataclass(frozen=True)
class OrderRejectedEvent:
    order: Optional[Order]
    reason: str


@dataclass(frozen=True)
class PositionUpdatedEvent:
    symbol: str
    position: Position
    pnl: PnLResult


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    percent: float
    timestamp: pd.Timestamp


@dataclass(frozen=True)
class DataLoadedEvent:
    symbol: str
    candle_count: int
    start_date: pd.Timestamp
    end_date: pd.Timestamp


# For reference when subscribing: the payload type passed for each event.
# `position-closed` carries a CompletedTrade, `account-updated` a
# TradingAccount snapshot and `reset` no payload at all.
EVENT_PAYLOADS: Dict[str, Any] = {
    TRADE_EXECUTED: TradeExecutedEvent,
    ORDER_REJECTED: OrderRejectedEvent,
    POSITION_CLOSED: CompletedTrade,
    POSITION_UPDATED: PositionUpdatedEvent,
    ACCOUNT_UPDATED: TradingAccount,
    PROGRESS: ProgressEvent,
    DATA_LOADED: DataLoadedEvent,
    RESET: None,
}


class EventEmitter:
    """Minimal synchronous observer keyed by event name."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, callback: Listener) -> None:
        """Register `callback` for `event`."""
        if event not in EVENT_NAMES:
            raise ValueError(f"Unknown event: {event!r}")
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Listener) -> None:
        """Unregister `callback`; unknown callbacks are ignored."""
        callbacks = self._listeners.get(event)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, *args: Any) -> None:
        # Copy so that a listener may unsubscribe itself while being called.
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
