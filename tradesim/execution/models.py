"""
Order, trade, position and account models.

These dataclasses represent the objects passed between strategies,
the trading engine and the analytics layer.  Orders, signals, fills
and completed round trips are frozen once created; `Position` is the
only mutable record and is owned by the position manager.

Validation happens at construction time so that a malformed signal
never reaches the execution logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pandas as pd

SIDES = ("buy", "sell")
ORDER_TYPES = ("market", "limit", "stop", "stop_limit")
POSITION_SIDES = ("long", "short")


class TradingError(Exception):
    """Base class for errors raised by the trading engine."""


class OrderValidationError(TradingError, ValueError):
    """Raised when an order or signal is malformed."""


class NoHistoricalDataError(TradingError):
    """Raised when a backtest has no candles to work with."""


def new_id(prefix: str) -> str:
    """Return a short unique identifier such as ``trade-1f3a9c0b2d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _validate_order_fields(
    side: str,
    order_type: str,
    quantity: float,
    price: Optional[float],
    stop_price: Optional[float],
) -> None:
    if side not in SIDES:
        raise OrderValidationError(f"Unknown order side: {side!r}")
    if order_type not in ORDER_TYPES:
        raise OrderValidationError(f"Unknown order type: {order_type!r}")
    if quantity is None or quantity <= 0:
        raise OrderValidationError(f"Order quantity must be positive, got {quantity!r}")
    if order_type == "limit" and price is None:
        raise OrderValidationError("Limit orders require a limit price")
    if order_type == "stop" and stop_price is None and price is None:
        raise OrderValidationError("Stop orders require a stop price")
    if order_type == "stop_limit" and (price is None or stop_price is None):
        raise OrderValidationError("Stop-limit orders require both a stop price and a limit price")


@dataclass(frozen=True)
class OrderSignal:
    """A strategy's request to trade, before it becomes an `Order`.

    The fields required depend on `type`: ``limit`` needs `price`,
    ``stop`` needs `stop_price`, ``stop_limit`` needs both.
    """
    side: str
    type: str = "market"
    quantity: float = 1.0
    price: Optional[float] = None
    stop_price: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        _validate_order_fields(self.side, self.type, self.quantity, self.price, self.stop_price)


@dataclass(frozen=True)
class Order:
    """An order submitted to the trading engine."""
    symbol: str
    side: str  # 'buy' or 'sell'
    type: str  # 'market', 'limit', 'stop' or 'stop_limit'
    quantity: float
    price: Optional[float] = None
    stop_price: Optional[float] = None
    status: str = "pending"
    created_at: Optional[pd.Timestamp] = None
    id: str = field(default_factory=lambda: new_id("order"))
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.symbol:
            raise OrderValidationError("Order symbol must not be empty")
        _validate_order_fields(self.side, self.type, self.quantity, self.price, self.stop_price)

    @property
    def trigger_price(self) -> Optional[float]:
        """Stop trigger; plain stop orders may carry it in `price`."""
        return self.stop_price if self.stop_price is not None else self.price

    @classmethod
    def from_signal(
        cls,
        signal: OrderSignal,
        symbol: str,
        created_at: Optional[pd.Timestamp] = None,
    ) -> "Order":
        return cls(
            symbol=symbol,
            side=signal.side,
            type=signal.type,
            quantity=signal.quantity,
            price=signal.price,
            stop_price=signal.stop_price,
            created_at=created_at,
            metadata=signal.metadata,
        )


@dataclass(frozen=True)
class Trade:
    """A single fill produced by the order executor."""
    order_id: str
    symbol: str
    side: str
    quantity: float
    price: float
    timestamp: pd.Timestamp
    type: str
    fees: float = 0.0
    id: str = field(default_factory=lambda: new_id("trade"))
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class Position:
    """Net open exposure to a symbol."""
    symbol: str
    quantity: float
    side: str  # 'long' or 'short'
    avg_entry_price: float
    current_price: float
    entry_time: pd.Timestamp
    cost_basis: float
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0


@dataclass(frozen=True)
class PnLResult:
    """Mark-to-market valuation of a position at a given price."""
    unrealized_pnl: float
    unrealized_pnl_percent: float
    position_value: float
    cost_basis: float


@dataclass(frozen=True)
class CompletedTrade:
    """A closed round trip with realised P&L."""
    symbol: str
    side: str  # side of the position that was closed
    quantity: float
    entry_price: float
    exit_price: float
    pnl: float
    pnl_percent: float
    entry_time: pd.Timestamp
    exit_time: pd.Timestamp
    duration: pd.Timedelta
    id: str = field(default_factory=lambda: new_id("trade"))


@dataclass(frozen=True)
class TradingAccount:
    """Snapshot of the simulated cash account."""
    balance: float
    starting_balance: float
    equity: float
    buying_power: float
    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0
