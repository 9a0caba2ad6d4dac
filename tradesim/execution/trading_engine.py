"""
Trading engine core.

`TradingEngine` composes the order executor, the position manager and
the account manager, and turns submitted orders into fills, position
changes and account updates.  Prices come from an injected
`PriceSource`, so the same engine serves backtests (prices from the
candle being processed) and paper trading or tests (prices set by the
caller).

Order life cycle: ``submitted -> priced -> filled | rejected``.
Rejections are reported through the ``order-rejected`` event and a
``None`` return value; they are never raised.  Buys are funded at the
worst price they can fill at, so a fill never overdraws the account.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Protocol

import pandas as pd

from .account import AccountManager
from .events import (
    ACCOUNT_UPDATED,
    ORDER_REJECTED,
    POSITION_CLOSED,
    POSITION_UPDATED,
    RESET,
    TRADE_EXECUTED,
    EventEmitter,
    OrderRejectedEvent,
    PositionUpdatedEvent,
    TradeExecutedEvent,
)
from .models import CompletedTrade, Order, Position, Trade, TradingAccount
from .order_executor import OrderExecutor
from .positions import PositionManager


logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Where the engine gets the price and time of the current instant."""

    def price(self, symbol: str) -> float:
        """Current price for `symbol`, or 0 when unavailable."""
        ...

    def now(self) -> pd.Timestamp:
        ...


class StaticPriceSource:
    """Price source backed by a dictionary the caller updates."""

    def __init__(self, prices: Optional[Dict[str, float]] = None, clock: Optional[pd.Timestamp] = None) -> None:
        self.prices: Dict[str, float] = dict(prices or {})
        self.clock = clock

    def set_price(self, symbol: str, price: float) -> None:
        self.prices[symbol] = price

    def price(self, symbol: str) -> float:
        return self.prices.get(symbol, 0.0)

    def now(self) -> pd.Timestamp:
        return self.clock if self.clock is not None else pd.Timestamp.now(tz="UTC")


class TradingEngine(EventEmitter):
    """Execute orders and keep account, positions and trade log in sync."""

    def __init__(self, starting_balance: float, price_source: Optional[PriceSource] = None) -> None:
        super().__init__()
        self.price_source: PriceSource = price_source if price_source is not None else StaticPriceSource()
        self.order_executor = OrderExecutor()
        self.position_manager = PositionManager()
        self.account_manager = AccountManager(starting_balance)
        self._trades: List[CompletedTrade] = []

    def _reject(self, order: Optional[Order], reason: str) -> None:
        logger.warning(
            "Order rejected (%s %s %s): %s",
            order.side if order else "?",
            order.quantity if order else "?",
            order.symbol if order else "?",
            reason,
        )
        self.emit(ORDER_REJECTED, OrderRejectedEvent(order=order, reason=reason))

    def execute_order(self, order: Order) -> Optional[Trade]:
        """Price, fund and fill `order`.

        Returns the fill, or ``None`` when the order was rejected or its
        type-specific condition was not met at the current price.
        Errors raised by event listeners after a fill propagate to the
        caller; the fill itself stands.
        """
        reserved_price: Optional[float] = None
        current_price: Optional[float] = None
        reason: Optional[str] = None
        trade: Optional[Trade] = None
        try:
            current_price = self.price_source.price(order.symbol)
            if not current_price:
                reason = "Price not available"
            else:
                if order.side == "buy":
                    funding_price = self._funding_price(order, current_price)
                    if self.account_manager.deduct_order_cost(order, funding_price):
                        reserved_price = funding_price
                    else:
                        reason = "Insufficient funds"
                if reason is None:
                    trade = self.order_executor.execute(order, current_price, self.price_source.now())
        except Exception as exc:
            logger.exception("Unexpected error while executing order %s", order.id)
            reason = str(exc) or type(exc).__name__

        if trade is None and reserved_price is not None:
            self.account_manager.release_order_cost(order, reserved_price)
        if reason is not None:
            self._reject(order, reason)
            return None
        if trade is None:
            logger.debug("%s %s order %s not filled at %s", order.type, order.side, order.id, current_price)
            return None
        return self._apply_fill(trade)

    @staticmethod
    def _funding_price(order: Order, current_price: float) -> float:
        """Price a buy is funded at: the worst price it can fill at now."""
        if order.type in ("limit", "stop_limit") and order.price is not None:
            return max(current_price, order.price)
        return current_price

    def _apply_fill(self, trade: Trade) -> Trade:
        before = self.position_manager.get_position(trade.symbol)
        position_before = replace(before) if before is not None else None

        position = self.position_manager.update_position(trade)
        if trade.side == "sell":
            self.account_manager.credit_order_proceeds(trade)

        completed: Optional[CompletedTrade] = None
        if self._closes(position_before, trade):
            completed = self._round_trip(position_before, trade)
            self._trades.append(completed)

        self.update_account_equity()
        logger.debug("Filled %s %s %s @ %s", trade.side, trade.quantity, trade.symbol, trade.price)
        self.emit(TRADE_EXECUTED, TradeExecutedEvent(trade=trade, position=position))
        if completed is not None:
            self.emit(POSITION_CLOSED, completed)
        self.emit(ACCOUNT_UPDATED, self.account_manager.account)
        return trade

    @staticmethod
    def _closes(position: Optional[Position], trade: Trade) -> bool:
        """True when `trade` fully closes or flips `position`."""
        if position is None:
            return False
        opposite = (position.side == "long") == (trade.side == "sell")
        return opposite and trade.quantity >= position.quantity

    @staticmethod
    def _round_trip(position: Position, trade: Trade) -> CompletedTrade:
        direction = 1 if position.side == "long" else -1
        entry = position.avg_entry_price
        return CompletedTrade(
            id=trade.id,
            symbol=trade.symbol,
            side=position.side,
            quantity=position.quantity,
            entry_price=entry,
            exit_price=trade.price,
            pnl=(trade.price - entry) * position.quantity * direction,
            pnl_percent=(trade.price - entry) / entry * 100 * direction if entry else 0.0,
            entry_time=position.entry_time,
            exit_time=trade.timestamp,
            duration=trade.timestamp - position.entry_time,
        )

    def close_position(self, symbol: str) -> Optional[CompletedTrade]:
        """Force-close the position for `symbol` at the current price."""
        position = self.position_manager.get_position(symbol)
        if position is None:
            return None

        exit_price = self.price_source.price(symbol)
        if not exit_price:
            logger.warning("No price for %s, closing at last mark %s", symbol, position.current_price)
            exit_price = position.current_price

        closed = self.position_manager.close_position(symbol, exit_price, self.price_source.now())
        if closed is None:
            return None

        # Settle cash as the equivalent market order would.
        if closed.side == "long":
            self.account_manager.add_to_balance(closed.quantity * exit_price)
        else:
            self.account_manager.deduct_from_balance(closed.quantity * exit_price)

        self._trades.append(closed)
        self.update_account_equity()
        self.emit(POSITION_CLOSED, closed)
        self.emit(ACCOUNT_UPDATED, self.account_manager.account)
        return closed

    def update_position_pnl(self, symbol: str, current_price: float) -> Optional[Position]:
        """Mark the position for `symbol` to `current_price`."""
        position = self.position_manager.update_position_price(symbol, current_price)
        if position is None:
            return None
        pnl = self.position_manager.calculate_pnl(position, current_price)
        self.emit(POSITION_UPDATED, PositionUpdatedEvent(symbol=symbol, position=position, pnl=pnl))
        self.update_account_equity()
        self.emit(ACCOUNT_UPDATED, self.account_manager.account)
        return position

    def update_account_equity(self) -> None:
        positions = self.position_manager.positions
        prices = {p.symbol: p.current_price for p in positions}
        self.account_manager.update_equity(positions, prices)

    def reset(self, starting_balance: Optional[float] = None) -> None:
        self.account_manager.reset(starting_balance)
        self.position_manager.clear()
        self._trades = []
        self.emit(RESET)

    @property
    def account(self) -> TradingAccount:
        return self.account_manager.account

    @property
    def positions(self) -> List[Position]:
        return self.position_manager.positions

    def get_position(self, symbol: str) -> Optional[Position]:
        return self.position_manager.get_position(symbol)

    @property
    def trades(self) -> List[CompletedTrade]:
        """Copy of the completed-trade log."""
        return list(self._trades)

    @property
    def position_count(self) -> int:
        return self.position_manager.position_count

    def has_position(self, symbol: str) -> bool:
        return self.position_manager.has_position(symbol)

    def has_sufficient_funds(self, quantity: float, price: float) -> bool:
        return self.account_manager.has_sufficient_funds(quantity, price)
