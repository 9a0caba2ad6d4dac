"""
Order fill decisions.

The executor is stateless: each check looks at one order and one
price sample and either returns the resulting `Trade` or ``None``.
Orders are evaluated once; an order whose condition is not met is
simply not filled and is never re-checked.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from .models import Order, Trade


class OrderExecutor:
    """Decide whether, and at what price, an order fills."""

    def execute(self, order: Order, current_price: float, timestamp: pd.Timestamp) -> Optional[Trade]:
        """Dispatch `order` to the check matching its type."""
        if order.type == "market":
            return self.execute_market_order(order, current_price, timestamp)
        if order.type == "limit":
            return self.check_limit_order(order, current_price, timestamp)
        if order.type == "stop":
            return self.check_stop_order(order, current_price, timestamp)
        if order.type == "stop_limit":
            return self.check_stop_limit_order(order, current_price, timestamp)
        return None

    def execute_market_order(self, order: Order, current_price: float, timestamp: pd.Timestamp) -> Trade:
        return self._fill(order, current_price, timestamp, "market")

    def check_limit_order(self, order: Order, current_price: float, timestamp: pd.Timestamp) -> Optional[Trade]:
        """Fill at the limit price when the market is at or through it."""
        if order.price is None:
            return None
        if order.side == "buy" and current_price <= order.price:
            return self._fill(order, order.price, timestamp, "limit")
        if order.side == "sell" and current_price >= order.price:
            return self._fill(order, order.price, timestamp, "limit")
        return None

    def check_stop_order(self, order: Order, current_price: float, timestamp: pd.Timestamp) -> Optional[Trade]:
        """Fill at market once the stop is touched.

        A buy stop triggers on a breakout above the stop, a sell stop
        on a drop to or below it.
        """
        stop = order.trigger_price
        if stop is None:
            return None
        if order.side == "buy" and current_price >= stop:
            return self._fill(order, current_price, timestamp, "stop")
        if order.side == "sell" and current_price <= stop:
            return self._fill(order, current_price, timestamp, "stop")
        return None

    def check_stop_limit_order(self, order: Order, current_price: float, timestamp: pd.Timestamp) -> Optional[Trade]:
        """Fill at the limit price when both the stop and limit hold."""
        if order.stop_price is None or order.price is None:
            return None
        if order.side == "buy":
            if current_price >= order.stop_price and current_price <= order.price:
                return self._fill(order, order.price, timestamp, "stop_limit")
        elif order.side == "sell":
            if current_price <= order.stop_price and current_price >= order.price:
                return self._fill(order, order.price, timestamp, "stop_limit")
        return None

    @staticmethod
    def _fill(order: Order, price: float, timestamp: pd.Timestamp, fill_type: str) -> Trade:
        return Trade(
            order_id=order.id,
            symbol=order.symbol,
            side=order.side,
            quantity=order.quantity,
            price=price,
            timestamp=timestamp,
            type=fill_type,
            metadata=order.metadata,
        )
