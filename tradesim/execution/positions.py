"""
Open position bookkeeping.

`PositionManager` holds at most one `Position` per symbol.  Same-side
fills average into the position, opposite-side fills reduce, close or
flip it.  Partial reductions only scale the cost basis; realised P&L
is recorded by the engine when a position is fully closed or flipped.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional

import pandas as pd

from .models import CompletedTrade, PnLResult, Position, Trade


class PositionManager:
    """Open, average, reduce, flip and close positions."""

    def __init__(self) -> None:
        self._positions: Dict[str, Position] = {}

    def update_position(self, trade: Trade) -> Position:
        """Apply a fill and return the resulting position.

        When the fill fully closes the position, a zero-quantity
        snapshot of the closed position is returned.
        """
        existing = self._positions.get(trade.symbol)
        if existing is None:
            return self.create_position(trade)
        if self._is_same_side(existing, trade):
            return self.add_to_position(existing, trade)
        return self.reduce_position(existing, trade)

    def create_position(self, trade: Trade, quantity: Optional[float] = None) -> Position:
        qty = trade.quantity if quantity is None else quantity
        position = Position(
            symbol=trade.symbol,
            quantity=qty,
            side="long" if trade.side == "buy" else "short",
            avg_entry_price=trade.price,
            current_price=trade.price,
            entry_time=trade.timestamp,
            cost_basis=qty * trade.price,
        )
        self._positions[trade.symbol] = position
        return position

    def add_to_position(self, position: Position, trade: Trade) -> Position:
        total_cost = position.cost_basis + trade.quantity * trade.price
        total_quantity = position.quantity + trade.quantity
        position.avg_entry_price = total_cost / total_quantity
        position.quantity = total_quantity
        position.cost_basis = total_cost
        self._refresh_pnl(position)
        return position

    def reduce_position(self, position: Position, trade: Trade) -> Position:
        if trade.quantity >= position.quantity:
            del self._positions[position.symbol]
            if trade.quantity > position.quantity:
                # Flip: the excess opens a position on the other side.
                return self.create_position(trade, quantity=trade.quantity - position.quantity)
            return replace(position, quantity=0.0, unrealized_pnl=0.0, unrealized_pnl_percent=0.0)

        position.quantity -= trade.quantity
        position.cost_basis = position.quantity * position.avg_entry_price
        self._refresh_pnl(position)
        return position

    def calculate_pnl(self, position: Position, current_price: float) -> PnLResult:
        position_value = position.quantity * current_price
        cost_basis = position.quantity * position.avg_entry_price
        if position.side == "long":
            pnl = position_value - cost_basis
        else:
            pnl = cost_basis - position_value
        pnl_percent = pnl / cost_basis * 100 if cost_basis else 0.0
        return PnLResult(
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent,
            position_value=position_value,
            cost_basis=cost_basis,
        )

    def close_position(
        self,
        symbol: str,
        exit_price: float,
        exit_time: Optional[pd.Timestamp] = None,
    ) -> Optional[CompletedTrade]:
        """Remove the position for `symbol` and return the round trip."""
        position = self._positions.get(symbol)
        if position is None:
            return None
        if exit_time is None:
            exit_time = pd.Timestamp.now(tz=position.entry_time.tz)

        pnl = self.calculate_pnl(position, exit_price)
        del self._positions[symbol]
        return CompletedTrade(
            symbol=symbol,
            side=position.side,
            quantity=position.quantity,
            entry_price=position.avg_entry_price,
            exit_price=exit_price,
            pnl=pnl.unrealized_pnl,
            pnl_percent=pnl.unrealized_pnl_percent,
            entry_time=position.entry_time,
            exit_time=exit_time,
            duration=exit_time - position.entry_time,
        )

    def update_position_price(self, symbol: str, current_price: float) -> Optional[Position]:
        position = self._positions.get(symbol)
        if position is None:
            return None
        position.current_price = current_price
        self._refresh_pnl(position)
        return position

    def _refresh_pnl(self, position: Position) -> None:
        pnl = self.calculate_pnl(position, position.current_price)
        position.unrealized_pnl = pnl.unrealized_pnl
        position.unrealized_pnl_percent = pnl.unrealized_pnl_percent

    @staticmethod
    def _is_same_side(position: Position, trade: Trade) -> bool:
        return (position.side == "long" and trade.side == "buy") or (
            position.side == "short" and trade.side == "sell"
        )

    def get_position(self, symbol: str) -> Optional[Position]:
        return self._positions.get(symbol)

    @property
    def positions(self) -> List[Position]:
        return list(self._positions.values())

    @property
    def position_count(self) -> int:
        return len(self._positions)

    def has_position(self, symbol: str) -> bool:
        return symbol in self._positions

    def clear(self) -> None:
        self._positions.clear()
