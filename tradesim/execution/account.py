"""
Cash account bookkeeping.

`AccountManager` owns the balance, buying power and equity of a
single simulated account.  No margin is modelled, so buying power
always mirrors the cash balance.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Optional

from .models import Order, Position, Trade, TradingAccount


class AccountManager:
    """Track balance, buying power, equity and total P&L."""

    def __init__(self, starting_balance: float) -> None:
        self._account = self._fresh_account(starting_balance)

    @staticmethod
    def _fresh_account(starting_balance: float) -> TradingAccount:
        return TradingAccount(
            balance=starting_balance,
            starting_balance=starting_balance,
            equity=starting_balance,
            buying_power=starting_balance,
            total_pnl=0.0,
            total_pnl_percent=0.0,
        )

    def _adjust_cash(self, amount: float, include_equity: bool = False) -> None:
        acct = self._account
        self._account = replace(
            acct,
            balance=acct.balance + amount,
            buying_power=acct.buying_power + amount,
            equity=acct.equity + amount if include_equity else acct.equity,
        )

    def deduct_order_cost(self, order: Order, execution_price: float) -> bool:
        """Reserve the cost of a buy order.

        Returns ``False`` and leaves the account untouched when the cost
        exceeds buying power.  Sell orders are always accepted.
        """
        if order.side != "buy":
            return True
        cost = order.quantity * execution_price
        if cost > self._account.buying_power:
            return False
        self._adjust_cash(-cost)
        return True

    def release_order_cost(self, order: Order, execution_price: float) -> None:
        """Undo `deduct_order_cost` for a buy order that did not fill."""
        if order.side == "buy":
            self._adjust_cash(order.quantity * execution_price)

    def credit_order_proceeds(self, trade: Trade) -> None:
        """Credit the net proceeds of a sell fill."""
        if trade.side != "sell":
            return
        proceeds = trade.quantity * trade.price
        self._adjust_cash(proceeds - (trade.fees or 0.0))

    def update_equity(
        self,
        positions: Iterable[Position],
        current_prices: Mapping[str, float],
    ) -> None:
        """Recompute equity and total P&L from the open positions.

        Positions without an entry in `current_prices` are valued at
        their average entry price.
        """
        total_position_value = 0.0
        for position in positions:
            price = current_prices.get(position.symbol) or position.avg_entry_price
            total_position_value += position.quantity * price

        acct = self._account
        equity = acct.balance + total_position_value
        total_pnl = equity - acct.starting_balance
        total_pnl_percent = total_pnl / acct.starting_balance * 100 if acct.starting_balance else 0.0
        self._account = replace(
            acct,
            equity=equity,
            total_pnl=total_pnl,
            total_pnl_percent=total_pnl_percent,
        )

    def reset(self, starting_balance: Optional[float] = None) -> None:
        balance = self._account.starting_balance if starting_balance is None else starting_balance
        self._account = self._fresh_account(balance)

    def has_sufficient_funds(self, quantity: float, price: float) -> bool:
        return quantity * price <= self._account.buying_power

    def add_to_balance(self, amount: float) -> None:
        """Add cash outside of an order (adjustments, refunds)."""
        self._adjust_cash(amount, include_equity=True)

    def deduct_from_balance(self, amount: float) -> None:
        """Remove cash outside of an order (fees, adjustments)."""
        self._adjust_cash(-amount, include_equity=True)

    @property
    def account(self) -> TradingAccount:
        """Immutable snapshot of the account."""
        return self._account

    @property
    def balance(self) -> float:
        return self._account.balance

    @property
    def equity(self) -> float:
        return self._account.equity

    @property
    def buying_power(self) -> float:
        return self._account.buying_power

    @property
    def total_pnl(self) -> float:
        return self._account.total_pnl

    @property
    def total_pnl_percent(self) -> float:
        return self._account.total_pnl_percent
