"""
Backtest execution engine.

This module contains the `BacktestingEngine` class which loads
historical candles from a data provider, drives a strategy through
them one candle at a time, executes the strategy's signals through the
trading engine and assembles a `BacktestResult` with performance
metrics, equity curve and drawdown curve.

Loading data is the only asynchronous step; once candles are in
memory a run is a plain synchronous loop in chronological order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..data.candles import Candle, HistoricalDataProvider
from ..reporting.metrics import DrawdownPoint, EquityPoint, PerformanceAnalytics, PerformanceMetrics
from .events import DATA_LOADED, ORDER_REJECTED, PROGRESS, DataLoadedEvent, OrderRejectedEvent, ProgressEvent
from .models import CompletedTrade, NoHistoricalDataError, Order, OrderSignal, OrderValidationError, TradingAccount
from .trading_engine import TradingEngine


logger = logging.getLogger(__name__)

SignalLike = Union[OrderSignal, Mapping[str, Any]]


@dataclass(frozen=True)
class BacktestResult:
    """Everything a results consumer needs from one run."""
    strategy: str
    symbol: str
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    metrics: PerformanceMetrics
    trades: Tuple[CompletedTrade, ...]
    equity_curve: Tuple[EquityPoint, ...]
    drawdown_curve: Tuple[DrawdownPoint, ...]
    account: TradingAccount


class HistoricalPriceSource:
    """Serve prices from loaded candles.

    While a backtest is running, the price of a symbol is the close of
    its candle at the timestamp currently being processed.
    """

    def __init__(self) -> None:
        self.series: Dict[str, List[Candle]] = {}
        self._by_time: Dict[str, Dict[pd.Timestamp, Candle]] = {}
        self.current_index: int = 0
        self.current_timestamp: Optional[pd.Timestamp] = None

    def add(self, symbol: str, candles: List[Candle]) -> None:
        self.series[symbol] = candles
        self._by_time[symbol] = {c.timestamp: c for c in candles}

    def clear(self) -> None:
        self.series.clear()
        self._by_time.clear()
        self.current_index = 0
        self.current_timestamp = None

    def advance(self, index: int, candle: Candle) -> None:
        self.current_index = index
        self.current_timestamp = candle.timestamp

    def finish(self) -> None:
        """Stop pinning prices to the last processed candle."""
        self.current_timestamp = None

    def price_at(self, symbol: str, timestamp: Optional[pd.Timestamp] = None) -> float:
        ts = self.current_timestamp if self.current_timestamp is not None else timestamp
        if ts is None:
            return 0.0
        candle = self._by_time.get(symbol, {}).get(ts)
        return candle.close if candle is not None else 0.0

    def price(self, symbol: str) -> float:
        return self.price_at(symbol)

    def now(self) -> pd.Timestamp:
        if self.current_timestamp is not None:
            return self.current_timestamp
        return pd.Timestamp.now(tz="UTC")


class BacktestingEngine(TradingEngine):
    """Run a strategy against historical candles."""

    def __init__(
        self,
        starting_balance: float,
        data_provider: Optional[HistoricalDataProvider] = None,
        progress_interval: int = 100,
    ) -> None:
        self.history = HistoricalPriceSource()
        super().__init__(starting_balance, price_source=self.history)
        self.data_provider = data_provider
        self.progress_interval = max(1, int(progress_interval))
        self.analytics = PerformanceAnalytics()

    async def load_historical_data(
        self,
        symbol: str,
        start: Optional[pd.Timestamp],
        end: Optional[pd.Timestamp],
        granularity: str,
        indicators: Sequence[str] = (),
    ) -> None:
        """Fetch candles for `symbol` from the data provider.

        Raises
        ------
        NoHistoricalDataError
            If the provider returns no candles for the range.
        """
        if self.data_provider is None:
            raise RuntimeError("BacktestingEngine has no data provider configured.")
        candles = await self.data_provider.load(symbol, start, end, granularity, list(indicators))
        if not candles:
            raise NoHistoricalDataError(f"No historical data found for {symbol} from {start} to {end}")
        self.set_historical_data(symbol, candles)

    def set_historical_data(self, symbol: str, candles: Sequence[Candle]) -> None:
        """Install already-loaded candles for `symbol`."""
        candles = sorted(candles, key=lambda c: c.timestamp)
        if not candles:
            raise NoHistoricalDataError(f"No historical data provided for {symbol}")
        self.history.add(symbol, candles)
        logger.info("Loaded %d candles for %s (%s to %s)", len(candles), symbol, candles[0].timestamp, candles[-1].timestamp)
        self.emit(
            DATA_LOADED,
            DataLoadedEvent(
                symbol=symbol,
                candle_count=len(candles),
                start_date=candles[0].timestamp,
                end_date=candles[-1].timestamp,
            ),
        )

    def get_price_at(self, symbol: str, timestamp: Optional[pd.Timestamp] = None) -> float:
        """Close of the candle being processed, or of the candle at `timestamp`."""
        return self.history.price_at(symbol, timestamp)

    def _build_order(self, signal: SignalLike, symbol: str, candle: Candle) -> Optional[Order]:
        try:
            if not isinstance(signal, OrderSignal):
                signal = OrderSignal(**dict(signal))
            return Order.from_signal(signal, symbol, created_at=candle.timestamp)
        except (OrderValidationError, TypeError) as exc:
            logger.warning("Invalid signal from strategy at %s: %s", candle.timestamp, exc)
            self.emit(ORDER_REJECTED, OrderRejectedEvent(order=None, reason=str(exc)))
            return None

    def run_backtest(self, strategy: Any) -> BacktestResult:
        """Drive `strategy` through the loaded candles for its symbol.

        The strategy must expose `name`, `symbol` and `on_candle(candle)`;
        `on_start(account)`, `on_trade(trade)` and `on_end(metrics)` are
        called when present.  Positions still open after the last candle
        are closed at its close price.

        Raises
        ------
        NoHistoricalDataError
            If no candles are loaded for the strategy's symbol.
        """
        candles = self.history.series.get(strategy.symbol, [])
        if not candles:
            raise NoHistoricalDataError(
                f"No historical data loaded for {strategy.symbol}. Call load_historical_data() first."
            )

        logger.info(
            "Starting backtest: strategy=%s symbol=%s candles=%d range=%s..%s",
            strategy.name, strategy.symbol, len(candles), candles[0].timestamp, candles[-1].timestamp,
        )

        self.reset()
        on_start = getattr(strategy, "on_start", None)
        on_trade = getattr(strategy, "on_trade", None)
        on_end = getattr(strategy, "on_end", None)
        if on_start is not None:
            on_start(self.account)

        total = len(candles)
        signal_count = 0
        for i, candle in enumerate(candles):
            self.history.advance(i, candle)

            signal = strategy.on_candle(candle)
            if signal is not None:
                signal_count += 1
                order = self._build_order(signal, strategy.symbol, candle)
                if order is not None:
                    logger.debug("Signal #%d at %s: %s %s %s", signal_count, candle.timestamp, order.side, order.quantity, order.type)
                    trade = self.execute_order(order)
                    if trade is not None and on_trade is not None:
                        on_trade(trade)

            for position in self.positions:
                self.update_position_pnl(position.symbol, self.get_price_at(position.symbol) or candle.close)

            if i % self.progress_interval == 0 or i == total - 1:
                self.emit(
                    PROGRESS,
                    ProgressEvent(current=i + 1, total=total, percent=(i + 1) / total * 100, timestamp=candle.timestamp),
                )

        for position in self.positions:
            self.close_position(position.symbol)
        self.history.finish()

        result = self._generate_result(strategy, candles)
        logger.info(
            "Backtest complete: %d signals, %d completed trades, total P&L %.2f (%.2f%%)",
            signal_count, len(result.trades), result.account.total_pnl, result.account.total_pnl_percent,
        )
        if on_end is not None:
            on_end(result.metrics)
        return result

    def _generate_result(self, strategy: Any, candles: Sequence[Candle]) -> BacktestResult:
        trades = self.trades
        account = self.account
        return BacktestResult(
            strategy=strategy.name,
            symbol=strategy.symbol,
            start_date=candles[0].timestamp,
            end_date=candles[-1].timestamp,
            metrics=self.analytics.calculate_metrics(trades, account),
            trades=tuple(trades),
            equity_curve=tuple(self.analytics.generate_equity_curve(trades, account.starting_balance)),
            drawdown_curve=tuple(self.analytics.calculate_drawdown_curve(trades, account.starting_balance)),
            account=account,
        )

    def get_historical_data(self, symbol: str) -> List[Candle]:
        return list(self.history.series.get(symbol, []))

    def has_historical_data(self, symbol: str) -> bool:
        return symbol in self.history.series

    def clear_historical_data(self) -> None:
        self.history.clear()

    @property
    def current_position(self) -> Tuple[int, Optional[pd.Timestamp]]:
        """Index and timestamp of the candle being processed."""
        return self.history.current_index, self.history.current_timestamp
