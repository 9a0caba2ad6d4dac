"""
Application entry point.

This module defines a simple command-line interface for running a
backtest from a YAML configuration.  It loads the configuration,
reads historical candles from CSV, runs the configured strategy,
logs a performance summary and optionally writes a report.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

import pandas as pd

from .config.schema import Config, load_config
from .data.csv_data import CSVDataProvider
from .execution.backtest_exec import BacktestingEngine, BacktestResult
from .reporting.metrics import PerformanceAnalytics
from .reporting.report import generate_backtest_report
from .strategy.registry import build_strategy


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


async def run_from_config(config: Config) -> BacktestResult:
    """Load data for `config` and run its strategy."""
    params = dict(config.strategy.params)
    if config.strategy.name == 'intraday_breakout':
        params.setdefault('session_start', config.session.start)
        params.setdefault('session_end', config.session.end)
        params.setdefault('timezone', config.data.timezone)
    strategy = build_strategy(config.strategy.name, config.symbol, params)

    indicator_params = {}
    if hasattr(strategy, 'indicator_params'):
        indicator_params.update(strategy.indicator_params())
    indicator_params.update(config.indicator_params)
    indicators = list(dict.fromkeys(strategy.required_indicators() + config.indicators))

    provider = CSVDataProvider(config.data.csv_dir, config.data.timezone, indicator_params)
    engine = BacktestingEngine(config.starting_balance, provider, progress_interval=config.progress_interval)

    start = pd.Timestamp(config.start) if config.start else None
    await engine.load_historical_data(config.symbol, start, _range_end(config.end), config.granularity, indicators)
    return engine.run_backtest(strategy)


def _range_end(value: Optional[str]) -> Optional[pd.Timestamp]:
    """Parse the configured end; a bare date includes that whole day."""
    if not value:
        return None
    end = pd.Timestamp(value)
    if len(value.strip()) <= 10:
        end = end + pd.Timedelta(days=1) - pd.Timedelta(microseconds=1)
    return end


def _log_summary(result: BacktestResult) -> None:
    m = result.metrics
    logger.info("Strategy %s on %s, %s to %s", result.strategy, result.symbol, result.start_date, result.end_date)
    logger.info("Trades: %d (won %d, lost %d), win rate %.1f%%", m.total_trades, m.winning_trades, m.losing_trades, m.win_rate)
    logger.info("Total P&L: %.2f (%.2f%%), final equity %.2f", m.total_pnl, m.total_pnl_percent, result.account.equity)
    logger.info(
        "Profit factor %.2f, expectancy %.2f, Sharpe %.2f, max drawdown %.2f%%, avg duration %s",
        m.profit_factor, m.expectancy, m.sharpe_ratio, m.max_drawdown,
        PerformanceAnalytics.format_duration(m.avg_trade_duration),
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Parse command-line arguments and run the requested command."""
    parser = argparse.ArgumentParser(description="Trading simulation and backtesting")
    parser.add_argument('mode', choices=['backtest'], help="Operating mode")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('--out', default=None, help="Directory to write the report to")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    config = load_config(args.config)
    logger.info("Running backtest...")
    result = asyncio.run(run_from_config(config))
    _log_summary(result)
    if args.out:
        generate_backtest_report(result, out_dir=args.out)
        logger.info("Report saved to %s", args.out)


if __name__ == '__main__':
    main()
