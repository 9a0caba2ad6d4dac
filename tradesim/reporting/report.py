"""
Report generation utilities.

This module turns a `BacktestResult` into human-readable artefacts:
a JSON-ready summary, a pandas table of the completed trades, and on
disk CSV files of trades, equity and drawdown curves, a JSON summary
and a PNG chart of the equity curve.  The trading engine never calls
into this module; it is a consumer of finished results.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from typing import Any, Dict

import pandas as pd
import matplotlib

# Use non-interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..execution.backtest_exec import BacktestResult
from .metrics import PerformanceAnalytics


def _iso(ts: Any) -> Any:
    return ts.isoformat() if isinstance(ts, pd.Timestamp) else ts


def trades_frame(result: BacktestResult) -> pd.DataFrame:
    """One row per completed trade, in close order."""
    columns = [
        'id', 'symbol', 'side', 'quantity', 'entry_time', 'exit_time',
        'entry_price', 'exit_price', 'pnl', 'pnl_percent', 'duration',
    ]
    rows = [{col: getattr(t, col) for col in columns} for t in result.trades]
    return pd.DataFrame(rows, columns=columns)


def result_to_dict(result: BacktestResult) -> Dict[str, Any]:
    """JSON-serialisable view of a result with ISO timestamps."""
    metrics = asdict(result.metrics)
    metrics['avg_trade_duration'] = PerformanceAnalytics.format_duration(result.metrics.avg_trade_duration)
    account = result.account
    return {
        'metadata': {
            'strategy': result.strategy,
            'symbol': result.symbol,
            'start_date': _iso(result.start_date),
            'end_date': _iso(result.end_date),
        },
        'account': {
            'starting_balance': account.starting_balance,
            'final_balance': account.balance,
            'equity': account.equity,
            'total_pnl': account.total_pnl,
            'total_pnl_percent': account.total_pnl_percent,
        },
        'metrics': metrics,
        'trades': [
            {
                'id': t.id,
                'side': t.side,
                'quantity': t.quantity,
                'entry_time': _iso(t.entry_time),
                'exit_time': _iso(t.exit_time),
                'entry_price': t.entry_price,
                'exit_price': t.exit_price,
                'pnl': t.pnl,
                'pnl_percent': t.pnl_percent,
                'duration_seconds': t.duration.total_seconds(),
            }
            for t in result.trades
        ],
        'equity_curve': [{'timestamp': _iso(p.timestamp), 'equity': p.equity} for p in result.equity_curve],
        'drawdown_curve': [
            {'timestamp': _iso(p.timestamp), 'drawdown_percent': p.drawdown_percent}
            for p in result.drawdown_curve
        ],
    }


def generate_backtest_report(result: BacktestResult, out_dir: str = "results") -> None:
    """Generate report files for a backtest run.

    Creates the output directory if it does not exist and writes the
    following files:

    - `trades.csv` – completed trades
    - `equity_curve.csv` – account equity after each trade
    - `drawdown_curve.csv` – drawdown from peak after each trade
    - `summary.json` – account, metrics and curves
    - `equity_curve.png` – line chart of equity and drawdown
    """
    os.makedirs(out_dir, exist_ok=True)

    df_trades = trades_frame(result)
    df_trades['duration'] = df_trades['duration'].astype(str)
    df_trades.to_csv(os.path.join(out_dir, 'trades.csv'), index=False)

    df_eq = pd.DataFrame([asdict(p) for p in result.equity_curve], columns=['timestamp', 'equity'])
    df_eq.to_csv(os.path.join(out_dir, 'equity_curve.csv'), index=False)

    df_dd = pd.DataFrame([asdict(p) for p in result.drawdown_curve], columns=['timestamp', 'drawdown_percent'])
    df_dd.to_csv(os.path.join(out_dir, 'drawdown_curve.csv'), index=False)

    with open(os.path.join(out_dir, 'summary.json'), 'w', encoding='utf-8') as fh:
        json.dump(result_to_dict(result), fh, indent=2)

    # Equity curve PNG
    fig, (ax_eq, ax_dd) = plt.subplots(2, 1, figsize=(10, 7), sharex=True, gridspec_kw={'height_ratios': [3, 1]})
    if not df_eq.empty:
        ax_eq.plot(pd.to_datetime(df_eq['timestamp']), df_eq['equity'], label='Equity')
        ax_dd.fill_between(pd.to_datetime(df_dd['timestamp']), -df_dd['drawdown_percent'], 0, color='tab:red', alpha=0.4)
    ax_eq.set_title(f"{result.strategy} on {result.symbol}")
    ax_eq.set_ylabel('Equity')
    ax_eq.grid(True)
    ax_dd.set_ylabel('Drawdown %')
    ax_dd.set_xlabel('Time')
    ax_dd.grid(True)
    fig.tight_layout()
    fig.savefig(os.path.join(out_dir, 'equity_curve.png'))
    plt.close(fig)
