"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with reasonable defaults for any missing
fields.

Example::

    symbol: BTC-USD
    granularity: H1
    start: "2024-01-01"
    end: "2024-06-30"
    starting_balance: 100000
    indicators: [moving-averages]
    indicator_params:
      moving-averages: {fast: 20, slow: 50}
    strategy:
      name: sma_crossover
      params: {fast_period: 20, slow_period: 50, quantity: 1}
    data:
      csv_dir: data
      timezone: UTC
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import yaml

from ..data.candles import GRANULARITIES


@dataclass
class SessionConfig:
    """Defines the trading session for each day.

    Attributes
    ----------
    start : str
        Start time in `HH:MM` 24-hour format, interpreted in the
        timezone specified by `data.timezone`.
    end : str
        End time in `HH:MM` format.  The end is exclusive: no new
        positions are opened after this time.
    """

    start: str = "06:00"
    end: str = "20:00"


@dataclass
class StrategyConfig:
    """Which strategy to run and its parameters.

    Attributes
    ----------
    name : str
        Registry name, e.g. ``sma_crossover``, ``rsi_reversion`` or
        ``intraday_breakout``.
    params : dict
        Keyword parameters passed to the strategy constructor.
    """

    name: str = "sma_crossover"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DataConfig:
    """Data source configuration.

    Attributes
    ----------
    csv_dir : str
        Directory containing one CSV file per symbol.
    timezone : str
        IANA timezone name used both for interpreting timestamps in
        historical data and for defining the trading session.
    """

    csv_dir: str = "data"
    timezone: str = "UTC"


@dataclass
class Config:
    """Root configuration for a backtest run.

    Attributes
    ----------
    symbol : str
        Instrument to backtest (e.g. ``"BTC-USD"``).
    granularity : str
        Bar size: one of ``M1 M5 M15 M30 H1 H4 D1``.
    start, end : str or None
        Inclusive date range; ``None`` means the whole file.
    starting_balance : float
        Initial cash balance of the simulated account.
    indicators : List[str]
        Indicator ids to compute in addition to those the strategy
        requires.
    indicator_params : dict
        Per-indicator keyword parameters (e.g. moving average periods).
    progress_interval : int
        Emit a progress event every this many candles.
    session : SessionConfig
        Trading session start and end times.
    strategy : StrategyConfig
        Strategy selection.
    data : DataConfig
        Data source configuration.
    """

    symbol: str = "BTC-USD"
    granularity: str = "H1"
    start: Optional[str] = None
    end: Optional[str] = None
    starting_balance: float = 100_000.0
    indicators: List[str] = field(default_factory=list)
    indicator_params: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    progress_interval: int = 100
    session: SessionConfig = field(default_factory=SessionConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    data: DataConfig = field(default_factory=DataConfig)


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build a `Config` from a (possibly partial) dictionary."""
    defaults: Dict[str, Any] = {
        'symbol': "BTC-USD",
        'granularity': "H1",
        'start': None,
        'end': None,
        'starting_balance': 100_000.0,
        'indicators': [],
        'indicator_params': {},
        'progress_interval': 100,
        'session': {
            'start': "06:00",
            'end': "20:00",
        },
        'strategy': {
            'name': "sma_crossover",
            'params': {},
        },
        'data': {
            'csv_dir': 'data',
            'timezone': 'UTC',
        },
    }

    merged = _merge_dict(defaults, raw)

    granularity = str(merged['granularity']).upper()
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity {granularity!r}; expected one of {sorted(GRANULARITIES)}")
    starting_balance = float(merged['starting_balance'])
    if starting_balance <= 0:
        raise ValueError("starting_balance must be positive")

    return Config(
        symbol=str(merged['symbol']),
        granularity=granularity,
        start=None if merged['start'] is None else str(merged['start']),
        end=None if merged['end'] is None else str(merged['end']),
        starting_balance=starting_balance,
        indicators=list(merged.get('indicators') or []),
        indicator_params=dict(merged.get('indicator_params') or {}),
        progress_interval=int(merged['progress_interval']),
        session=SessionConfig(**merged['session']),
        strategy=StrategyConfig(
            name=str(merged['strategy']['name']),
            params=dict(merged['strategy'].get('params') or {}),
        ),
        data=DataConfig(**merged['data']),
    )


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        sensible defaults defined in the dataclasses.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}
    return config_from_dict(raw)
