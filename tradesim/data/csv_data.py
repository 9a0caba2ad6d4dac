"""
CSV data provider.

This module loads historical OHLCV data from CSV files and serves it
to the backtesting engine as a `HistoricalDataProvider`.  Two layouts
are recognised:

```
time,open,high,low,close[,volume]
```

or the tab-separated MetaTrader 5 export with ``<DATE>``, ``<TIME>``,
``<OPEN>``, ``<HIGH>``, ``<LOW>``, ``<CLOSE>`` (and optionally
``<TICKVOL>``/``<VOL>``) columns.  Timestamps are localised to the
configured timezone.  The provider slices the requested date range,
resamples to the requested granularity and attaches indicator values.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from ..utils.timeutils import localize
from .candles import Candle, candles_from_frame, resample_rule
from .indicators import compute_indicators


logger = logging.getLogger(__name__)

_MT5_REQUIRED = ["<DATE>", "<TIME>", "<OPEN>", "<HIGH>", "<LOW>", "<CLOSE>"]


class CSVDataLoader:
    """Load OHLCV data from CSV files.

    Parameters
    ----------
    csv_dir : str
        Directory where the CSV files are located.  Each symbol's file
        must be named `{SYMBOL}.csv`.
    timezone : str
        IANA timezone name used to localise timestamps.
    """

    def __init__(self, csv_dir: str, timezone: str) -> None:
        self.csv_dir = Path(csv_dir)
        self.timezone = timezone

    def path_for(self, symbol: str) -> Path:
        return self.csv_dir / f"{symbol}.csv"

    def load(self, symbol: str) -> pd.DataFrame:
        file_path = self.path_for(symbol)
        if not file_path.exists():
            raise FileNotFoundError(f"CSV file not found for symbol {symbol}: {file_path}")

        df = pd.read_csv(file_path)
        if "time" in df.columns:
            return self._from_standard(df)
        return self._from_mt5(pd.read_csv(file_path, sep="\t", engine="python"), symbol)

    def _from_standard(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.rename(columns=str.lower)
        df["time"] = pd.to_datetime(df["time"], errors="raise")
        df = df.set_index("time").sort_index()
        if df.index.tz is None:
            df.index = df.index.tz_localize(self.timezone)
        else:
            df.index = df.index.tz_convert(self.timezone)
        columns = [c for c in ("open", "high", "low", "close", "volume") if c in df.columns]
        return df[columns].astype(float)

    def _from_mt5(self, df: pd.DataFrame, symbol: str) -> pd.DataFrame:
        df.columns = [c.strip() for c in df.columns]
        missing = [c for c in _MT5_REQUIRED if c not in df.columns]
        if missing:
            raise ValueError(
                f"Unrecognized CSV format for {symbol}. Missing columns: {missing}. "
                f"Found columns: {list(df.columns)}"
            )

        dt = df["<DATE>"].astype(str).str.strip() + " " + df["<TIME>"].astype(str).str.strip()
        ts = pd.to_datetime(dt, format="%Y.%m.%d %H:%M:%S", errors="coerce")
        if ts.isna().any():
            ts = pd.to_datetime(dt, errors="coerce")
        if ts.isna().any():
            bad = dt[ts.isna()].head(5).tolist()
            raise ValueError(f"Could not parse MT5 DATE/TIME for {symbol}. Examples: {bad}")

        volume_col = next((c for c in ("<TICKVOL>", "<VOL>") if c in df.columns), None)
        out = pd.DataFrame(
            {
                "open": df["<OPEN>"].astype(float).values,
                "high": df["<HIGH>"].astype(float).values,
                "low": df["<LOW>"].astype(float).values,
                "close": df["<CLOSE>"].astype(float).values,
                "volume": df[volume_col].astype(float).values if volume_col else 0.0,
            },
            index=pd.DatetimeIndex(ts),
        ).sort_index()

        # MT5 exports are in terminal/broker local time.
        out.index = out.index.tz_localize(self.timezone)
        return out


def resample_ohlcv(df: pd.DataFrame, granularity: str) -> pd.DataFrame:
    """Aggregate bars to `granularity`, dropping empty buckets."""
    agg = {"open": "first", "high": "max", "low": "min", "close": "last"}
    if "volume" in df.columns:
        agg["volume"] = "sum"
    return df.resample(resample_rule(granularity)).agg(agg).dropna(subset=["close"])


class CSVDataProvider:
    """`HistoricalDataProvider` reading `{csv_dir}/{SYMBOL}.csv`."""

    def __init__(
        self,
        csv_dir: str,
        timezone: str,
        indicator_params: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self.loader = CSVDataLoader(csv_dir, timezone)
        self.timezone = timezone
        self.indicator_params: Dict[str, Mapping[str, Any]] = dict(indicator_params or {})

    async def load(
        self,
        symbol: str,
        start: Optional[pd.Timestamp],
        end: Optional[pd.Timestamp],
        granularity: str,
        indicators: Sequence[str] = (),
    ) -> List[Candle]:
        return await asyncio.to_thread(self.load_sync, symbol, start, end, granularity, indicators)

    def load_sync(
        self,
        symbol: str,
        start: Optional[pd.Timestamp],
        end: Optional[pd.Timestamp],
        granularity: str,
        indicators: Sequence[str] = (),
    ) -> List[Candle]:
        df = resample_ohlcv(self.loader.load(symbol), granularity)
        # Indicators see the full history so that warm-up ends before `start`.
        df, columns = compute_indicators(df, indicators, self.indicator_params)
        if start is not None:
            df = df.loc[df.index >= localize(start, self.timezone)]
        if end is not None:
            df = df.loc[df.index <= localize(end, self.timezone)]
        logger.debug("Loaded %d %s bars for %s between %s and %s", len(df), granularity, symbol, start, end)
        return candles_from_frame(df, columns)
