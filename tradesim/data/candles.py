"""
Candle records and the historical data provider contract.

A provider returns a non-empty, strictly time-ordered list of
`Candle` objects for a symbol and date range.  Indicator values that
were requested alongside the prices are attached to each candle under
their value names (``ma_fast``, ``rsi``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

import pandas as pd

# Supported bar sizes and their pandas resampling rules.
GRANULARITIES: Dict[str, str] = {
    "M1": "1min",
    "M5": "5min",
    "M15": "15min",
    "M30": "30min",
    "H1": "1h",
    "H4": "4h",
    "D1": "1D",
}


def resample_rule(granularity: str) -> str:
    """Map a granularity code such as ``"H1"`` to a pandas offset alias."""
    rule = GRANULARITIES.get(granularity.upper())
    if rule is None:
        raise ValueError(f"Unsupported granularity: {granularity}")
    return rule


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar with optional indicator values."""
    timestamp: pd.Timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    indicators: Dict[str, float] = field(default_factory=dict)

    def indicator(self, name: str) -> Optional[float]:
        """Value of indicator output `name`, or ``None`` if absent."""
        return self.indicators.get(name)


class HistoricalDataProvider(Protocol):
    async def load(
        self,
        symbol: str,
        start: Optional[pd.Timestamp],
        end: Optional[pd.Timestamp],
        granularity: str,
        indicators: Sequence[str] = (),
    ) -> List[Candle]:
        ...


def candles_from_frame(df: pd.DataFrame, indicator_columns: Sequence[str] = ()) -> List[Candle]:
    """Convert an OHLC DataFrame indexed by timestamp into candles.

    NaN indicator values (e.g. during a moving average warm-up) are
    left out of the candle rather than stored as NaN.
    """
    has_volume = "volume" in df.columns
    candles: List[Candle] = []
    for ts, row in df.iterrows():
        indicators = {
            name: float(row[name])
            for name in indicator_columns
            if name in row.index and pd.notna(row[name])
        }
        candles.append(
            Candle(
                timestamp=ts,
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=float(row["volume"]) if has_volume and pd.notna(row["volume"]) else 0.0,
                indicators=indicators,
            )
        )
    return candles
