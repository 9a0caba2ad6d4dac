"""Technical indicator evaluators attached to candle data."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def sma(series: pd.Series, window: int) -> pd.Series:
    return series.rolling(window).mean()


def ema(series: pd.Series, span: int) -> pd.Series:
    return series.ewm(span=span, adjust=False).mean()


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """Wilder RSI; 50 on a flat series, 100 when there are only gains."""
    delta = close.diff()
    gain = delta.clip(lower=0.0)
    loss = -delta.clip(upper=0.0)

    avg_gain = gain.ewm(alpha=1.0 / period, adjust=False).mean()
    avg_loss = loss.ewm(alpha=1.0 / period, adjust=False).mean()

    avg_loss_safe = avg_loss.where(avg_loss != 0.0, other=1e-12)
    rs = avg_gain / avg_loss_safe
    rsi_val = 100.0 - (100.0 / (1.0 + rs))

    flat_mask = (avg_gain == 0.0) & (avg_loss == 0.0)
    up_only_mask = (avg_loss == 0.0) & (avg_gain > 0.0)
    rsi_val = rsi_val.mask(flat_mask, 50.0)
    rsi_val = rsi_val.mask(up_only_mask, 100.0)
    # The first bar has no change to measure.
    rsi_val.iloc[:1] = float("nan")
    return rsi_val


# ---------------------------------------------------------------------------
# Evaluators: indicator id -> DataFrame of named outputs
# ---------------------------------------------------------------------------

def _moving_averages(df: pd.DataFrame, fast: int = 50, slow: int = 200) -> pd.DataFrame:
    return pd.DataFrame({
        "ma_fast": sma(df["close"], int(fast)),
        "ma_slow": sma(df["close"], int(slow)),
    }, index=df.index)


def _ema(df: pd.DataFrame, period: int = 20) -> pd.DataFrame:
    return pd.DataFrame({"ema": ema(df["close"], int(period))}, index=df.index)


def _rsi(df: pd.DataFrame, period: int = 14) -> pd.DataFrame:
    return pd.DataFrame({"rsi": rsi(df["close"], int(period))}, index=df.index)


def _macd(df: pd.DataFrame, fast: int = 12, slow: int = 26, signal: int = 9) -> pd.DataFrame:
    macd_line = ema(df["close"], int(fast)) - ema(df["close"], int(slow))
    signal_line = ema(macd_line, int(signal))
    return pd.DataFrame({
        "macd_line": macd_line,
        "signal_line": signal_line,
        "histogram": macd_line - signal_line,
    }, index=df.index)


def _bollinger_bands(df: pd.DataFrame, window: int = 20, num_std: float = 2.0) -> pd.DataFrame:
    mid = sma(df["close"], int(window))
    std = df["close"].rolling(int(window)).std()
    return pd.DataFrame({
        "middle": mid,
        "upper": mid + num_std * std,
        "lower": mid - num_std * std,
    }, index=df.index)


EVALUATORS: Dict[str, Callable[..., pd.DataFrame]] = {
    "moving-averages": _moving_averages,
    "ema": _ema,
    "rsi": _rsi,
    "macd": _macd,
    "bollinger-bands": _bollinger_bands,
}


def compute_indicators(
    df: pd.DataFrame,
    indicator_ids: Sequence[str],
    params: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Tuple[pd.DataFrame, List[str]]:
    """Append the outputs of the requested evaluators to `df`.

    Returns the extended frame and the names of the added columns.
    Raises ``ValueError`` for an unknown indicator id.
    """
    params = params or {}
    out = df.copy()
    columns: List[str] = []
    for indicator_id in indicator_ids:
        evaluator = EVALUATORS.get(indicator_id)
        if evaluator is None:
            raise ValueError(f"Unknown indicator: {indicator_id!r}. Known: {sorted(EVALUATORS)}")
        values = evaluator(df, **dict(params.get(indicator_id, {})))
        for name in values.columns:
            out[name] = values[name]
            if name not in columns:
                columns.append(name)
    return out, columns
