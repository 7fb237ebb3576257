import logging
import os
import re
from typing import List, Sequence

import pandas as pd

from ..swing_analysis.types import Candle

logger = logging.getLogger(__name__)

OHLC_COLUMNS = ['open', 'high', 'low', 'close', 'volume']

# Binance kline array layout: open time, open, high, low, close, volume, close time, ...
KLINE_FIELDS = ['open_time', 'open', 'high', 'low', 'close', 'volume']

_INTERVAL_PATTERN = re.compile(r'^(\d+)([smhdwM])$')
_PANDAS_UNITS = {
    's': 's',
    'm': 'min',
    'h': 'h',
    'd': 'D',
    'w': 'W-MON',
    'M': 'MS',
}


def interval_to_offset(interval: str) -> str:
    """
    Convert an exchange interval ("1m", "4h", "1M") to a pandas offset alias.

    Raises:
        ValueError: If the interval is not recognised.
    """
    match = _INTERVAL_PATTERN.match(interval)
    if not match:
        raise ValueError(f"Unsupported interval: {interval!r}")
    count, unit = match.groups()
    return f"{count}{_PANDAS_UNITS[unit]}"


def detect_format(filepath: str) -> str:
    """
    Detects the format of the CSV file.

    Args:
        filepath: Path to the CSV file.

    Returns:
        "format_a" for Semicolon-Separated Historical Data.
        "format_b" for TradingView Comma-Separated Data.

    Raises:
        ValueError: If format cannot be detected.
    """
    with open(filepath, 'r') as f:
        # Read first few lines to be robust against blank leading lines
        lines = [f.readline() for _ in range(10)]
        lines = [line.strip() for line in lines if line.strip()]

    if not lines:
        raise ValueError("File is empty")

    first_line = lines[0]

    if ';' in first_line:
        return "format_a"

    if ',' in first_line:
        if "time" in first_line.lower() and "open" in first_line.lower():
            return "format_b"
        parts = first_line.split(',')
        if parts[0].replace('.', '', 1).isdigit():
            return "format_b"

    raise ValueError(
        "Could not detect CSV format. Expected semicolon-separated historical "
        "format or comma-separated TradingView format."
    )


def _validate(df: pd.DataFrame, source: str) -> pd.DataFrame:
    """Sort, de-duplicate and drop impossible OHLC rows."""
    df = df.sort_index(kind='stable')

    # Keep last occurrence: overlapping downloads carry the corrected bar last
    duplicate_timestamps = df.index.duplicated(keep='last')
    if duplicate_timestamps.any():
        logger.debug(f"Duplicate timestamps in {source}: {duplicate_timestamps.sum()} removed")
        df = df[~duplicate_timestamps]

    valid_ohlc = (
        (df['low'] <= df['open']) & (df['open'] <= df['high']) &
        (df['low'] <= df['close']) & (df['close'] <= df['high'])
    )
    valid_mask = valid_ohlc & (df['volume'] >= 0)

    if not valid_mask.all():
        invalid_count = int((~valid_mask).sum())
        total_count = len(df)
        if invalid_count / total_count > 0.01:
            raise ValueError(f"Too many invalid rows: {invalid_count}/{total_count} ({invalid_count/total_count:.2%})")
        logger.warning(f"Dropping {invalid_count} invalid OHLC row(s) from {source}")
        df = df[valid_mask]

    return df


def load_ohlc(filepath: str) -> pd.DataFrame:
    """
    Loads OHLC data from a CSV file into a standardized DataFrame.

    Args:
        filepath: Path to the CSV file.

    Returns:
        DataFrame indexed by UTC timestamp with columns open, high, low,
        close, volume.

    Raises:
        FileNotFoundError, ValueError.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    if os.path.getsize(filepath) == 0:
        raise ValueError("File is empty")

    fmt = detect_format(filepath)

    try:
        if fmt == "format_a":
            # Format A: DD/MM/YYYY;HH:MM:SS;Open;High;Low;Close;Volume, no header
            df = pd.read_csv(
                filepath,
                sep=';',
                header=None,
                names=['date', 'time'] + OHLC_COLUMNS,
                dtype={'date': str, 'time': str},
                engine='c'
            )
            datetime_str = df['date'] + ' ' + df['time']
            df['timestamp'] = pd.to_datetime(datetime_str, format='%d/%m/%Y %H:%M:%S', utc=True)
            df.drop(columns=['date', 'time'], inplace=True)

        else:  # format_b
            # Format B: time,open,high,low,close,Volume with header
            df = pd.read_csv(filepath, sep=',', engine='c')
            df.columns = df.columns.str.lower()

            required = {'time', 'open', 'high', 'low', 'close'}
            if not required.issubset(df.columns):
                raise ValueError(f"Missing required columns. Found: {df.columns.tolist()}")

            if 'volume' not in df.columns:
                df['volume'] = 0.0

            df['timestamp'] = pd.to_datetime(df['time'], unit='s', utc=True)
            df.drop(columns=['time'], inplace=True)

        df['volume'] = df['volume'].fillna(0)
        df = df[['timestamp'] + OHLC_COLUMNS].astype({c: 'float64' for c in OHLC_COLUMNS})

    except (KeyError, ValueError, TypeError, pd.errors.ParserError) as e:
        raise ValueError(f"Error parsing file: {e}")

    df.set_index('timestamp', inplace=True)
    return _validate(df, os.path.basename(filepath))


def klines_to_dataframe(klines: Sequence[Sequence]) -> pd.DataFrame:
    """
    Normalize raw exchange kline arrays into the standard OHLC DataFrame.

    Raises:
        ValueError: If a row is malformed.
    """
    if not klines:
        return pd.DataFrame(columns=OHLC_COLUMNS, index=pd.DatetimeIndex([], tz='UTC', name='timestamp'))

    try:
        df = pd.DataFrame([row[:len(KLINE_FIELDS)] for row in klines], columns=KLINE_FIELDS)
        df['timestamp'] = pd.to_datetime(df['open_time'].astype('int64'), unit='ms', utc=True)
        df = df[['timestamp'] + OHLC_COLUMNS].astype({c: 'float64' for c in OHLC_COLUMNS})
    except (KeyError, ValueError, TypeError, IndexError) as e:
        raise ValueError(f"Malformed kline payload: {e}")

    df.set_index('timestamp', inplace=True)
    return _validate(df, "klines")


def resample_ohlc(df: pd.DataFrame, interval: str) -> pd.DataFrame:
    """Aggregate an OHLC DataFrame to a coarser interval, dropping empty buckets."""
    rule = interval_to_offset(interval)
    resampled = df.resample(rule, label='left', closed='left').agg({
        'open': 'first',
        'high': 'max',
        'low': 'min',
        'close': 'last',
        'volume': 'sum',
    })
    return resampled.dropna(subset=['open'])


def dataframe_to_candles(df: pd.DataFrame) -> List[Candle]:
    """Convert a standardized OHLC DataFrame to Candle objects."""
    epoch = pd.Timestamp(0, tz='UTC')
    times = ((df.index - epoch) // pd.Timedelta(seconds=1)).tolist()
    return [
        Candle(
            time=int(ts),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for ts, row in zip(times, df.itertuples(index=False))
    ]
