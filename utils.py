import math
from dataclasses import fields

import numpy as np
import pandas as pd


def safe_div(a: float, b: float, default: float = 0.0) -> float:
    if b is None or b == 0 or pd.isna(b):
        return default
    return float(a) / float(b)


def round_half_up(value, digits: int = 0):
    """Round with halves going toward +infinity (2.5 -> 3, -2.5 -> -2).

    Works on plain numbers as well as numpy arrays and pandas Series.
    """
    factor = 10.0 ** digits
    if isinstance(value, (pd.Series, np.ndarray)):
        return np.floor(value * factor + 0.5) / factor
    return math.floor(float(value) * factor + 0.5) / factor


def round_int(value) -> int:
    return int(round_half_up(value, 0))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def series_mean(series: pd.Series) -> float:
    if series is None or series.empty:
        return 0.0
    value = series.mean()
    if pd.isna(value):
        return 0.0
    return float(value)


def as_frame(records, record_type=None) -> pd.DataFrame:
    """Return ``records`` as a DataFrame.

    Accepts a DataFrame (returned unchanged) or a sequence of dataclass
    records. ``record_type`` supplies column names when the sequence is empty.
    """
    if isinstance(records, pd.DataFrame):
        return records
    rows = [vars(r) for r in records]
    if not rows and record_type is not None:
        return pd.DataFrame(columns=[f.name for f in fields(record_type)])
    return pd.DataFrame(rows)
