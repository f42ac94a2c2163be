# dealwatch/stats.py
"""Robust statistics (median / MAD) over price samples."""
import statistics
from typing import Iterable

# makes the MAD comparable to a standard deviation for normally distributed data
MAD_CONSISTENCY = 1.4826


def median(xs: Iterable[float]) -> float:
    values = sorted(xs)
    if not values:
        return 0
    return statistics.median(values)


def mad(xs: Iterable[float], center: float) -> float:
    """Median absolute deviation around `center`; 1 when the spread is zero."""
    spread = median(abs(x - center) for x in xs)
    return spread or 1


def robust_z(x: float, center: float, mad_value: float) -> float:
    return (x - center) / (MAD_CONSISTENCY * mad_value)
