"""Tolerant comparisons for cumulative MWh volumes.

Cumulative curve volumes are sums of floats, so exact equality drifts.
All comparisons take an absolute tolerance; tolerance=0 gives exact semantics.
"""

import math


def vol_eq(a: float, b: float, tol: float) -> bool:
    return abs(a - b) <= tol


def vol_lt(a: float, b: float, tol: float) -> bool:
    """a < b by more than tol."""
    return a < b - tol


def vol_le(a: float, b: float, tol: float) -> bool:
    return a <= b + tol


def nan_to_zero(value: float) -> float:
    """NaN volume means no trade; pools treat it as zero."""
    return 0.0 if math.isnan(value) else value
