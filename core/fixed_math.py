"""
Core Module - Fixed-Point Math.

============================================================
RESPONSIBILITY
============================================================
Pure, stateless integer arithmetic used by every scorer.

- Values are scaled integers (PRECISION = 10**18 or BPS = 10000)
- No floating point anywhere, results are bit-reproducible
- Division floors (Python `//` semantics)

============================================================
"""

import math
from typing import Sequence

from .constants import BPS, PRECISION, MAX_SCORE, MIN_SCORE


TICK_BASE = PRECISION + PRECISION // BPS
"""1.0001 in PRECISION scale, the price ratio between adjacent ticks."""


def mean(values: Sequence[int]) -> int:
    """Arithmetic mean, floored."""
    if not values:
        raise ValueError("mean of empty sequence")
    return sum(values) // len(values)


def variance(values: Sequence[int]) -> int:
    """Population variance (divides by n), in squared units of the input."""
    if not values:
        raise ValueError("variance of empty sequence")
    m = mean(values)
    return sum((v - m) ** 2 for v in values) // len(values)


def std_dev(values: Sequence[int]) -> int:
    """Population standard deviation, same scale as the input."""
    return isqrt(variance(values))


def isqrt(value: int) -> int:
    """Integer square root (floor)."""
    if value < 0:
        raise ValueError("square root of negative value")
    return math.isqrt(value)


def ewma(values: Sequence[int], alpha_bps: int) -> int:
    """
    Exponentially weighted moving average.

    The first observation seeds the average; each later one is
    blended in as `alpha * x + (1 - alpha) * ewma` with alpha in bps.
    """
    if not values:
        raise ValueError("ewma of empty sequence")
    if not 0 < alpha_bps <= BPS:
        raise ValueError(f"alpha out of range: {alpha_bps}")
    avg = values[0]
    for value in values[1:]:
        avg = (alpha_bps * value + (BPS - alpha_bps) * avg) // BPS
    return avg


def weighted_average(values: Sequence[int], weights: Sequence[int]) -> int:
    """Sum(value * weight) // sum(weight)."""
    if len(values) != len(weights):
        raise ValueError("values and weights differ in length")
    total_weight = sum(weights)
    if total_weight <= 0:
        raise ValueError("total weight must be positive")
    return sum(v * w for v, w in zip(values, weights)) // total_weight


def mul_div(a: int, b: int, denominator: int) -> int:
    """a * b // denominator without intermediate rounding."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div by zero")
    return a * b // denominator


def clamp_score(score: int) -> int:
    """Clamp to the basis-point score range."""
    return max(MIN_SCORE, min(MAX_SCORE, score))


def tick_to_price(tick: int) -> int:
    """
    Price at a tick, 1.0001 ** tick, in PRECISION scale.

    Binary exponentiation on the fixed-point base; negative ticks
    take the reciprocal of the positive power.
    """
    result = PRECISION
    base = TICK_BASE
    n = abs(tick)
    while n:
        if n & 1:
            result = result * base // PRECISION
        base = base * base // PRECISION
        n >>= 1
    if tick < 0:
        return PRECISION * PRECISION // result
    return result


def to_fixed(value: int) -> int:
    """Lift a whole number into PRECISION scale."""
    return value * PRECISION
