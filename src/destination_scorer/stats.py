"""Null-safe statistics helpers.

Every average is carried as a MetricAggregate (value + sample count) or
None, so "no samples" can never be confused with a zero value.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional


@dataclass(frozen=True)
class MetricAggregate:
    """An average and the number of samples it was computed from."""
    value: float
    sample_count: int


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero to a fixed number of decimal places.

    round() uses banker's rounding on binary floats, so 0.25 -> 0.2. Display
    rounding here must match half-up (0.25 -> 0.3).
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round half-up to the nearest integer."""
    return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def mean_of(values: Iterable[Optional[float]]) -> Optional[MetricAggregate]:
    """Mean of the non-null values, or None when there are none.

    Uses math.fsum so the result does not depend on input order.
    """
    present = [v for v in values if v is not None]
    if not present:
        return None
    return MetricAggregate(value=math.fsum(present) / len(present), sample_count=len(present))


def flatten(aggregate: Optional[MetricAggregate], places: int = 1) -> Optional[float]:
    """Convert an aggregate to a rounded float for presentation (None stays None)."""
    if aggregate is None:
        return None
    return round_half_up(aggregate.value, places)


def is_number(value: object) -> bool:
    """True for real numbers that can take part in min/max. Excludes bool and NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))
