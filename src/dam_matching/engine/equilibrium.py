"""Per-hour intersection search over a sorted step curve.

The search samples the start, the end and an estimated crossing index of the
current range, classifies each sampled point, and narrows the range towards
the side where supply overtakes demand. It never re-checks a sampled point.
"""
import math
from collections.abc import Sequence

from src.dam_common.enums import ClearingStatus, IntersectionKind
from src.dam_common.volumes import vol_eq, vol_le, vol_lt
from src.dam_matching.domain.models import HourlyOutcome, PriceCurvePoint


def demand_overhang(
    points: Sequence[PriceCurvePoint], hour: int, maximum_price: float
) -> HourlyOutcome:
    """Demand cannot be met: price at the ceiling, volume all supply can give."""
    last = points[-1]
    return HourlyOutcome(
        hour=hour,
        price=maximum_price,
        volume=last.sell_volume_maximum,
        point=last,
        status=ClearingStatus.DEMAND_OVERHANG,
        intersection=IntersectionKind.PRICE_CEILING,
    )


def is_infeasible(points: Sequence[PriceCurvePoint], maximum_price: float, tolerance: float) -> bool:
    if not points:
        return False
    last = points[-1]
    return last.price >= maximum_price and vol_lt(
        last.sell_volume_maximum, last.ask_volume_maximum, tolerance
    )


def classify_intersection(
    points: Sequence[PriceCurvePoint],
    index: int,
    hour: int,
    maximum_price: float,
    tolerance: float = 1e-6,
) -> HourlyOutcome | None:
    """Outcome if points[index] is where the curves cross, else None.

    Rules are tried in a fixed order; the first match wins.
    """
    point = points[index]
    is_last = index == len(points) - 1
    ask_min, ask_max = point.ask_volume_minimum, point.ask_volume_maximum
    sell_min, sell_max = point.sell_volume_minimum, point.sell_volume_maximum

    if vol_lt(abs(sell_max), abs(ask_min), tolerance):
        if not is_last:
            return None
        return demand_overhang(points, hour, maximum_price)

    # both curves step here: maximize traded volume
    if (
        not vol_eq(ask_min, ask_max, tolerance)
        and not vol_eq(sell_min, sell_max, tolerance)
        and vol_le(ask_min, sell_max, tolerance)
        and vol_le(sell_min, ask_max, tolerance)
    ):
        return HourlyOutcome(
            hour, point.price, min(ask_max, sell_max), point,
            ClearingStatus.SUCCESSFUL, IntersectionKind.AMBIGUOUS_VOLUME,
        )

    # a step lands exactly on the other curve: middle of the price interval
    if vol_eq(ask_min, sell_max, tolerance):
        upper = point.price if is_last else points[index + 1].price
        return HourlyOutcome(
            hour, (point.price + upper) / 2, ask_min, point,
            ClearingStatus.SUCCESSFUL, IntersectionKind.AMBIGUOUS_PRICE,
        )

    if (
        vol_eq(ask_min, ask_max, tolerance)
        and vol_lt(sell_min, ask_min, tolerance)
        and vol_lt(ask_min, sell_max, tolerance)
    ):
        return HourlyOutcome(
            hour, point.price, ask_min, point,
            ClearingStatus.SUCCESSFUL, IntersectionKind.SELL_STEP,
        )

    if (
        vol_eq(sell_min, sell_max, tolerance)
        and vol_lt(ask_min, sell_min, tolerance)
        and vol_lt(sell_min, ask_max, tolerance)
    ):
        return HourlyOutcome(
            hour, point.price, sell_min, point,
            ClearingStatus.SUCCESSFUL, IntersectionKind.ASK_STEP,
        )

    return None


def _middle_index(points: Sequence[PriceCurvePoint], start: int, end: int) -> int:
    """Crossing index of the two straight lines through the range corners."""
    if start == end:
        return start
    x1, x2 = start, end
    y1 = points[start].sell_volume_maximum
    y2 = points[end].sell_volume_minimum
    y3 = points[start].ask_volume_minimum
    y4 = points[end].ask_volume_maximum
    denominator = y1 - y2 - y3 + y4
    estimate = (x1 * (y4 - y2) + x2 * y1 - x2 * y3) / denominator if denominator else math.nan
    if not math.isfinite(estimate):
        return (start + end) // 2
    middle = int(estimate)
    if middle == start:
        return middle + 1
    if middle == end:
        return middle - 1
    if middle < start or middle > end:
        return (start + end) // 2
    return middle


def solve_hour(
    points: Sequence[PriceCurvePoint],
    hour: int,
    maximum_price: float,
    tolerance: float = 1e-6,
) -> HourlyOutcome:
    if not points:
        return HourlyOutcome.no_trade(hour)
    if is_infeasible(points, maximum_price, tolerance):
        return demand_overhang(points, hour, maximum_price)

    start, end = 0, len(points) - 1
    while start <= end:
        middle = _middle_index(points, start, end)
        for index in sorted({start, middle, end}):
            outcome = classify_intersection(points, index, hour, maximum_price, tolerance)
            if outcome is not None:
                return outcome

        first = points[start]
        pivot = points[middle]
        if vol_le(first.sell_volume_maximum, first.ask_volume_minimum, tolerance) and vol_le(
            pivot.ask_volume_minimum, pivot.sell_volume_maximum, tolerance
        ):
            start, end = start + 1, middle - 1
        else:
            start, end = middle + 1, end - 1

    last = points[-1]
    if vol_lt(last.sell_volume_maximum, last.ask_volume_maximum, tolerance):
        return demand_overhang(points, hour, maximum_price)
    return HourlyOutcome.no_trade(hour)
