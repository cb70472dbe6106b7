"""Aggregate hourly bids into step supply/demand curves."""
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import BidType
from src.dam_common.volumes import vol_eq
from src.dam_matching.domain.models import PriceCurvePoint


def hour_bids(
    hourly_bids: Mapping[int, Sequence[Bid]], block_bids: Iterable[BlockBid], hour: int
) -> list[Bid]:
    """Simple bids of ``hour`` plus every accepted block covering it, materialized."""
    bids = list(hourly_bids.get(hour, ()))
    bids.extend(b.materialize(hour) for b in block_bids if b.accepted and hour in b.hours)
    return bids


def build_price_curve(bids: Iterable[Bid]) -> list[PriceCurvePoint]:
    """One point per distinct price, ascending.

    Sell volumes accumulate from the cheapest price upwards, ask volumes from
    the most expensive price downwards.
    """
    ordered = sorted(bids, key=lambda b: (b.price, -b.volume))
    prices: list[float] = []
    sell_at: dict[float, float] = defaultdict(float)
    ask_at: dict[float, float] = defaultdict(float)
    sell_ids: dict[float, set[int]] = defaultdict(set)
    ask_ids: dict[float, set[int]] = defaultdict(set)

    for bid in ordered:
        if not prices or prices[-1] != bid.price:
            prices.append(bid.price)
        if bid.bid_type == BidType.SELL:
            sell_at[bid.price] += bid.volume
            sell_ids[bid.price].add(bid.identifier)
        else:
            ask_at[bid.price] += bid.volume
            ask_ids[bid.price].add(bid.identifier)

    # ask maximum at index i covers prices[i:], so accumulate from the top
    ask_maximum = [0.0] * (len(prices) + 1)
    for i in range(len(prices) - 1, -1, -1):
        ask_maximum[i] = ask_maximum[i + 1] + ask_at[prices[i]]

    points: list[PriceCurvePoint] = []
    sell_total = 0.0
    for i, price in enumerate(prices):
        sell_minimum = sell_total
        sell_total += sell_at[price]
        points.append(
            PriceCurvePoint(
                price=price,
                ask_volume_minimum=ask_maximum[i + 1],
                ask_volume_maximum=ask_maximum[i],
                sell_volume_minimum=sell_minimum,
                sell_volume_maximum=sell_total,
                ask_points=frozenset(ask_ids[price]),
                sell_points=frozenset(sell_ids[price]),
            )
        )
    return points


def build_price_curves(
    hourly_bids: Mapping[int, Sequence[Bid]], block_bids: Sequence[BlockBid], hours: int
) -> list[list[PriceCurvePoint]]:
    return [build_price_curve(hour_bids(hourly_bids, block_bids, h)) for h in range(hours)]


def adapt_price_curve(
    points: Sequence[PriceCurvePoint], block: BlockBid, tolerance: float = 1e-6
) -> list[PriceCurvePoint]:
    """Remove a deactivated block's volume from an existing hourly curve.

    Equivalent to rebuilding the curve without the block. Points left without
    a step on either side are dropped, since a rebuild would not produce them.
    """
    volume = block.volume
    adapted: list[PriceCurvePoint] = []
    for point in points:
        if block.bid_type == BidType.SELL:
            if point.price > block.price:
                point = replace(
                    point,
                    sell_volume_minimum=point.sell_volume_minimum - volume,
                    sell_volume_maximum=point.sell_volume_maximum - volume,
                )
            elif point.price == block.price:
                point = replace(
                    point,
                    sell_volume_maximum=point.sell_volume_maximum - volume,
                    sell_points=point.sell_points - {block.identifier},
                )
        else:
            if point.price < block.price:
                point = replace(
                    point,
                    ask_volume_minimum=point.ask_volume_minimum - volume,
                    ask_volume_maximum=point.ask_volume_maximum - volume,
                )
            elif point.price == block.price:
                point = replace(
                    point,
                    ask_volume_maximum=point.ask_volume_maximum - volume,
                    ask_points=point.ask_points - {block.identifier},
                )

        no_ask_step = vol_eq(point.ask_volume_minimum, point.ask_volume_maximum, tolerance)
        no_sell_step = vol_eq(point.sell_volume_minimum, point.sell_volume_maximum, tolerance)
        if no_ask_step and no_sell_step:
            continue
        adapted.append(point)
    return adapted
