from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import BidType
from src.dam_matching.engine.curve_builder import (
    adapt_price_curve,
    build_price_curve,
    build_price_curves,
)


def _bid(price: float, volume: float, bid_type: BidType, identifier: int = -1) -> Bid:
    return Bid(price=price, volume=volume, bid_type=bid_type, identifier=identifier)


def _scenario_a() -> list[Bid]:
    return [
        _bid(1, 10, BidType.SELL, 0),
        _bid(2, 10, BidType.ASK, 1),
        _bid(3, 10, BidType.SELL, 2),
        _bid(4, 8, BidType.ASK, 3),
    ]


class TestBuildPriceCurve:
    def test_empty_hour_has_no_points(self) -> None:
        assert build_price_curve([]) == []

    def test_one_point_per_distinct_price(self) -> None:
        points = build_price_curve(_scenario_a())
        assert [p.price for p in points] == [1, 2, 3, 4]

    def test_sell_volumes_accumulate_upwards(self) -> None:
        points = build_price_curve(_scenario_a())
        assert [(p.sell_volume_minimum, p.sell_volume_maximum) for p in points] == [
            (0, 10), (10, 10), (10, 20), (20, 20),
        ]

    def test_ask_volumes_accumulate_downwards(self) -> None:
        points = build_price_curve(_scenario_a())
        assert [(p.ask_volume_minimum, p.ask_volume_maximum) for p in points] == [
            (18, 18), (8, 18), (8, 8), (0, 8),
        ]

    def test_points_record_contributing_ids(self) -> None:
        bids = _scenario_a() + [_bid(2, 5, BidType.ASK, 7), _bid(2, 1, BidType.SELL, 9)]
        point = build_price_curve(bids)[1]
        assert point.ask_points == frozenset({1, 7})
        assert point.sell_points == frozenset({9})

    def test_input_order_does_not_matter(self) -> None:
        bids = _scenario_a()
        assert build_price_curve(bids) == build_price_curve(list(reversed(bids)))

    def test_minimum_never_exceeds_maximum(self) -> None:
        bids = _scenario_a() + [_bid(0.5, 3, BidType.ASK, 4), _bid(3, 4, BidType.ASK, 5)]
        for p in build_price_curve(bids):
            assert p.ask_volume_minimum <= p.ask_volume_maximum
            assert p.sell_volume_minimum <= p.sell_volume_maximum


class TestBuildPriceCurves:
    def test_accepted_blocks_are_materialized_per_hour(self) -> None:
        block = BlockBid(price=2, volume=8, bid_type=BidType.SELL, start_hour=0, end_hour=1,
                         identifier=100_000)
        curves = build_price_curves({0: _scenario_a()}, [block], 3)
        assert len(curves) == 3
        assert 100_000 in curves[0][1].sell_points
        assert curves[1][0].sell_volume_maximum == 8
        assert curves[2] == []

    def test_deactivated_blocks_are_skipped(self) -> None:
        block = BlockBid(price=2, volume=8, bid_type=BidType.SELL, start_hour=0, end_hour=0,
                         identifier=100_000)
        block.deactivate()
        curves = build_price_curves({0: _scenario_a()}, [block], 1)
        assert curves[0] == build_price_curve(_scenario_a())


class TestAdaptPriceCurve:
    def _with_block(self, block: BlockBid) -> list:
        return build_price_curve(_scenario_a() + [block.materialize(0)])

    def test_sell_block_removal_matches_rebuild(self) -> None:
        block = BlockBid(price=2, volume=8, bid_type=BidType.SELL, start_hour=0, end_hour=0,
                         identifier=100_000)
        adapted = adapt_price_curve(self._with_block(block), block)
        assert adapted == build_price_curve(_scenario_a())

    def test_ask_block_removal_matches_rebuild(self) -> None:
        block = BlockBid(price=3, volume=6, bid_type=BidType.ASK, start_hour=0, end_hour=0,
                         identifier=100_001)
        adapted = adapt_price_curve(self._with_block(block), block)
        assert adapted == build_price_curve(_scenario_a())

    def test_point_without_step_is_dropped(self) -> None:
        block = BlockBid(price=5, volume=2, bid_type=BidType.SELL, start_hour=0, end_hour=0,
                         identifier=100_002)
        curve = self._with_block(block)
        assert curve[-1].price == 5
        adapted = adapt_price_curve(curve, block)
        assert [p.price for p in adapted] == [1, 2, 3, 4]
