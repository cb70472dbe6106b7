# tests/unit/test_clearing_service.py
"""Unit tests for ClearingApplicationService over a real engine."""
import pytest

from src.dam_common.errors import NoBidsSubmittedError
from src.dam_matching.application.schemas import (
    BidIn,
    BlockBidIn,
    ClearDayRequest,
    SinglePeriodRequest,
)
from src.dam_matching.application.service import ClearingApplicationService
from src.dam_matching.domain.config import ClearingConfig
from src.dam_matching.engine.engine import MarketClearingEngine


def _scenario_a(hour: int) -> list[BidIn]:
    return [
        BidIn(price=1, volume=10, bid_type="SELL", hour=hour, client_bid_id=f"s1-{hour}"),
        BidIn(price=2, volume=10, bid_type="ASK", hour=hour, client_bid_id=f"a2-{hour}"),
        BidIn(price=3, volume=10, bid_type="SELL", hour=hour, client_bid_id=f"s3-{hour}"),
        BidIn(price=4, volume=8, bid_type="ASK", hour=hour, client_bid_id=f"a4-{hour}"),
    ]


@pytest.fixture
def service() -> ClearingApplicationService:
    return ClearingApplicationService(MarketClearingEngine(ClearingConfig()))


class TestClearDay:
    async def test_scenario_b(self, service: ClearingApplicationService) -> None:
        req = ClearDayRequest(
            bids=[b for h in range(24) for b in _scenario_a(h)],
            block_bids=[
                BlockBidIn(price=2, volume=8, bid_type="SELL", start_hour=0, end_hour=1,
                           client_bid_id="blk-cheap"),
                BlockBidIn(price=5, volume=2, bid_type="SELL", start_hour=0, end_hour=1,
                           client_bid_id="blk-dear"),
            ],
        )
        resp = await service.clear_day(req)
        assert resp.phase == "FINALIZED"
        assert len(resp.hours) == 24
        assert resp.hours[0].price == 2
        assert resp.hours[0].volume == 18
        blocks = {b.client_bid_id: b for b in resp.block_bids}
        assert blocks["blk-cheap"].accepted is True
        assert blocks["blk-dear"].accepted is False
        assert resp.deactivated_block_ids == [blocks["blk-dear"].identifier]
        bids = {b.client_bid_id: b for b in resp.bids}
        assert bids["a4-5"].accepted_volume == 8
        assert bids["a2-5"].accepted_volume == 2

    async def test_empty_request_raises(self, service: ClearingApplicationService) -> None:
        with pytest.raises(NoBidsSubmittedError):
            await service.clear_day(ClearDayRequest())

    async def test_invalid_bid_reported(self, service: ClearingApplicationService) -> None:
        req = ClearDayRequest(bids=_scenario_a(0) + [
            BidIn(price=9999, volume=1, bid_type="SELL", client_bid_id="bad"),
        ])
        resp = await service.clear_day(req)
        assert [d.kind for d in resp.diagnostics] == ["INVALID_BID"]
        bad = next(b for b in resp.bids if b.client_bid_id == "bad")
        assert bad.accepted_volume == 0


class TestSinglePeriod:
    async def test_clears_one_period(self, service: ClearingApplicationService) -> None:
        req = SinglePeriodRequest(bids=[
            BidIn(price=2, volume=10, bid_type="SELL"),
            BidIn(price=4, volume=10, bid_type="SELL"),
            BidIn(price=1, volume=10, bid_type="ASK"),
            BidIn(price=3, volume=10, bid_type="ASK"),
        ])
        resp = await service.clear_single_period(req)
        assert len(resp.hours) == 1
        assert resp.hours[0].price == 2.5
        assert resp.block_bids == []

    async def test_empty_request_raises(self, service: ClearingApplicationService) -> None:
        with pytest.raises(NoBidsSubmittedError):
            await service.clear_single_period(SinglePeriodRequest())


class TestSchemas:
    def test_block_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError):
            BlockBidIn(price=2, volume=8, bid_type="SELL", start_hour=5, end_hour=4)
