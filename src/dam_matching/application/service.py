"""ClearingApplicationService: thin composition layer over the engine.

The engine is synchronous and CPU bound; it runs in a worker thread so the
event loop keeps serving requests. The engine's own lock serializes calls.
"""

import asyncio
from collections import defaultdict

from config.settings import settings
from src.dam_bids.domain.models import Bid
from src.dam_common.errors import NoBidsSubmittedError
from src.dam_matching.application.schemas import (
    ClearDayRequest,
    ClearingResponse,
    SinglePeriodRequest,
)
from src.dam_matching.domain.config import ClearingConfig
from src.dam_matching.engine.engine import MarketClearingEngine


class ClearingApplicationService:
    def __init__(self, engine: MarketClearingEngine | None = None) -> None:
        self._engine = engine or MarketClearingEngine(ClearingConfig.from_settings(settings))

    async def clear_day(self, req: ClearDayRequest) -> ClearingResponse:
        if not req.bids and not req.block_bids:
            raise NoBidsSubmittedError()
        bids = [(b.client_bid_id, b.to_domain()) for b in req.bids]
        blocks = [(b.client_bid_id, b.to_domain()) for b in req.block_bids]

        hourly: dict[int, list[Bid]] = defaultdict(list)
        for _, bid in bids:
            hourly[bid.hour].append(bid)

        result = await asyncio.to_thread(
            self._engine.clear_day, hourly, [block for _, block in blocks]
        )
        return ClearingResponse.from_result(result, bids, blocks)

    async def clear_single_period(self, req: SinglePeriodRequest) -> ClearingResponse:
        if not req.bids:
            raise NoBidsSubmittedError()
        bids = [(b.client_bid_id, b.to_domain()) for b in req.bids]
        result = await asyncio.to_thread(
            self._engine.clear_single_period, [bid for _, bid in bids]
        )
        return ClearingResponse.from_result(result, bids)
