# src/dam_matching/application/schemas.py
from collections.abc import Sequence

from pydantic import BaseModel, Field, model_validator

from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import BidType, TraderCategory
from src.dam_matching.domain.models import DayResult


class BidIn(BaseModel):
    price: float
    volume: float
    bid_type: BidType
    hour: int = 0
    category: TraderCategory = TraderCategory.UNKNOWN
    startup_costs: float = 0.0
    client_bid_id: str | None = None

    def to_domain(self) -> Bid:
        return Bid(
            price=self.price,
            volume=self.volume,
            bid_type=self.bid_type,
            hour=self.hour,
            category=self.category,
            startup_costs=self.startup_costs,
        )


class BlockBidIn(BaseModel):
    price: float
    volume: float
    bid_type: BidType
    start_hour: int
    end_hour: int
    category: TraderCategory = TraderCategory.UNKNOWN
    startup_costs: float = 0.0
    client_bid_id: str | None = None

    @model_validator(mode="after")
    def end_not_before_start(self) -> "BlockBidIn":
        if self.end_hour < self.start_hour:
            raise ValueError("end_hour must not be before start_hour")
        return self

    def to_domain(self) -> BlockBid:
        return BlockBid(
            price=self.price,
            volume=self.volume,
            bid_type=self.bid_type,
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            category=self.category,
            startup_costs=self.startup_costs,
        )


class ClearDayRequest(BaseModel):
    bids: list[BidIn] = Field(default_factory=list)
    block_bids: list[BlockBidIn] = Field(default_factory=list)


class SinglePeriodRequest(BaseModel):
    bids: list[BidIn] = Field(default_factory=list)


class HourlyResultOut(BaseModel):
    hour: int
    price: float | None
    volume: float | None
    status: str
    intersection: str
    startup_costs: float | None


class BidAllocationOut(BaseModel):
    client_bid_id: str | None
    identifier: int
    hour: int
    bid_type: str
    price: float
    volume: float
    accepted_volume: float


class BlockAllocationOut(BaseModel):
    client_bid_id: str | None
    identifier: int
    start_hour: int
    end_hour: int
    bid_type: str
    price: float
    volume: float
    accepted: bool
    accepted_volume: float


class DiagnosticOut(BaseModel):
    kind: str
    message: str
    hour: int | None = None
    bid_id: int | None = None


class ClearingResponse(BaseModel):
    phase: str
    rounds: dict[str, int]
    hours: list[HourlyResultOut]
    bids: list[BidAllocationOut]
    block_bids: list[BlockAllocationOut]
    deactivated_block_ids: list[int]
    unresolved_block_ids: list[int]
    diagnostics: list[DiagnosticOut]

    @classmethod
    def from_result(
        cls,
        result: DayResult,
        bids: Sequence[tuple[str | None, Bid]],
        block_bids: Sequence[tuple[str | None, BlockBid]] = (),
    ) -> "ClearingResponse":
        """Build from a DayResult; ``bids`` pair each client id with its domain bid."""
        startup = result.startup_costs or [float("nan")] * len(result.outcomes)
        return cls(
            phase=result.phase.value,
            rounds={phase.value: n for phase, n in result.rounds.items()},
            hours=[
                HourlyResultOut(
                    hour=o.hour,
                    price=o.price,
                    volume=o.volume,
                    status=o.status.value,
                    intersection=o.intersection.value,
                    startup_costs=startup[i],
                )
                for i, o in enumerate(result.outcomes)
            ],
            bids=[
                BidAllocationOut(
                    client_bid_id=client_id,
                    identifier=b.identifier,
                    hour=b.hour,
                    bid_type=b.bid_type.value,
                    price=b.price,
                    volume=b.volume,
                    accepted_volume=b.accepted_volume,
                )
                for client_id, b in bids
            ],
            block_bids=[
                BlockAllocationOut(
                    client_bid_id=client_id,
                    identifier=b.identifier,
                    start_hour=b.start_hour,
                    end_hour=b.end_hour,
                    bid_type=b.bid_type.value,
                    price=b.price,
                    volume=b.volume,
                    accepted=b.accepted,
                    accepted_volume=b.accepted_volume,
                )
                for client_id, b in block_bids
            ],
            deactivated_block_ids=list(result.deactivated_block_ids),
            unresolved_block_ids=list(result.unresolved_block_ids),
            diagnostics=[
                DiagnosticOut(kind=d.kind.value, message=d.message, hour=d.hour, bid_id=d.bid_id)
                for d in result.diagnostics
            ],
        )
