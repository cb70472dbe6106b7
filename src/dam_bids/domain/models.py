"""Bid domain models: pure dataclasses, no framework dependency."""
from dataclasses import dataclass, field

from src.dam_common.enums import BidType, TraderCategory


@dataclass
class Bid:
    """Single-hour bid. Volume is always positive; direction is in bid_type."""

    price: float  # EUR/MWh
    volume: float  # MWh, > 0
    bid_type: BidType
    hour: int = 0  # 0-23
    category: TraderCategory = TraderCategory.UNKNOWN
    startup_costs: float = 0.0  # EUR/MWh, may be negative
    identifier: int = -1  # assigned by the engine
    accepted_volume: float = field(default=0.0, init=False)

    @property
    def remaining_volume(self) -> float:
        return self.volume - self.accepted_volume

    def accept(self, volume: float) -> None:
        if not (0 <= volume <= self.volume):
            raise ValueError(
                f"Accepted volume {volume} outside [0, {self.volume}] for bid {self.identifier}"
            )
        self.accepted_volume = volume


@dataclass
class BlockBid:
    """Bid over the inclusive hour range [start_hour, end_hour], all-or-nothing.

    ``accepted`` is reset to True at the start of every clearing call and may
    only flip to False once during that call.
    """

    price: float
    volume: float
    bid_type: BidType
    start_hour: int
    end_hour: int
    category: TraderCategory = TraderCategory.UNKNOWN
    startup_costs: float = 0.0
    identifier: int = -1
    accepted: bool = field(default=True, init=False)

    @property
    def hours(self) -> range:
        return range(self.start_hour, self.end_hour + 1)

    @property
    def length(self) -> int:
        return self.end_hour - self.start_hour + 1

    @property
    def accepted_volume(self) -> float:
        return self.volume if self.accepted else 0.0

    def reset(self) -> None:
        self.accepted = True

    def deactivate(self) -> None:
        self.accepted = False

    def materialize(self, hour: int) -> Bid:
        """Single-hour view of this block, sharing its identifier."""
        return Bid(
            price=self.price,
            volume=self.volume,
            bid_type=self.bid_type,
            hour=hour,
            category=self.category,
            startup_costs=self.startup_costs,
            identifier=self.identifier,
        )
