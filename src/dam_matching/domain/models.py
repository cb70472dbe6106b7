from dataclasses import dataclass, field

from src.dam_common.enums import (
    BidType,
    ClearingPhase,
    ClearingStatus,
    DiagnosticKind,
    IntersectionKind,
    TraderCategory,
)

NAN = float("nan")


@dataclass(frozen=True)
class PriceCurvePoint:
    """One step of an hour's aggregated curves at ``price``.

    Minimum/maximum are the cumulative volumes just before and at this price:
    sell volumes accumulate upwards (bids priced <= price), ask volumes
    downwards (bids priced >= price).
    """

    price: float
    ask_volume_minimum: float = 0.0
    ask_volume_maximum: float = 0.0
    sell_volume_minimum: float = 0.0
    sell_volume_maximum: float = 0.0
    ask_points: frozenset[int] = frozenset()  # ids of ASK bids priced exactly here
    sell_points: frozenset[int] = frozenset()  # ids of SELL bids priced exactly here

    def __str__(self) -> str:
        return (
            f"price {self.price}, askMax {self.ask_volume_maximum}, "
            f"askMin {self.ask_volume_minimum}, sellMin {self.sell_volume_minimum}, "
            f"sellMax {self.sell_volume_maximum}"
        )


@dataclass(frozen=True)
class HourlyOutcome:
    """Clearing result of a single hour. NaN price/volume means no trade."""

    hour: int
    price: float
    volume: float
    point: PriceCurvePoint | None  # point that produced the result (provenance)
    status: ClearingStatus
    intersection: IntersectionKind

    @property
    def traded(self) -> bool:
        return self.status != ClearingStatus.NO_TRADE

    @classmethod
    def no_trade(cls, hour: int) -> "HourlyOutcome":
        return cls(hour, NAN, NAN, None, ClearingStatus.NO_TRADE, IntersectionKind.NONE)


@dataclass(frozen=True)
class ClearingDiagnostic:
    """Recoverable problem found during clearing; logged and returned, never raised."""

    kind: DiagnosticKind
    message: str
    hour: int | None = None
    bid_id: int | None = None


@dataclass
class CategoryVolumes:
    """Requested and unaccepted hourly-bid volume per (category, hour, bid type)."""

    requested: dict[TraderCategory, dict[int, dict[BidType, float]]] = field(
        default_factory=dict
    )
    unaccepted: dict[TraderCategory, dict[int, dict[BidType, float]]] = field(
        default_factory=dict
    )

    def accepted(self, category: TraderCategory, hour: int, bid_type: BidType) -> float:
        return (
            self.requested[category][hour][bid_type]
            - self.unaccepted[category][hour][bid_type]
        )

    def unaccepted_sell(self, categories: frozenset[TraderCategory], hour: int) -> float:
        return sum(
            self.unaccepted[c][hour][BidType.SELL] for c in categories if c in self.unaccepted
        )


@dataclass
class DayResult:
    outcomes: list[HourlyOutcome]
    startup_costs: list[float] = field(default_factory=list)
    deactivated_block_ids: list[int] = field(default_factory=list)
    unresolved_block_ids: list[int] = field(default_factory=list)
    rounds: dict[ClearingPhase, int] = field(default_factory=dict)
    phase: ClearingPhase = ClearingPhase.INITIAL
    category_volumes: CategoryVolumes | None = None
    diagnostics: list[ClearingDiagnostic] = field(default_factory=list)

    @property
    def prices(self) -> list[float]:
        return [o.price for o in self.outcomes]

    @property
    def volumes(self) -> list[float]:
        return [o.volume for o in self.outcomes]

    def diagnostics_of(self, kind: DiagnosticKind) -> list[ClearingDiagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
