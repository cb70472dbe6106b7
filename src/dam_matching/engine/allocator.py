"""Final volume allocation once hourly prices are fixed."""
import logging
from collections.abc import Mapping, Sequence

from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import BidType, DiagnosticKind, TraderCategory
from src.dam_common.volumes import nan_to_zero
from src.dam_matching.domain.models import CategoryVolumes, ClearingDiagnostic, HourlyOutcome

logger = logging.getLogger(__name__)

# Conventional supply and demand yield to every other category on price ties
_LOW_PRIORITY = frozenset({TraderCategory.SUPPLY, TraderCategory.DEMAND})

# A SELL bid above the MCP may pick up rounding noise, but not more
_ABOVE_PRICE_NOISE = 0.1


def _category_rank(bid: Bid) -> int:
    return 1 if bid.category in _LOW_PRIORITY else 0


def priority_order(bids: Sequence[Bid]) -> list[Bid]:
    """SELL cheapest first, ASK dearest first, then category, then larger volume.

    The sort is stable so remaining ties keep input order.
    """
    sells = sorted(
        (b for b in bids if b.bid_type == BidType.SELL),
        key=lambda b: (b.price, _category_rank(b), -b.volume),
    )
    asks = sorted(
        (b for b in bids if b.bid_type == BidType.ASK),
        key=lambda b: (-b.price, _category_rank(b), -b.volume),
    )
    return sells + asks


class VolumeAllocator:
    def __init__(self, balance_tolerance: float = 0.5) -> None:
        self.balance_tolerance = balance_tolerance

    def allocate(
        self,
        outcomes: Sequence[HourlyOutcome],
        hourly_bids: Mapping[int, Sequence[Bid]],
        block_bids: Sequence[BlockBid],
    ) -> dict[int, float]:
        """Accepted volume per bid identifier. Does not touch the bids."""
        allocation: dict[int, float] = {}
        remaining = {
            BidType.ASK: [nan_to_zero(o.volume) for o in outcomes],
            BidType.SELL: [nan_to_zero(o.volume) for o in outcomes],
        }

        for block in block_bids:
            allocation[block.identifier] = block.accepted_volume
            if not block.accepted:
                continue
            pool = remaining[block.bid_type]
            for hour in block.hours:
                pool[hour] -= block.volume

        for outcome in outcomes:
            hour = outcome.hour
            for bid in priority_order(hourly_bids.get(hour, ())):
                pool = remaining[bid.bid_type]
                accepted = min(pool[hour], bid.volume) if pool[hour] > 0 else 0.0
                pool[hour] -= accepted
                allocation[bid.identifier] = accepted
                if (
                    bid.bid_type == BidType.SELL
                    and accepted > _ABOVE_PRICE_NOISE
                    and bid.price > outcome.price
                ):
                    logger.error(
                        "Hour %d: SELL bid %d priced %.2f accepted %.2f above MCP %.2f",
                        hour, bid.identifier, bid.price, accepted, outcome.price,
                    )
        return allocation

    def apply(
        self,
        allocation: Mapping[int, float],
        hourly_bids: Mapping[int, Sequence[Bid]],
    ) -> None:
        """Write final accepted volumes onto hourly bids.

        Block acceptance is carried by the block's own flag.
        """
        for bids in hourly_bids.values():
            for bid in bids:
                bid.accept(allocation.get(bid.identifier, 0.0))

    def verify_balance(
        self,
        outcomes: Sequence[HourlyOutcome],
        hourly_bids: Mapping[int, Sequence[Bid]],
        block_bids: Sequence[BlockBid],
        allocation: Mapping[int, float],
    ) -> list[ClearingDiagnostic]:
        diagnostics: list[ClearingDiagnostic] = []
        for outcome in outcomes:
            hour = outcome.hour
            totals = {BidType.ASK: 0.0, BidType.SELL: 0.0}
            for bid in hourly_bids.get(hour, ()):
                totals[bid.bid_type] += allocation.get(bid.identifier, 0.0)
            for block in block_bids:
                if block.accepted and hour in block.hours:
                    totals[block.bid_type] += block.volume

            difference = totals[BidType.ASK] - totals[BidType.SELL]
            if abs(difference) > self.balance_tolerance:
                message = (
                    f"hour {hour}: accepted ASK {totals[BidType.ASK]:.2f} "
                    f"vs SELL {totals[BidType.SELL]:.2f}"
                )
                logger.warning("Volume mismatch, %s", message)
                diagnostics.append(
                    ClearingDiagnostic(DiagnosticKind.VOLUME_MISMATCH, message, hour=hour)
                )
        return diagnostics

    @staticmethod
    def category_volumes(
        hourly_bids: Mapping[int, Sequence[Bid]],
        allocation: Mapping[int, float],
        hours: int,
    ) -> CategoryVolumes:
        volumes = CategoryVolumes()
        for category in TraderCategory:
            volumes.requested[category] = {
                h: {t: 0.0 for t in BidType} for h in range(hours)
            }
            volumes.unaccepted[category] = {
                h: {t: 0.0 for t in BidType} for h in range(hours)
            }
        for hour in range(hours):
            for bid in hourly_bids.get(hour, ()):
                accepted = allocation.get(bid.identifier, 0.0)
                volumes.requested[bid.category][hour][bid.bid_type] += bid.volume
                volumes.unaccepted[bid.category][hour][bid.bid_type] += bid.volume - accepted
        return volumes
