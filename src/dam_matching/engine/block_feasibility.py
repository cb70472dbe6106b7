"""Iterative exclusion of block bids that the hourly prices do not support.

Each round solves every hour, evaluates accepted blocks at the new prices and
deactivates the worst offenders. A deactivated block stays out for the rest of
the call, so the loop ends after at most one round per block.
"""
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import BidType, DiagnosticKind
from src.dam_matching.domain.config import ClearingConfig
from src.dam_matching.domain.models import ClearingDiagnostic, HourlyOutcome, PriceCurvePoint
from src.dam_matching.engine.allocator import VolumeAllocator
from src.dam_matching.engine.curve_builder import adapt_price_curve, build_price_curves

logger = logging.getLogger(__name__)

# A block priced within this distance of the MCP sets the price
_PRICE_SETTING_EPSILON = 1e-5

HourSolver = Callable[[list[list[PriceCurvePoint]]], list[HourlyOutcome]]


@dataclass(frozen=True, order=True)
class BlockProfit:
    """Sort key for removal candidates: worst profit, then smaller volume, then input order."""

    profit: float
    volume: float
    index: int
    block: BlockBid = field(compare=False)


def block_profit(block: BlockBid, outcomes: Sequence[HourlyOutcome]) -> float:
    """Total profit over the block's hours; -inf if any hour does not trade."""
    total = 0.0
    for hour in block.hours:
        price = outcomes[hour].price
        if math.isnan(price):
            return -math.inf
        total += price - block.price if block.bid_type == BidType.SELL else block.price - price
    return total


def supply_surplus(curves: Sequence[Sequence[PriceCurvePoint]]) -> list[float]:
    """Per hour, total supply minus demand still bidding at the top of the curve."""
    surplus = []
    for points in curves:
        if not points:
            surplus.append(math.inf)
            continue
        last = points[-1]
        surplus.append(last.sell_volume_maximum - last.ask_volume_maximum)
    return surplus


class BlockFeasibilityLoop:
    def __init__(
        self,
        config: ClearingConfig,
        hourly_bids: Mapping[int, Sequence[Bid]],
        block_bids: Sequence[BlockBid],
        solver: HourSolver,
        allocator: VolumeAllocator,
    ) -> None:
        self.config = config
        self.hourly_bids = hourly_bids
        self.block_bids = block_bids
        self._solver = solver
        self._allocator = allocator
        self._curves: list[list[PriceCurvePoint]] | None = None
        self.outcomes: list[HourlyOutcome] = []
        self.deactivated: list[int] = []
        self.unresolved: list[int] = []
        self.diagnostics: list[ClearingDiagnostic] = []

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve(self) -> list[HourlyOutcome]:
        """Solve every hour against the currently accepted set."""
        if self._curves is None or not self.config.incremental_curve_adaptation:
            self._curves = build_price_curves(
                self.hourly_bids, self.block_bids, self.config.hours_per_day
            )
        self.outcomes = self._solver(self._curves)
        return self.outcomes

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def run_profit_pass(self) -> int:
        """Remove unprofitable blocks until a round removes nothing. Returns rounds."""
        rounds = 0
        while True:
            rounds += 1
            self.solve()
            candidates = self._candidates()
            removed = self._deactivate(candidates, self._max_removals(candidates))
            logger.debug(
                "Profit round %d: %d candidates, %d removed", rounds, len(candidates), removed
            )
            if not removed:
                return rounds

    def run_exogenous_pass(self) -> int:
        """Profit check first, then make room for unaccepted must-clear supply."""
        rounds = 0
        while True:
            rounds += 1
            self.solve()
            candidates = self._candidates()
            removed = self._deactivate(candidates, self._max_removals(candidates))
            if not candidates:
                removed = self._deactivate_for_must_clear()
            logger.debug("Exogenous round %d: %d removed", rounds, removed)
            if not removed:
                return rounds

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _max_removals(self, candidates: Sequence[BlockProfit]) -> int:
        return max(
            self.config.block_removal_limit,
            int(len(candidates) * self.config.block_removal_percentage),
        )

    def _candidates(self) -> list[BlockProfit]:
        remaining_capacity = [
            o.point.sell_volume_maximum - o.point.ask_volume_minimum if o.point else 0.0
            for o in self.outcomes
        ]
        candidates = []
        for index, block in enumerate(self.block_bids):
            if not block.accepted:
                continue
            profit = block_profit(block, self.outcomes)
            if self.config.block_always_in_market:
                unwanted = self._out_of_market(block, remaining_capacity)
            else:
                unwanted = profit < 0
            if unwanted:
                candidates.append(BlockProfit(profit, block.volume, index, block))
        return sorted(candidates)

    def _out_of_market(self, block: BlockBid, remaining_capacity: list[float]) -> bool:
        out = False
        for hour in block.hours:
            price = self.outcomes[hour].price
            if math.isnan(price):
                out = True
                continue
            hourly = price - block.price if block.bid_type == BidType.SELL else block.price - price
            if hourly < 0:
                out = True
            elif block.bid_type == BidType.SELL and abs(hourly) < _PRICE_SETTING_EPSILON:
                # price-setting block: must fit into the capacity left at the MCP
                remaining_capacity[hour] -= block.volume
                if remaining_capacity[hour] < 0:
                    out = True
        return out

    def _deactivate_for_must_clear(self) -> int:
        allocation = self._allocator.allocate(self.outcomes, self.hourly_bids, self.block_bids)
        volumes = self._allocator.category_volumes(
            self.hourly_bids, allocation, self.config.hours_per_day
        )

        selling_hours = {
            hour
            for block in self.block_bids
            if block.accepted and block.bid_type == BidType.SELL
            for hour in block.hours
        }
        worst_hour, worst_volume = None, -math.inf
        for hour in sorted(selling_hours):
            unaccepted = volumes.unaccepted_sell(self.config.must_clear_categories, hour)
            if unaccepted > worst_volume:
                worst_hour, worst_volume = hour, unaccepted
        if worst_hour is None or worst_volume <= self.config.volume_tolerance:
            return 0

        logger.info(
            "Hour %d: %.2f MWh of must-clear supply unaccepted, removing profitable blocks",
            worst_hour, worst_volume,
        )
        covering = sorted(
            BlockProfit(block_profit(block, self.outcomes), block.volume, index, block)
            for index, block in enumerate(self.block_bids)
            if block.accepted and block.bid_type == BidType.SELL and worst_hour in block.hours
        )
        return self._deactivate(covering, self._max_removals([]), must_clear=True)

    def _deactivate(
        self, candidates: Sequence[BlockProfit], max_number: int, must_clear: bool = False
    ) -> int:
        """Deactivate up to ``max_number`` candidates the market can do without."""
        if not candidates:
            return 0
        surplus = supply_surplus(self._curves or [])
        removed: list[BlockBid] = []
        for candidate in candidates:
            if len(removed) >= max_number:
                break
            block = candidate.block
            if block.bid_type == BidType.SELL:
                minimal = min(surplus[h] for h in block.hours)
                if minimal - block.volume <= 0:
                    self._flag_unresolvable(block, must_clear)
                    continue
                for hour in block.hours:
                    surplus[hour] -= block.volume
            block.deactivate()
            removed.append(block)
            self.deactivated.append(block.identifier)
            logger.info(
                "Block bid %d deactivated (profit %.2f, volume %.2f)",
                block.identifier, candidate.profit, block.volume,
            )

        if removed and self.config.incremental_curve_adaptation and self._curves is not None:
            for block in removed:
                for hour in block.hours:
                    self._curves[hour] = adapt_price_curve(
                        self._curves[hour], block, self.config.volume_tolerance
                    )
        return len(removed)

    def _flag_unresolvable(self, block: BlockBid, must_clear: bool) -> None:
        if must_clear:
            message = f"block {block.identifier} kept, removal would make the market fail"
        else:
            message = f"block {block.identifier} unprofitable but cannot be removed"
        logger.warning("No block deactivation possible: %s", message)
        if block.identifier not in self.unresolved:
            self.unresolved.append(block.identifier)
            self.diagnostics.append(
                ClearingDiagnostic(
                    DiagnosticKind.BLOCK_BID_UNRESOLVABLE, message, bid_id=block.identifier
                )
            )
