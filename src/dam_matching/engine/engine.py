"""MarketClearingEngine: orchestrates one day-ahead clearing call."""
import logging
import math
import threading
from collections import defaultdict
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.enums import ClearingPhase, ClearingStatus, DiagnosticKind
from src.dam_common.errors import InvalidBidError, InvalidBlockBidError
from src.dam_common.id_generator import BidIdentifierSequence
from src.dam_matching.domain.config import ClearingConfig
from src.dam_matching.domain.models import (
    ClearingDiagnostic,
    DayResult,
    HourlyOutcome,
    PriceCurvePoint,
)
from src.dam_matching.engine.allocator import VolumeAllocator
from src.dam_matching.engine.block_feasibility import BlockFeasibilityLoop
from src.dam_matching.engine.curve_builder import build_price_curve
from src.dam_matching.engine.equilibrium import solve_hour
from src.dam_risk.rules.bid_checks import check_bid, check_block_bid
from src.dam_risk.rules.price_range import check_price_range
from src.dam_risk.rules.volume_limit import check_bid_volume

logger = logging.getLogger(__name__)


class MarketClearingEngine:
    """Clears a day of hourly and block bids.

    The engine owns the submitted bids for the duration of a call and writes
    their accepted volumes. Calls on one instance are serialized.
    """

    def __init__(self, config: ClearingConfig | None = None) -> None:
        self.config = config or ClearingConfig()
        self._allocator = VolumeAllocator(self.config.balance_tolerance)
        self._ids = BidIdentifierSequence()
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._infeasible_hours: set[int] = set()
        self._diagnostics: list[ClearingDiagnostic] = []
        self._phase = ClearingPhase.INITIAL

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def clear_day(
        self,
        hourly_bids: Mapping[int, Sequence[Bid]],
        block_bids: Sequence[BlockBid] = (),
    ) -> DayResult:
        """Hourly prices and volumes for the day, with accepted volumes written back."""
        with self._lock:
            self._reset()
            if self.config.workers > 1:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.workers, thread_name_prefix="dam-hour"
                )
            try:
                return self._clear_day(hourly_bids, block_bids)
            finally:
                if self._executor is not None:
                    self._executor.shutdown(wait=True)
                    self._executor = None

    def clear_single_period(self, bids: Sequence[Bid]) -> DayResult:
        """One period, no blocks. Used for single-period markets such as certificates."""
        with self._lock:
            self._reset()
            valid: list[Bid] = []
            for bid in bids:
                try:
                    check_price_range(
                        bid.price, self.config.minimum_price, self.config.maximum_price
                    )
                    check_bid_volume(bid.volume)
                except InvalidBidError as exc:
                    self._reject(exc.message, bid)
                    continue
                valid.append(bid)

            for bid in valid:
                bid.identifier = self._ids.next_id()
            period = {0: valid}

            outcome = self._solve_one(0, build_price_curve(valid))
            self._report_infeasible([outcome])
            return self._finalize([outcome], period, [], {ClearingPhase.BLOCK_FEASIBILITY: 1})

    # ------------------------------------------------------------------
    # Day clearing
    # ------------------------------------------------------------------

    def _clear_day(
        self, hourly_bids: Mapping[int, Sequence[Bid]], block_bids: Sequence[BlockBid]
    ) -> DayResult:
        bids = self._validate_hourly(hourly_bids)
        blocks = self._validate_blocks(block_bids)
        self._assign_identifiers(bids, blocks)
        for block in blocks:
            block.reset()
        logger.info(
            "Clearing %d hourly bids and %d block bids",
            sum(len(v) for v in bids.values()), len(blocks),
        )

        loop = BlockFeasibilityLoop(self.config, bids, blocks, self._solve_hours, self._allocator)
        rounds: dict[ClearingPhase, int] = {}

        self._enter(ClearingPhase.BLOCK_FEASIBILITY)
        rounds[ClearingPhase.BLOCK_FEASIBILITY] = loop.run_profit_pass()

        if self.config.exogenous_accept_all and any(b.accepted for b in blocks):
            self._enter(ClearingPhase.EXOGENOUS_ACCEPTANCE)
            rounds[ClearingPhase.EXOGENOUS_ACCEPTANCE] = loop.run_exogenous_pass()

        self._diagnostics.extend(loop.diagnostics)
        result = self._finalize(loop.outcomes, bids, blocks, rounds)
        result.deactivated_block_ids = list(loop.deactivated)
        result.unresolved_block_ids = list(loop.unresolved)
        return result

    def _validate_hourly(self, hourly_bids: Mapping[int, Sequence[Bid]]) -> dict[int, list[Bid]]:
        """Drop invalid bids and put each bid under its own hour."""
        cfg = self.config
        valid: dict[int, list[Bid]] = {h: [] for h in range(cfg.hours_per_day)}
        for bucket, bids in hourly_bids.items():
            for bid in bids:
                try:
                    check_bid(bid, cfg.minimum_price, cfg.maximum_price, cfg.hours_per_day)
                except InvalidBidError as exc:
                    self._reject(exc.message, bid)
                    continue
                if bid.hour != bucket:
                    logger.warning(
                        "Bid for hour %d submitted under hour %d, moved", bid.hour, bucket
                    )
                valid[bid.hour].append(bid)
        return valid

    def _validate_blocks(self, block_bids: Sequence[BlockBid]) -> list[BlockBid]:
        cfg = self.config
        valid = []
        for block in block_bids:
            try:
                check_block_bid(block, cfg.minimum_price, cfg.maximum_price, cfg.hours_per_day)
            except InvalidBlockBidError as exc:
                self._reject(exc.message, block)
                continue
            valid.append(block)
        return valid

    def _assign_identifiers(self, bids: dict[int, list[Bid]], blocks: list[BlockBid]) -> None:
        for hour in range(self.config.hours_per_day):
            for bid in bids[hour]:
                bid.identifier = self._ids.next_id()
            self._ids.start_next_hour()
        self._ids.start_block_range()
        for block in blocks:
            block.identifier = self._ids.next_id()

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def _solve_one(self, hour: int, points: list[PriceCurvePoint]) -> HourlyOutcome:
        return solve_hour(points, hour, self.config.maximum_price, self.config.volume_tolerance)

    def _solve_hours(self, curves: list[list[PriceCurvePoint]]) -> list[HourlyOutcome]:
        """Solve all hours of one round; returns only once every hour is done."""
        hours = range(len(curves))
        if self._executor is not None:
            outcomes = list(self._executor.map(self._solve_one, hours, curves))
        else:
            outcomes = [self._solve_one(h, c) for h, c in zip(hours, curves)]
        self._report_infeasible(outcomes)
        return outcomes

    def _report_infeasible(self, outcomes: Sequence[HourlyOutcome]) -> None:
        for outcome in outcomes:
            if outcome.status != ClearingStatus.DEMAND_OVERHANG:
                continue
            if outcome.hour in self._infeasible_hours:
                continue
            self._infeasible_hours.add(outcome.hour)
            point = outcome.point
            demand = point.ask_volume_maximum if point else math.nan
            message = (
                f"hour {outcome.hour}: demand {demand:.2f} exceeds supply "
                f"{outcome.volume:.2f} at the price ceiling"
            )
            logger.warning("Market could not be properly cleared, %s", message)
            self._diagnostics.append(
                ClearingDiagnostic(
                    DiagnosticKind.STRUCTURAL_INFEASIBILITY, message, hour=outcome.hour
                )
            )

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def _finalize(
        self,
        outcomes: list[HourlyOutcome],
        bids: dict[int, list[Bid]],
        blocks: list[BlockBid],
        rounds: dict[ClearingPhase, int],
    ) -> DayResult:
        allocation = self._allocator.allocate(outcomes, bids, blocks)
        self._allocator.apply(allocation, bids)
        self._diagnostics.extend(
            self._allocator.verify_balance(outcomes, bids, blocks, allocation)
        )
        category_volumes = self._allocator.category_volumes(bids, allocation, len(outcomes))
        startup_costs = self._startup_costs(outcomes, bids, blocks)
        self._check_result(outcomes)
        self._enter(ClearingPhase.FINALIZED)
        return DayResult(
            outcomes=outcomes,
            startup_costs=startup_costs,
            rounds=rounds,
            phase=self._phase,
            category_volumes=category_volumes,
            diagnostics=list(self._diagnostics),
        )

    @staticmethod
    def _startup_costs(
        outcomes: Sequence[HourlyOutcome],
        bids: Mapping[int, Sequence[Bid]],
        blocks: Sequence[BlockBid],
    ) -> list[float]:
        """Startup costs of the bid setting the price; NaN when demand sets it."""
        by_id: dict[int, dict[int, float]] = defaultdict(dict)
        for hour, hour_bids in bids.items():
            for bid in hour_bids:
                by_id[hour][bid.identifier] = bid.startup_costs
        block_costs = {b.identifier: b.startup_costs for b in blocks}

        costs = []
        for outcome in outcomes:
            point = outcome.point
            if point is None or not point.sell_points:
                costs.append(math.nan)
                continue
            identifier = min(point.sell_points)
            costs.append(by_id[outcome.hour].get(identifier, block_costs.get(identifier, math.nan)))
        return costs

    @staticmethod
    def _check_result(outcomes: Sequence[HourlyOutcome]) -> None:
        for outcome in outcomes:
            if outcome.status == ClearingStatus.NO_TRADE:
                continue
            if math.isnan(outcome.price):
                logger.error("Hour %d: price was not determined correctly", outcome.hour)
            if math.isnan(outcome.volume):
                logger.error("Hour %d: volume was not determined correctly", outcome.hour)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._ids.reset()
        self._infeasible_hours.clear()
        self._diagnostics = []
        self._phase = ClearingPhase.INITIAL

    def _enter(self, phase: ClearingPhase) -> None:
        logger.info("Clearing phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def _reject(self, reason: str, bid: Bid | BlockBid) -> None:
        logger.warning("Dropping bid %r: %s", bid, reason)
        self._diagnostics.append(ClearingDiagnostic(DiagnosticKind.INVALID_BID, reason))
