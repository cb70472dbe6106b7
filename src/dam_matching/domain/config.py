"""Explicit clearing configuration passed into the engine."""
from dataclasses import dataclass, field
from typing import Any

from src.dam_common.enums import TraderCategory

_DEFAULT_MUST_CLEAR = frozenset(
    {TraderCategory.RENEWABLE, TraderCategory.EXCHANGE, TraderCategory.STORAGE}
)


@dataclass(frozen=True)
class ClearingConfig:
    minimum_price: float = -500.0
    maximum_price: float = 3000.0
    hours_per_day: int = 24
    block_removal_limit: int = 1
    block_removal_percentage: float = 0.10
    block_always_in_market: bool = False
    exogenous_accept_all: bool = True
    must_clear_categories: frozenset[TraderCategory] = field(
        default_factory=lambda: _DEFAULT_MUST_CLEAR
    )
    volume_tolerance: float = 1e-6
    balance_tolerance: float = 0.5
    incremental_curve_adaptation: bool = False
    workers: int = 1

    def __post_init__(self) -> None:
        if self.minimum_price >= self.maximum_price:
            raise ValueError(
                f"minimum_price {self.minimum_price} must be below maximum_price {self.maximum_price}"
            )
        if self.hours_per_day < 1:
            raise ValueError(f"hours_per_day must be positive, got {self.hours_per_day}")
        if self.block_removal_limit < 1:
            raise ValueError(f"block_removal_limit must be >= 1, got {self.block_removal_limit}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    @classmethod
    def from_settings(cls, settings: Any) -> "ClearingConfig":
        return cls(
            minimum_price=settings.MINIMUM_PRICE,
            maximum_price=settings.MAXIMUM_PRICE,
            hours_per_day=settings.HOURS_PER_DAY,
            block_removal_limit=settings.BLOCK_REMOVAL_LIMIT,
            block_removal_percentage=settings.BLOCK_REMOVAL_PERCENTAGE,
            block_always_in_market=settings.BLOCK_ALWAYS_IN_MARKET,
            exogenous_accept_all=settings.EXOGENOUS_ACCEPT_ALL,
            must_clear_categories=frozenset(
                TraderCategory(c) for c in settings.MUST_CLEAR_CATEGORIES
            ),
            volume_tolerance=settings.VOLUME_TOLERANCE,
            balance_tolerance=settings.BALANCE_TOLERANCE,
            incremental_curve_adaptation=settings.INCREMENTAL_CURVE_ADAPTATION,
            workers=settings.CLEARING_WORKERS,
        )
