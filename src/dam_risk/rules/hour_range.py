from src.dam_common.errors import InvalidBidError, InvalidBlockBidError


def check_hour(hour: int, hours_per_day: int) -> None:
    """Raise InvalidBidError(1001) if hour is not in [0, hours_per_day - 1]."""
    if not (0 <= hour < hours_per_day):
        raise InvalidBidError(f"hour {hour} out of range [0, {hours_per_day - 1}]")


def check_block_range(start_hour: int, end_hour: int, hours_per_day: int) -> None:
    """Raise InvalidBlockBidError(1002) unless 0 <= start <= end < hours_per_day."""
    if not (0 <= start_hour <= end_hour < hours_per_day):
        raise InvalidBlockBidError(
            f"hour range [{start_hour}, {end_hour}] outside [0, {hours_per_day - 1}]"
        )
