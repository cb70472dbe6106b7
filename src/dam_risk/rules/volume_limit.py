import math

from src.dam_common.errors import InvalidBidError


def check_bid_volume(volume: float) -> None:
    """Raise InvalidBidError(1001) unless volume is finite and strictly positive."""
    if not (math.isfinite(volume) and volume > 0):
        raise InvalidBidError(f"volume {volume} must be positive")
