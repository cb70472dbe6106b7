"""Composite pre-clearing checks for hourly and block bids."""
from src.dam_bids.domain.models import Bid, BlockBid
from src.dam_common.errors import InvalidBidError, InvalidBlockBidError
from src.dam_risk.rules.hour_range import check_block_range, check_hour
from src.dam_risk.rules.price_range import check_price_range
from src.dam_risk.rules.volume_limit import check_bid_volume


def check_bid(bid: Bid, minimum_price: float, maximum_price: float, hours_per_day: int) -> None:
    check_price_range(bid.price, minimum_price, maximum_price)
    check_bid_volume(bid.volume)
    check_hour(bid.hour, hours_per_day)


def check_block_bid(
    block: BlockBid, minimum_price: float, maximum_price: float, hours_per_day: int
) -> None:
    """Same rules as ``check_bid`` but every failure surfaces as InvalidBlockBidError."""
    try:
        check_price_range(block.price, minimum_price, maximum_price)
        check_bid_volume(block.volume)
    except InvalidBidError as exc:
        raise InvalidBlockBidError(exc.message.removeprefix("Invalid bid: ")) from exc
    check_block_range(block.start_hour, block.end_hour, hours_per_day)
