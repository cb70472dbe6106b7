from src.dam_common.errors import InvalidBidError


def check_price_range(price: float, minimum_price: float, maximum_price: float) -> None:
    """Raise InvalidBidError(1001) if price is not in [minimum_price, maximum_price]."""
    if not (minimum_price <= price <= maximum_price):
        raise InvalidBidError(
            f"price {price} out of range [{minimum_price}, {maximum_price}]"
        )
