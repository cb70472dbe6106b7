"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Bid
  2xxx: Clearing
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Bid ---

class InvalidBidError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(1001, f"Invalid bid: {reason}", 422)


class InvalidBlockBidError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(1002, f"Invalid block bid: {reason}", 422)


# --- 2xxx: Clearing ---

class NoBidsSubmittedError(AppError):
    def __init__(self) -> None:
        super().__init__(2001, "No bids submitted for clearing", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(9001, message, 500)
