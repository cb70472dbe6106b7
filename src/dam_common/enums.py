"""Global enums shared by bids, clearing and the API layer."""

from enum import Enum


class BidType(str, Enum):
    """Direction of a bid: ASK buys (demand), SELL supplies."""
    ASK = "ASK"
    SELL = "SELL"


class TraderCategory(str, Enum):
    """Originator of a bid; drives allocation tie-breaks and must-clear rules."""
    SUPPLY = "SUPPLY"
    RENEWABLE = "RENEWABLE"
    STORAGE = "STORAGE"
    EXCHANGE = "EXCHANGE"
    DEMAND = "DEMAND"
    UNKNOWN = "UNKNOWN"


class ClearingStatus(str, Enum):
    INITIAL = "INITIAL"
    SUCCESSFUL = "SUCCESSFUL"
    DEMAND_OVERHANG = "DEMAND_OVERHANG"
    NO_TRADE = "NO_TRADE"


class IntersectionKind(str, Enum):
    """Which classification rule produced an hourly outcome."""
    AMBIGUOUS_VOLUME = "AMBIGUOUS_VOLUME"
    AMBIGUOUS_PRICE = "AMBIGUOUS_PRICE"
    SELL_STEP = "SELL_STEP"
    ASK_STEP = "ASK_STEP"
    PRICE_CEILING = "PRICE_CEILING"
    NONE = "NONE"


class ClearingPhase(str, Enum):
    INITIAL = "INITIAL"
    BLOCK_FEASIBILITY = "BLOCK_FEASIBILITY"
    EXOGENOUS_ACCEPTANCE = "EXOGENOUS_ACCEPTANCE"
    FINALIZED = "FINALIZED"


class DiagnosticKind(str, Enum):
    INVALID_BID = "INVALID_BID"
    STRUCTURAL_INFEASIBILITY = "STRUCTURAL_INFEASIBILITY"
    BLOCK_BID_UNRESOLVABLE = "BLOCK_BID_UNRESOLVABLE"
    VOLUME_MISMATCH = "VOLUME_MISMATCH"
