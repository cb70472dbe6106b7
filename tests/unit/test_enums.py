from src.dam_common.enums import BidType, ClearingPhase, TraderCategory


class TestEnums:
    def test_bid_type_values(self) -> None:
        assert BidType("ASK") is BidType.ASK
        assert BidType.SELL == "SELL"

    def test_categories(self) -> None:
        assert {c.value for c in TraderCategory} == {
            "SUPPLY", "RENEWABLE", "STORAGE", "EXCHANGE", "DEMAND", "UNKNOWN",
        }

    def test_phase_order(self) -> None:
        assert [p.value for p in ClearingPhase] == [
            "INITIAL", "BLOCK_FEASIBILITY", "EXOGENOUS_ACCEPTANCE", "FINALIZED",
        ]
