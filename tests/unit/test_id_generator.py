"""Tests for dam_common.id_generator."""

from src.dam_common.id_generator import BidIdentifierSequence


class TestBidIdentifierSequence:
    def test_starts_at_zero(self) -> None:
        seq = BidIdentifierSequence()
        assert seq.next_id() == 0
        assert seq.next_id() == 1

    def test_next_hour_jumps_to_next_thousand(self) -> None:
        seq = BidIdentifierSequence()
        for _ in range(5):
            seq.next_id()
        seq.start_next_hour()
        assert seq.next_id() == 1000

    def test_jump_leaves_gap_on_exact_multiple(self) -> None:
        seq = BidIdentifierSequence()
        seq.start_next_hour()
        assert seq.next_id() == 1000
        seq.start_next_hour()
        assert seq.next_id() == 2000

    def test_block_range(self) -> None:
        seq = BidIdentifierSequence()
        for _ in range(24):
            seq.next_id()
            seq.start_next_hour()
        seq.start_block_range()
        assert seq.next_id() == 100_000

    def test_reset(self) -> None:
        seq = BidIdentifierSequence()
        seq.start_block_range()
        seq.reset()
        assert seq.next_id() == 0

    def test_unique_ids(self) -> None:
        seq = BidIdentifierSequence()
        ids = {seq.next_id() for _ in range(1000)}
        assert len(ids) == 1000
