"""
Tests for SequenceService and MovementCodeService.

Sequence values are monotonic per name; display codes combine the minute
prefix with a per-owner, per-minute counter.
"""

from datetime import datetime, timezone
from uuid import uuid4

from ledger_kernel.services.code_service import MovementCodeService, code_prefix
from ledger_kernel.services.sequence_service import SequenceService

AT = datetime(2026, 10, 19, 14, 5, 42, tzinfo=timezone.utc)


class TestSequenceService:

    def test_first_value_is_one(self, session):
        assert SequenceService(session).next_value("alpha") == 1

    def test_values_are_monotonic(self, session):
        seq = SequenceService(session)
        assert [seq.next_value("alpha") for _ in range(3)] == [1, 2, 3]

    def test_sequences_are_independent(self, session):
        seq = SequenceService(session)
        seq.next_value("alpha")
        seq.next_value("alpha")
        assert seq.next_value("beta") == 1

    def test_current_value(self, session):
        seq = SequenceService(session)
        assert seq.current_value("alpha") is None
        seq.next_value("alpha")
        assert seq.current_value("alpha") == 1


class TestMovementCodes:

    def test_prefix_format(self):
        assert code_prefix(AT) == "19102026:14:05"

    def test_counter_padded_to_two_digits(self, session):
        codes = MovementCodeService(session)
        owner = uuid4()
        assert codes.next_code(owner, AT) == "19102026:14:0501"
        assert codes.next_code(owner, AT) == "19102026:14:0502"

    def test_counter_grows_past_width(self, session):
        codes = MovementCodeService(session)
        owner = uuid4()
        for _ in range(99):
            codes.next_code(owner, AT)
        assert codes.next_code(owner, AT) == "19102026:14:05100"

    def test_counter_width_is_configurable(self, session):
        codes = MovementCodeService(session, counter_width=4)
        assert codes.next_code(uuid4(), AT) == "19102026:14:050001"

    def test_counter_is_per_owner(self, session):
        codes = MovementCodeService(session)
        first, second = uuid4(), uuid4()
        codes.next_code(first, AT)
        assert codes.next_code(second, AT) == "19102026:14:0501"

    def test_counter_restarts_each_minute(self, session):
        codes = MovementCodeService(session)
        owner = uuid4()
        codes.next_code(owner, AT)
        later = AT.replace(minute=6, second=0)
        assert codes.next_code(owner, later) == "19102026:14:0601"

    def test_seconds_do_not_matter(self, session):
        codes = MovementCodeService(session)
        owner = uuid4()
        codes.next_code(owner, AT)
        assert codes.next_code(owner, AT.replace(second=1)) == "19102026:14:0502"
