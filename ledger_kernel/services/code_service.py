"""
MovementCodeService -- human-readable, time-ordered movement codes.

Responsibility:
    Assigns each new movement a display code of the form
    ``DDMMYYYY:HH:MM`` followed by a per-owner, per-minute counter padded
    to at least two digits, e.g. ``19102026:14:0501``.

Architecture position:
    Kernel > Services.  The lifecycle service treats the code as an
    opaque label; nothing in balance math reads it.

Invariants enforced:
    - Uniqueness per owner and minute: the counter is a SequenceService
      row named after the owner and the minute, so concurrent creates in
      the same minute draw distinct values.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.services.sequence_service import SequenceService

DEFAULT_COUNTER_WIDTH = 2


def code_prefix(at: datetime) -> str:
    """Minute-granular prefix ``DDMMYYYY:HH:MM``."""
    return at.strftime("%d%m%Y:%H:%M")


class MovementCodeService:
    """Allocates display codes for movements."""

    SEQUENCE_PREFIX = "movement_code"

    def __init__(self, session: Session, counter_width: int = DEFAULT_COUNTER_WIDTH):
        self._sequences = SequenceService(session)
        self._counter_width = counter_width

    def next_code(self, owner_id: UUID, at: datetime) -> str:
        """
        Allocate the next code for ``owner_id`` at time ``at``.

        Args:
            owner_id: Owner the movement belongs to.
            at: Creation time; only its minute is significant.

        Returns:
            The display code.
        """
        prefix = code_prefix(at)
        counter = self._sequences.next_value(
            f"{self.SEQUENCE_PREFIX}:{owner_id}:{prefix}"
        )
        return f"{prefix}{counter:0{self._counter_width}d}"
