"""Matching Engine - pure giver -> receiver assignment over a draw's participants.

Invariants:
    - Fewer than MIN_PARTICIPANTS ids -> InsufficientParticipantsError, no other work
    - Output is a derangement: every id gives exactly once, receives exactly once,
      and nobody is paired with themselves
    - The result is verified before it is returned, even though the
      construction cannot produce an invalid assignment
    - No IO, no shared state; randomness comes only from the rng argument

Design Decisions:
    - Shuffle then cyclic shift (position k gives to position k+1 mod n):
      single pass, no reject-and-retry loop
    - SystemRandom by default; tests pass random.Random(seed) for determinism
"""

import random
from collections import Counter
from collections.abc import Sequence

from secret_santa.core.domain_types import MIN_PARTICIPANTS, MatchPair, ParticipantId
from secret_santa.core.errors import (
    InsufficientParticipantsError, InvalidAssignmentError,
)


def generate(
    participant_ids: Sequence[ParticipantId],
    rng: random.Random | None = None,
) -> list[MatchPair]:
    """Assign each participant exactly one recipient.

    Raises:
        InsufficientParticipantsError: fewer than MIN_PARTICIPANTS ids.
        InvalidAssignmentError: duplicate ids in the input, or a broken
            assignment (verification step).
    """
    n = len(participant_ids)
    if n < MIN_PARTICIPANTS:
        raise InsufficientParticipantsError(required=MIN_PARTICIPANTS, actual=n)

    order = list(participant_ids)
    (rng or random.SystemRandom()).shuffle(order)
    pairs = [
        MatchPair(giver_id=order[k], receiver_id=order[(k + 1) % n])
        for k in range(n)
    ]
    verify_derangement(participant_ids, pairs)
    return pairs


def verify_derangement(
    participant_ids: Sequence[ParticipantId], pairs: Sequence[MatchPair],
) -> None:
    """Raise InvalidAssignmentError unless pairs is a derangement of participant_ids."""
    expected = Counter(participant_ids)
    if any(count > 1 for count in expected.values()):
        raise InvalidAssignmentError("Participant ids must be unique")

    self_pairs = [p.giver_id for p in pairs if p.giver_id == p.receiver_id]
    if self_pairs:
        raise InvalidAssignmentError(
            f"Self-assignment for {len(self_pairs)} participant(s)",
        )
    if Counter(p.giver_id for p in pairs) != expected:
        raise InvalidAssignmentError("Each participant must give exactly once")
    if Counter(p.receiver_id for p in pairs) != expected:
        raise InvalidAssignmentError("Each participant must receive exactly once")
