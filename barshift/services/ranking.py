"""Ranking resolver: total ordering of a candidate pool for a venue."""

from collections.abc import Iterable
from typing import Literal
from uuid import UUID

from barshift.config import settings
from barshift.schemas.staff import SlotKind
from barshift.services.eligibility_service import Candidate

Tiebreak = Literal["lead_then_name", "name"]


def sort_key(
    candidate: Candidate,
    venue_id: UUID,
    slot: SlotKind,
    tiebreak: Tiebreak,
) -> tuple:
    """
    Sort key for one candidate.

    Ranked candidates come first by ascending rank. Unranked candidates follow,
    leads first for bartender pools when the tiebreak asks for it, then by name.
    Staff id closes every tie so the order is total.
    """
    name = candidate.name.casefold()
    rank = candidate.rank_at(venue_id)
    if rank is not None:
        return (0, rank, 0, name, str(candidate.id))

    lead_first = tiebreak == "lead_then_name" and slot is not SlotKind.BARBACK
    lead_key = 0 if (lead_first and candidate.is_lead) else 1
    return (1, 0, lead_key, name, str(candidate.id))


def rank_candidates(
    candidates: Iterable[Candidate],
    venue_id: UUID,
    slot: SlotKind,
    tiebreak: Tiebreak | None = None,
) -> list[Candidate]:
    """
    Order candidates for a venue slot.

    Args:
        candidates: Eligible candidates
        venue_id: Venue whose rankings apply
        slot: Slot being filled
        tiebreak: Unranked ordering policy, defaults to the configured one

    Returns:
        Candidates in fill order
    """
    policy = tiebreak or settings.unranked_tiebreak
    return sorted(candidates, key=lambda c: sort_key(c, venue_id, slot, policy))
