"""Database models."""

from barshift.models.availability import availabilities, external_blocks
from barshift.models.metadata import metadata
from barshift.models.overrides import override_approvals, overrides
from barshift.models.shifts import shift_assignments, shifts
from barshift.models.staff import staff_members
from barshift.models.trades import shift_trades
from barshift.models.venues import venues

__all__ = [
    "availabilities",
    "external_blocks",
    "metadata",
    "override_approvals",
    "overrides",
    "shift_assignments",
    "shift_trades",
    "shifts",
    "staff_members",
    "venues",
]
