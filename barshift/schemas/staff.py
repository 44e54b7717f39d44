"""Staff role, status and slot enumerations."""

from enum import Enum


class StaffRole(str, Enum):
    """Staff member role enumeration."""

    BARTENDER = "BARTENDER"
    BARBACK = "BARBACK"
    MANAGER = "MANAGER"
    GENERAL_MANAGER = "GENERAL_MANAGER"
    SUPER_ADMIN = "SUPER_ADMIN"


class StaffStatus(str, Enum):
    """Staff member status enumeration."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


MANAGER_ROLES = frozenset(
    {StaffRole.MANAGER.value, StaffRole.GENERAL_MANAGER.value, StaffRole.SUPER_ADMIN.value}
)


def is_manager(staff: dict) -> bool:
    """Check whether a staff record carries a management role."""
    return staff.get("role") in MANAGER_ROLES


class SlotKind(str, Enum):
    """
    Kind of roster slot a shift assignment fills.

    A lead occupies one of the shift's bartender slots, so the stored slot
    is the single source for both the effective role and the lead flag.
    """

    LEAD = "LEAD"
    BARTENDER = "BARTENDER"
    BARBACK = "BARBACK"

    @property
    def role(self) -> StaffRole:
        """Effective staff role of the slot."""
        if self is SlotKind.BARBACK:
            return StaffRole.BARBACK
        return StaffRole.BARTENDER

    @property
    def is_lead(self) -> bool:
        """Whether the slot is a lead slot."""
        return self is SlotKind.LEAD


# Fixed fill order used by auto-fill
FILL_ORDER = (SlotKind.LEAD, SlotKind.BARTENDER, SlotKind.BARBACK)
