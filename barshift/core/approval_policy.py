"""Required approver table for constraint overrides."""

from barshift.config import settings
from barshift.schemas.overrides import ApproverRole, ViolationType

# An override is approved only once every listed capacity has approved.
DEFAULT_REQUIRED_APPROVERS: dict[ViolationType, frozenset[ApproverRole]] = {
    ViolationType.CUTOFF: frozenset({ApproverRole.STAFF, ApproverRole.MANAGER}),
    ViolationType.REQUEST_OFF: frozenset({ApproverRole.STAFF, ApproverRole.MANAGER}),
    ViolationType.DOUBLE_BOOKING: frozenset({ApproverRole.MANAGER}),
    ViolationType.LEAD_SHORTAGE: frozenset({ApproverRole.MANAGER}),
}


def load_policy(
    raw: dict[str, list[str]] | None = None,
) -> dict[ViolationType, frozenset[ApproverRole]]:
    """
    Build the approver table, applying configured replacements.

    Args:
        raw: Mapping of violation type to approver role names

    Returns:
        Complete approver table

    Raises:
        ValueError: If the mapping names an unknown type or role, or an empty set
    """
    policy = dict(DEFAULT_REQUIRED_APPROVERS)
    for violation, roles in (raw or {}).items():
        approvers = frozenset(ApproverRole(role.upper()) for role in roles)
        if not approvers:
            raise ValueError(f"Override policy for '{violation}' needs at least one approver")
        policy[ViolationType(violation)] = approvers
    return policy


def required_approvers(violation_type: ViolationType) -> frozenset[ApproverRole]:
    """Approver capacities required for a violation type."""
    return load_policy(settings.override_approver_policy)[violation_type]
