"""
timesheet_kernel.domain.authorization -- capability-table authorization gate.

Responsibility:
    Decide whether an actor, acting under a role, may perform a given
    transition on a given timesheet.  A single table keyed by
    ``(Role, TransitionKind)`` replaces scattered role-string checks;
    new roles are introduced by extending the table, not by subclassing.

Architecture position:
    Kernel > Domain.  Pure decision function, ZERO I/O.  Called once per
    transition by WorkflowEngine before any guard is evaluated.

Invariants:
    - Self-approval (actor is the owner on a manager or final decision)
      is denied regardless of role.
    - Owner-scoped transitions (submit, cancel_submission) are allowed
      only to the owner.
    - LOCK is granted to the SYSTEM role only.
    - The gate never resolves identity; the caller supplies role and id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping
from uuid import UUID

from timesheet_kernel.domain.values import Role, TimesheetStatus, TransitionKind

_R = Role
_K = TransitionKind

_ALL_PEOPLE = (_R.EMPLOYEE, _R.MANAGER, _R.HR, _R.DIRECTEUR, _R.ADMIN)
_MANAGER_TIER = (_R.MANAGER, _R.HR, _R.DIRECTEUR, _R.ADMIN)
_FINAL_TIER = (_R.HR, _R.DIRECTEUR, _R.ADMIN)

# (role, transition) pairs that are allowed.  Anything absent is denied.
DEFAULT_CAPABILITIES: frozenset[tuple[Role, TransitionKind]] = frozenset(
    [(r, _K.SUBMIT) for r in _ALL_PEOPLE]
    + [(r, _K.CANCEL_SUBMISSION) for r in _ALL_PEOPLE]
    + [(r, _K.MANAGER_APPROVE) for r in _MANAGER_TIER]
    + [(r, _K.MANAGER_REJECT) for r in _MANAGER_TIER]
    + [(r, _K.FINAL_APPROVE) for r in _FINAL_TIER]
    + [(r, _K.FINAL_REJECT) for r in _FINAL_TIER]
    + [(_R.ADMIN, _K.REVERT)]
    + [(_R.SYSTEM, _K.LOCK)]
)

OWNER_TRANSITIONS: frozenset[TransitionKind] = frozenset({
    _K.SUBMIT, _K.CANCEL_SUBMISSION,
})

DECISION_TRANSITIONS: frozenset[TransitionKind] = frozenset({
    _K.MANAGER_APPROVE, _K.MANAGER_REJECT, _K.FINAL_APPROVE, _K.FINAL_REJECT,
})


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


class CapabilityTable:
    """Immutable ``(role, transition) -> allowed`` lookup."""

    def __init__(
        self,
        grants: Iterable[tuple[Role, TransitionKind]] = DEFAULT_CAPABILITIES,
    ) -> None:
        self._grants = frozenset(grants)

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Iterable[str]], base: Iterable[tuple[Role, TransitionKind]] | None = None,
    ) -> CapabilityTable:
        """Build a table from ``{"ROLE": ["transition", ...]}`` (config form).

        Entries extend ``base`` (the default table when omitted).
        """
        grants = set(DEFAULT_CAPABILITIES if base is None else base)
        for role_name, kinds in mapping.items():
            role = Role(role_name)
            for kind in kinds:
                grants.add((role, TransitionKind(kind)))
        return cls(grants)

    def grants(self, role: Role, transition: TransitionKind) -> bool:
        return (role, transition) in self._grants

    def roles_for(self, transition: TransitionKind) -> frozenset[Role]:
        return frozenset(r for r, k in self._grants if k == transition)

    def can_transition(
        self,
        actor_role: Role,
        actor_id: UUID | None,
        timesheet_owner_id: UUID,
        from_state: TimesheetStatus,
        transition: TransitionKind,
    ) -> AuthorizationDecision:
        """Return allow/deny for one requested transition.

        ``from_state`` is only consulted to deny everything out of LOCKED;
        exact-state guards remain the engine's job.
        """
        if from_state == TimesheetStatus.LOCKED and transition != _K.LOCK:
            return AuthorizationDecision(False, "timesheet is locked")

        if not self.grants(actor_role, transition):
            return AuthorizationDecision(
                False, f"role {actor_role.value} may not {transition.value}",
            )

        if transition in OWNER_TRANSITIONS and actor_id != timesheet_owner_id:
            return AuthorizationDecision(
                False, "only the timesheet owner may do this",
            )

        if transition in DECISION_TRANSITIONS and actor_id == timesheet_owner_id:
            return AuthorizationDecision(
                False, "approvers may not decide on their own timesheet",
            )

        return AuthorizationDecision(True)


DEFAULT_CAPABILITY_TABLE = CapabilityTable()


def can_transition(
    actor_role: Role,
    actor_id: UUID | None,
    timesheet_owner_id: UUID,
    from_state: TimesheetStatus,
    transition: TransitionKind,
) -> AuthorizationDecision:
    """Module-level entry point using the default capability table."""
    return DEFAULT_CAPABILITY_TABLE.can_transition(
        actor_role, actor_id, timesheet_owner_id, from_state, transition,
    )
