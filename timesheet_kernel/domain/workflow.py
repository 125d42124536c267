"""
Timesheet workflow definition (``timesheet_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing the fixed approval pipeline:

    DRAFT -> SUBMITTED -> MANAGER_APPROVED -> APPROVED -> LOCKED
                 |               |
                 +--> REJECTED <-+

plus the owner's ``cancel_submission`` (SUBMITTED -> DRAFT) and the
administrative ``revert`` (any non-LOCKED state back to an earlier one).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* LOCKED has no outgoing transitions.
* APPROVED is only reachable from MANAGER_APPROVED, which is only
  reachable from SUBMITTED (directly or through a revert to an
  earlier state).
"""

from __future__ import annotations

from dataclasses import dataclass

from timesheet_kernel.domain.values import TimesheetStatus, TransitionKind


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only -- the workflow engine evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in the workflow."""
    kind: TransitionKind
    from_state: TimesheetStatus
    to_state: TimesheetStatus
    guards: tuple[Guard, ...] = ()


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for the timesheet lifecycle."""
    name: str
    initial_state: TimesheetStatus
    states: tuple[TimesheetStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[TimesheetStatus, ...] = ()

    def find(
        self, kind: TransitionKind, from_state: TimesheetStatus,
    ) -> Transition | None:
        for t in self.transitions:
            if t.kind == kind and t.from_state == from_state:
                return t
        return None

    def sources(self, kind: TransitionKind) -> tuple[TimesheetStatus, ...]:
        return tuple(t.from_state for t in self.transitions if t.kind == kind)


OWNER_ONLY = Guard("owner_only", "actor is the timesheet owner")
HAS_ACTIVITIES = Guard("has_activities", "at least one activity exists")
POSITIVE_TOTAL = Guard("positive_total", "total declared hours > 0")
WEEK_NOT_FUTURE = Guard("week_not_future", "week has started")
HAS_MANAGER = Guard("has_manager", "owner has a manager to review")
NOT_SELF = Guard("not_self", "actor is not the owner")
NO_DECISION_YET = Guard("no_decision_yet", "no approval record exists yet")
COMMENT_ON_REJECT = Guard("comment_on_reject", "rejection carries a comment")
LOCK_WINDOW_ELAPSED = Guard("lock_window_elapsed", "retention window elapsed")
REASON_GIVEN = Guard("reason_given", "revert carries a reason")

_S = TimesheetStatus
_K = TransitionKind

TIMESHEET_WORKFLOW = Workflow(
    name="hr_timesheet",
    initial_state=_S.DRAFT,
    states=tuple(TimesheetStatus),
    transitions=(
        Transition(_K.SUBMIT, _S.DRAFT, _S.SUBMITTED,
                   (OWNER_ONLY, HAS_ACTIVITIES, POSITIVE_TOTAL, WEEK_NOT_FUTURE, HAS_MANAGER)),
        Transition(_K.CANCEL_SUBMISSION, _S.SUBMITTED, _S.DRAFT,
                   (OWNER_ONLY, NO_DECISION_YET)),
        Transition(_K.MANAGER_APPROVE, _S.SUBMITTED, _S.MANAGER_APPROVED, (NOT_SELF,)),
        Transition(_K.MANAGER_REJECT, _S.SUBMITTED, _S.REJECTED,
                   (NOT_SELF, COMMENT_ON_REJECT)),
        Transition(_K.FINAL_APPROVE, _S.MANAGER_APPROVED, _S.APPROVED, (NOT_SELF,)),
        Transition(_K.FINAL_REJECT, _S.MANAGER_APPROVED, _S.REJECTED,
                   (NOT_SELF, COMMENT_ON_REJECT)),
        Transition(_K.LOCK, _S.APPROVED, _S.LOCKED, (LOCK_WINDOW_ELAPSED,)),
        # Revert targets are resolved by revert_targets(); one edge per source.
        Transition(_K.REVERT, _S.SUBMITTED, _S.DRAFT, (REASON_GIVEN,)),
        Transition(_K.REVERT, _S.MANAGER_APPROVED, _S.DRAFT, (REASON_GIVEN,)),
        Transition(_K.REVERT, _S.APPROVED, _S.DRAFT, (REASON_GIVEN,)),
        Transition(_K.REVERT, _S.REJECTED, _S.DRAFT, (REASON_GIVEN,)),
    ),
    terminal_states=(_S.LOCKED, _S.REJECTED),
)

# Position of each forward state; REJECTED sits outside the forward line.
_FORWARD_RANK: dict[TimesheetStatus, int] = {
    _S.DRAFT: 0,
    _S.SUBMITTED: 1,
    _S.MANAGER_APPROVED: 2,
    _S.APPROVED: 3,
    _S.LOCKED: 4,
}

REVERTIBLE_TARGETS: frozenset[TimesheetStatus] = frozenset({
    _S.DRAFT, _S.SUBMITTED, _S.MANAGER_APPROVED,
})


def revert_targets(current: TimesheetStatus) -> frozenset[TimesheetStatus]:
    """States an administrator may revert ``current`` to.

    LOCKED and DRAFT have none.  REJECTED may go back to any revertible
    state; forward states only to strictly earlier ones.
    """
    if TIMESHEET_WORKFLOW.find(_K.REVERT, current) is None:
        return frozenset()
    if current == _S.REJECTED:
        return REVERTIBLE_TARGETS
    rank = _FORWARD_RANK[current]
    return frozenset(s for s in REVERTIBLE_TARGETS if _FORWARD_RANK[s] < rank)


def is_mutable(status: TimesheetStatus) -> bool:
    """Activities and header fields may change only while DRAFT."""
    return status == _S.DRAFT
