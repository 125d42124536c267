"""
Organisation directory (``timesheet_kernel.domain.directory``).

The workflow needs two facts from the HR directory: who manages an
employee, and who sits on the final approval tier.  ``OrgDirectory`` is
the interface; ``StaticOrgDirectory`` is an in-memory implementation
for tests and small deployments.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol
from uuid import UUID


class OrgDirectory(Protocol):
    def manager_of(self, employee_id: UUID) -> UUID | None: ...

    def direct_reports(self, manager_id: UUID) -> frozenset[UUID]: ...

    def final_approvers(self) -> frozenset[UUID]: ...


class StaticOrgDirectory:
    """Directory backed by a ``{employee: manager}`` mapping."""

    def __init__(
        self,
        managers: Mapping[UUID, UUID] | None = None,
        final_approvers: Iterable[UUID] = (),
    ) -> None:
        self._managers = dict(managers or {})
        self._final_approvers = frozenset(final_approvers)

    def assign(self, employee_id: UUID, manager_id: UUID | None) -> None:
        if manager_id is None:
            self._managers.pop(employee_id, None)
        else:
            self._managers[employee_id] = manager_id

    def manager_of(self, employee_id: UUID) -> UUID | None:
        return self._managers.get(employee_id)

    def direct_reports(self, manager_id: UUID) -> frozenset[UUID]:
        return frozenset(e for e, m in self._managers.items() if m == manager_id)

    def final_approvers(self) -> frozenset[UUID]:
        return self._final_approvers
