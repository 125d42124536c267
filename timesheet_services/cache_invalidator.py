"""
CacheInvalidator -- post-commit cache tag signalling.

Responsibility:
    Maps each committed transition to the cache tags whose content it
    changed (owner lists, the timesheet itself, approval queues, the HR
    dashboard) and signals every subscribed ``CacheBackend``.

Architecture position:
    Services layer.  Installed as a post-commit hook on
    ``WorkflowUnitOfWork``.

Invariants enforced:
    - Tags are rendered from fixed templates; ``{owner_id}`` and
      ``{timesheet_id}`` are the only placeholders.
    - A backend failure is logged as ``cache_invalidation_failed`` and
      never propagates; the other backends are still signalled.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from timesheet_kernel.domain.values import TransitionKind
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.services.workflow_engine import TransitionOutcome

logger = get_logger("services.cache_invalidator")

_K = TransitionKind

OWNER_LIST = "timesheets:owner:{owner_id}"
TIMESHEET = "timesheet:{timesheet_id}"
PENDING_MANAGER = "approvals:pending:manager"
PENDING_FINAL = "approvals:pending:final"
HR_DASHBOARD = "dashboard:hr"

DEFAULT_TAG_MAP: dict[TransitionKind, tuple[str, ...]] = {
    _K.SUBMIT: (OWNER_LIST, TIMESHEET, PENDING_MANAGER, HR_DASHBOARD),
    _K.CANCEL_SUBMISSION: (OWNER_LIST, TIMESHEET, PENDING_MANAGER, HR_DASHBOARD),
    _K.MANAGER_APPROVE: (OWNER_LIST, TIMESHEET, PENDING_MANAGER, PENDING_FINAL, HR_DASHBOARD),
    _K.MANAGER_REJECT: (OWNER_LIST, TIMESHEET, PENDING_MANAGER, HR_DASHBOARD),
    _K.FINAL_APPROVE: (OWNER_LIST, TIMESHEET, PENDING_FINAL, HR_DASHBOARD),
    _K.FINAL_REJECT: (OWNER_LIST, TIMESHEET, PENDING_FINAL, HR_DASHBOARD),
    _K.LOCK: (OWNER_LIST, TIMESHEET, HR_DASHBOARD),
    _K.REVERT: (OWNER_LIST, TIMESHEET, PENDING_MANAGER, PENDING_FINAL, HR_DASHBOARD),
}


class CacheBackend(Protocol):
    def invalidate(self, tags: frozenset[str]) -> None: ...


class InMemoryCacheBackend:
    """Tag-indexed dictionary cache.  For tests and local runs."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._tags: dict[str, frozenset[str]] = {}
        self.invalidations: list[frozenset[str]] = []

    def set(self, key: str, value: Any, tags: Sequence[str] = ()) -> None:
        self._values[key] = value
        self._tags[key] = frozenset(tags)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def invalidate(self, tags: frozenset[str]) -> None:
        self.invalidations.append(tags)
        stale = [key for key, key_tags in self._tags.items() if key_tags & tags]
        for key in stale:
            del self._values[key]
            del self._tags[key]


def render_tags(templates: Sequence[str], outcome: TransitionOutcome) -> frozenset[str]:
    return frozenset(
        t.format(owner_id=outcome.owner_id, timesheet_id=outcome.timesheet_id)
        for t in templates
    )


class CacheInvalidator:
    """Post-commit hook signalling rendered tags to every backend."""

    def __init__(
        self,
        backends: Sequence[CacheBackend],
        tag_map: Mapping[TransitionKind, Sequence[str]] | None = None,
    ):
        self.backends = tuple(backends)
        self.tag_map = dict(DEFAULT_TAG_MAP)
        if tag_map:
            self.tag_map.update(tag_map)

    def tags_for(self, outcome: TransitionOutcome) -> frozenset[str]:
        return render_tags(self.tag_map.get(outcome.kind, ()), outcome)

    def invalidate(self, outcome: TransitionOutcome) -> frozenset[str]:
        tags = self.tags_for(outcome)
        if not tags:
            return tags
        for backend in self.backends:
            try:
                backend.invalidate(tags)
            except Exception:
                logger.error(
                    "cache_invalidation_failed",
                    extra={
                        "backend": type(backend).__name__,
                        "timesheet_id": str(outcome.timesheet_id),
                        "transition": outcome.kind.value,
                    },
                    exc_info=True,
                )
        logger.debug(
            "cache_tags_invalidated",
            extra={"transition": outcome.kind.value, "tags": sorted(tags)},
        )
        return tags

    def __call__(self, outcome: TransitionOutcome) -> None:
        self.invalidate(outcome)
