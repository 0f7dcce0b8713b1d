"""
Update session report.

A Report is the immutable outcome of one update run: every container that
was looked at, grouped by what happened to it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class SessionState(Enum):
    """What happened to a container during an update run."""
    SKIPPED = "skipped"
    SCANNED = "scanned"
    UPDATED = "updated"
    FAILED = "failed"
    FRESH = "fresh"
    STALE = "stale"


@dataclass
class ContainerStatus:
    """
    Per-container progress entry.

    Mutable while the run is in progress, owned by Progress; the Report
    holds frozen copies.
    """
    container_id: str
    container_name: str
    image_name: str
    old_image_id: str
    new_image_id: str = ""
    state: SessionState = SessionState.SCANNED
    error: Optional[str] = None
    linked: bool = False


@dataclass(frozen=True)
class ContainerReport:
    container_id: str
    container_name: str
    image_name: str
    old_image_id: str
    new_image_id: str
    state: SessionState
    error: Optional[str] = None
    linked: bool = False


@dataclass(frozen=True)
class Report:
    scanned: Tuple[ContainerReport, ...] = field(default_factory=tuple)
    updated: Tuple[ContainerReport, ...] = field(default_factory=tuple)
    failed: Tuple[ContainerReport, ...] = field(default_factory=tuple)
    skipped: Tuple[ContainerReport, ...] = field(default_factory=tuple)
    stale: Tuple[ContainerReport, ...] = field(default_factory=tuple)
    fresh: Tuple[ContainerReport, ...] = field(default_factory=tuple)

    @property
    def all(self) -> Tuple[ContainerReport, ...]:
        """Every container in the report, each exactly once, ordered by ID."""
        return tuple(sorted(self.scanned + self.skipped, key=lambda c: c.container_id))


def build_report(statuses) -> Report:
    """
    Categorize progress entries into a Report.

    A scanned entry whose newest image is its current image is fresh, updated
    and failed entries keep their state, any other scanned entry is stale.
    """
    buckets = {state: [] for state in SessionState}
    scanned = []

    for status in statuses:
        if status.state is SessionState.SKIPPED:
            buckets[SessionState.SKIPPED].append(_freeze(status, SessionState.SKIPPED))
            continue

        if status.new_image_id == status.old_image_id:
            state = SessionState.FRESH
        elif status.state in (SessionState.UPDATED, SessionState.FAILED):
            state = status.state
        else:
            state = SessionState.STALE

        frozen = _freeze(status, state)
        scanned.append(frozen)
        buckets[state].append(frozen)

    def _sorted(entries):
        return tuple(sorted(entries, key=lambda c: c.container_id))

    return Report(
        scanned=_sorted(scanned),
        updated=_sorted(buckets[SessionState.UPDATED]),
        failed=_sorted(buckets[SessionState.FAILED]),
        skipped=_sorted(buckets[SessionState.SKIPPED]),
        stale=_sorted(buckets[SessionState.STALE]),
        fresh=_sorted(buckets[SessionState.FRESH]),
    )


def _freeze(status: ContainerStatus, state: SessionState) -> ContainerReport:
    return ContainerReport(
        container_id=status.container_id,
        container_name=status.container_name,
        image_name=status.image_name,
        old_image_id=status.old_image_id,
        new_image_id=status.new_image_id,
        state=state,
        error=status.error,
        linked=status.linked,
    )
