"""
Update session progress.

Progress accumulates what happens to each container during one update run
and is turned into an immutable Report exactly once, at the end of the run.
"""

import logging
from typing import Dict, Iterable, Optional, Union

from dockturn.session.report import ContainerStatus, Report, SessionState, build_report

logger = logging.getLogger(__name__)


class Progress:
    """Single-use accumulator of per-container outcomes, keyed by container ID."""

    def __init__(self):
        self._statuses: Dict[str, ContainerStatus] = {}
        self._finalized = False

    def __len__(self) -> int:
        return len(self._statuses)

    def get(self, container_id: str) -> Optional[ContainerStatus]:
        return self._statuses.get(container_id)

    def _add(self, container, new_image_id: str, state: SessionState,
             error: Optional[str] = None):
        self._statuses[container.id] = ContainerStatus(
            container_id=container.id,
            container_name=container.name,
            image_name=container.image_name,
            old_image_id=container.image_id,
            new_image_id=new_image_id,
            state=state,
            error=error,
        )

    def add_scanned(self, container, new_image_id: str):
        """Record a container whose staleness was determined."""
        self._add(container, new_image_id or "", SessionState.SCANNED)

    def add_skipped(self, container, error: Union[BaseException, str]):
        """Record a container that could not be classified."""
        self._add(container, "", SessionState.SKIPPED, error=str(error))

    def mark_for_update(self, container_id: str):
        """Flag a scanned container as part of the update set."""
        status = self._statuses.get(container_id)
        if status is None:
            logger.warning(f"Cannot mark unknown container {container_id[:12]} for update")
            return
        if status.state is SessionState.SCANNED:
            status.state = SessionState.UPDATED

    def mark_linked(self, container_id: str):
        """Flag a container as linked to a container that is being restarted."""
        status = self._statuses.get(container_id)
        if status is not None:
            status.linked = True

    def update_failed(self, failures: Iterable):
        """
        Merge per-container failures.

        Args:
            failures: Entries with ``container_id`` and ``error``; when one
                container failed more than once the last entry wins
        """
        for failure in failures:
            status = self._statuses.get(failure.container_id)
            if status is None:
                logger.warning(f"Failure reported for unknown container {failure.container_id[:12]}")
                continue
            status.state = SessionState.FAILED
            status.error = str(failure.error)

    def report(self) -> Report:
        """
        Finalize into a Report.

        Raises:
            RuntimeError: If the progress was already finalized
        """
        if self._finalized:
            raise RuntimeError("Progress has already been turned into a report")
        self._finalized = True
        return build_report(self._statuses.values())
