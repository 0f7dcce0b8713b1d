"""
Staleness scanning.

Classifies every listed container as stale, not stale, or failed. A failure
to classify one container never stops the others from being scanned.
"""

import logging
from typing import List

from dockturn.updates.types import ContainerRecord, StaleState, UpdateParams

logger = logging.getLogger(__name__)


def restart_planned(container, params: UpdateParams) -> bool:
    """Whether a stale container would actually be stopped and recreated."""
    return not (params.no_restart or params.monitor_only or container.is_monitor_only)


def classify_container(container, client, params: UpdateParams) -> ContainerRecord:
    """
    Probe one container.

    A stale container that is going to be recreated but whose image could not
    be inspected is reported as MISSING_METADATA: recreating it would lose the
    image defaults needed to rebuild its configuration.
    """
    try:
        stale, newest_image_id = client.is_container_stale(container)
    except Exception as e:
        return ContainerRecord(container=container, state=StaleState.PROBE_ERROR, error=e)

    if stale and restart_planned(container, params) and not container.has_image_info:
        return ContainerRecord(
            container=container,
            state=StaleState.MISSING_METADATA,
            newest_image_id=newest_image_id or "",
        )

    return ContainerRecord(
        container=container,
        state=StaleState.STALE if stale else StaleState.NOT_STALE,
        newest_image_id=newest_image_id or "",
    )


def scan_containers(containers, client, params: UpdateParams, progress) -> List[ContainerRecord]:
    """
    Classify every container and record the outcome in progress.

    Returns:
        One record per container, in listing order
    """
    records = []
    stale_count = 0
    failed_count = 0

    for container in containers:
        record = classify_container(container, client, params)

        reason = record.failure_reason
        if reason is not None:
            logger.info(f"Unable to update container {container.name!r}: {reason}. Proceeding to next.")
            failed_count += 1
            progress.add_skipped(container, reason)
        else:
            progress.add_scanned(container, record.newest_image_id)
            if record.stale:
                stale_count += 1

        records.append(record)

    logger.debug(
        f"Scanned {len(records)} containers: {stale_count} stale, {failed_count} failed"
    )
    return records
