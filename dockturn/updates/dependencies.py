"""
Link cascade marking and update set selection.
"""

import logging
from dataclasses import replace
from typing import List, Sequence

from dockturn.updates.sorter import build_reference_map
from dockturn.updates.types import ContainerRecord, UpdateParams

logger = logging.getLogger(__name__)


def mark_linked_dependencies(records: Sequence[ContainerRecord], progress=None) -> List[ContainerRecord]:
    """
    Flag containers that link to a container being restarted.

    Records must be in dependency order: a record flagged here counts as
    restarting for the records after it, so the flag cascades down a chain.
    The first matching link decides; the remaining links are not inspected.

    Returns:
        New records, same order, with ``linked`` set where applicable
    """
    marked = list(records)
    references = build_reference_map(marked)
    # Flags set earlier in the loop live in marked, not in references
    positions = {record.id: index for index, record in enumerate(marked)}

    for index, parent in enumerate(marked):
        if parent.to_restart:
            continue

        for link_name in parent.links:
            child = references.get(link_name)
            if child is not None and marked[positions[child.id]].to_restart:
                logger.debug(f"{parent.name} is linked to restarting container {link_name}")
                marked[index] = replace(parent, linked=True)
                if progress is not None:
                    progress.mark_linked(parent.id)
                break

    return marked


def select_containers_to_update(
    records: Sequence[ContainerRecord],
    params: UpdateParams,
    progress
) -> List[ContainerRecord]:
    """
    Pick the restart candidates.

    Returns:
        Every record that is not monitor-only, in reverse dependency order
        (dependents first); empty for a monitor-only run
    """
    if params.monitor_only:
        return []

    candidates = []
    for record in reversed(records):
        if record.container.is_monitor_only:
            continue
        candidates.append(record)
        progress.mark_for_update(record.id)

    return candidates
