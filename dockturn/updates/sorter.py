"""
Dependency ordering.

Orders containers so that every container comes after the containers it
links to. Links to containers outside the list are ignored.
"""

import logging
from typing import Dict, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Docker container ID length (short format)
CONTAINER_ID_SHORT_LENGTH = 12


class CircularReferenceError(Exception):
    """Raised when container links form a cycle"""
    pass


def build_reference_map(items: Sequence[T]) -> Dict[str, T]:
    """
    Map every way a link can refer to a container onto that container.

    Legacy links and the depends-on label use names, while a
    ``container:<ref>`` network mode usually holds the full container ID.

    Returns:
        {name, full ID or short ID: item}
    """
    references: Dict[str, T] = {}
    for item in items:
        container_id = getattr(item, 'id', '') or ''
        if container_id:
            references[container_id] = item
            references[container_id[:CONTAINER_ID_SHORT_LENGTH]] = item
    # Names win over an ID prefix that happens to look like a name
    for item in items:
        references[item.name] = item
    return references


class DependencySorter:
    """
    Depth-first topological sort over container links.

    Works on any item exposing ``name``, ``id`` and ``links``. Containers
    without links keep their relative input order.
    """

    def sort(self, items: Sequence[T]) -> List[T]:
        """
        Returns:
            The items, dependencies first

        Raises:
            CircularReferenceError: If a cycle is detected
        """
        references = build_reference_map(items)
        visited = set()
        processing = set()
        ordered: List[T] = []

        def visit(item):
            if item.name in processing:
                raise CircularReferenceError(f"Circular reference to {item.name}")
            if item.name in visited:
                return

            processing.add(item.name)
            for link in item.links:
                linked = references.get(link)
                if linked is not None:
                    visit(linked)
            processing.remove(item.name)

            visited.add(item.name)
            ordered.append(item)

        for item in items:
            visit(item)

        return ordered


def sort_by_dependencies(items: Sequence[T]) -> List[T]:
    return DependencySorter().sort(items)
