"""
Container selection filters.

A filter is a plain callable taking a Container and returning True when the
container takes part in the update run. Filters compose by wrapping a base
filter, the outermost one is evaluated first.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from dockturn.container.container import Container

logger = logging.getLogger(__name__)

ContainerFilter = Callable[[Container], bool]

NO_SCOPE = 'none'


def no_filter(container: Container) -> bool:
    """Accept every container."""
    return True


def _name_matches(pattern: str, name: str) -> bool:
    if pattern.lstrip('/') == name:
        return True
    try:
        return re.fullmatch(pattern, name) is not None
    except re.error:
        return False


def filter_by_names(names: List[str], base_filter: ContainerFilter) -> ContainerFilter:
    """Only accept containers whose name matches one of the given names or patterns."""
    if not names:
        return base_filter

    def _filter(container: Container) -> bool:
        for name in names:
            if _name_matches(name, container.name):
                return base_filter(container)
        return False

    return _filter


def filter_by_enable_label(base_filter: ContainerFilter) -> ContainerFilter:
    """Only accept containers that carry a parsable enable label."""

    def _filter(container: Container) -> bool:
        if container.enabled is None:
            return False
        return base_filter(container)

    return _filter


def filter_by_disabled_label(base_filter: ContainerFilter) -> ContainerFilter:
    """Reject containers explicitly labelled as disabled."""

    def _filter(container: Container) -> bool:
        if container.enabled is False:
            return False
        return base_filter(container)

    return _filter


def filter_by_scope(scope: str, base_filter: ContainerFilter) -> ContainerFilter:
    """Only accept containers in the given scope (``none`` selects unscoped ones)."""

    def _filter(container: Container) -> bool:
        container_scope = container.scope or ''
        if scope == NO_SCOPE and container_scope in ('', NO_SCOPE):
            return base_filter(container)
        if container_scope == scope:
            return base_filter(container)
        return False

    return _filter


def build_filter(
    names: Optional[List[str]] = None,
    enable_label: bool = False,
    scope: Optional[str] = None
) -> Tuple[ContainerFilter, str]:
    """
    Build the selection filter for one update run.

    Args:
        names: Container names or name patterns to restrict the run to
        enable_label: Only include containers carrying the enable label
        scope: Only include containers in this scope

    Returns:
        (filter, human readable description of the selection)
    """
    names = names or []
    parts = []

    container_filter = filter_by_names(names, no_filter)
    if names:
        parts.append(f"which name matches \"{', '.join(names)}\"")

    if enable_label:
        container_filter = filter_by_enable_label(container_filter)
        parts.append("using enable label")

    if scope:
        container_filter = filter_by_scope(scope, container_filter)
        parts.append(f"in scope \"{scope}\"")

    container_filter = filter_by_disabled_label(container_filter)

    if parts:
        description = "Only checking containers " + ", ".join(parts)
    else:
        description = "Checking all containers (except explicitly disabled with label)"

    return container_filter, description
