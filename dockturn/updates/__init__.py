"""
Updates Module

Update orchestration: staleness scanning, dependency ordering, restart
strategies, self-update and image cleanup.

Architecture:
- UpdateExecutor: runs the whole pipeline for one host
- RollingRestart / BatchRestart: the two restart strategies
- DependencySorter: orders containers by their links
"""

from dockturn.updates.update_executor import UpdateExecutor, update
from dockturn.updates.strategies import BatchRestart, RollingRestart
from dockturn.updates.sorter import CircularReferenceError, DependencySorter, sort_by_dependencies
from dockturn.updates.types import ContainerRecord, Failure, StaleState, UpdateParams

__all__ = [
    'UpdateExecutor',
    'update',
    'BatchRestart',
    'RollingRestart',
    'CircularReferenceError',
    'DependencySorter',
    'sort_by_dependencies',
    'ContainerRecord',
    'Failure',
    'StaleState',
    'UpdateParams',
]
