"""
Update Executor

Runs one update pass over the containers of a single Docker host:
1. Scan: classify each container as stale, not stale or failed
2. Order: sort by container links, dependencies first
3. Cascade: flag containers linked to restarting ones
4. Select: drop monitor-only containers from the restart candidates
5. Restart: stop and recreate stale candidates (rolling or batch)
6. Cleanup: optionally remove superseded images

Listing and ordering errors abort the run before anything is stopped. Any
other error is recorded against the container it happened on and the run
carries on.
"""

import logging
from typing import Callable, List

from dockturn.lifecycle import LifecycleHooks
from dockturn.session import Progress, Report
from dockturn.updates.dependencies import mark_linked_dependencies, select_containers_to_update
from dockturn.updates.scanner import scan_containers
from dockturn.updates.sorter import sort_by_dependencies
from dockturn.updates.strategies import get_restart_strategy
from dockturn.updates.types import ContainerRecord, UpdateParams

logger = logging.getLogger(__name__)

Sorter = Callable[[List[ContainerRecord]], List[ContainerRecord]]


class UpdateExecutor:
    """
    Executes update runs against one runtime client.

    Args:
        client: RuntimeClient for the host
        sorter: Dependency orderer, raises on cycles
        hooks: Lifecycle hook runner (defaults to label-declared commands)
    """

    def __init__(self, client, sorter: Sorter = sort_by_dependencies, hooks=None):
        self.client = client
        self.sorter = sorter
        self.hooks = hooks or LifecycleHooks(client)

    def execute(self, params: UpdateParams) -> Report:
        """
        Run one update pass.

        Returns:
            Report of what happened to every selected container

        Raises:
            Exception: Whatever listing or dependency ordering raised; no
                container has been touched in that case
        """
        logger.debug("Checking containers for updated images")
        progress = Progress()

        if params.lifecycle_hooks:
            self.hooks.execute_pre_checks(params.filter)

        containers = self.client.list_containers(params.filter)

        records = scan_containers(containers, self.client, params, progress)
        records = self.sorter(records)
        records = mark_linked_dependencies(records, progress)

        candidates = select_containers_to_update(records, params, progress)

        strategy = get_restart_strategy(self.client, params, self.hooks)
        logger.debug(f"Restarting {len(candidates)} candidate(s) with {strategy.name} strategy")
        failures = strategy.run(candidates)
        progress.update_failed(failures)

        if params.lifecycle_hooks:
            self.hooks.execute_post_checks(params.filter)

        return progress.report()


def update(
    client,
    params: UpdateParams,
    sorter: Sorter = sort_by_dependencies,
    hooks=None
) -> Report:
    """Run one update pass; see UpdateExecutor.execute."""
    return UpdateExecutor(client, sorter=sorter, hooks=hooks).execute(params)
