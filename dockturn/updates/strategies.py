"""
Restart strategies.

Both strategies consume the candidate list in reverse dependency order
(dependents first) and are built from the same two primitives:

- stop: run the pre-update hook, then stop and remove the old container
- restart: recreate the container from its snapshot with the new image

Rolling interleaves stop and restart per container. Batch stops every
candidate first and only then restarts them, dependencies first.

A failure only ever affects the container it happened on. A container whose
stop failed is still running its old image and is not restarted.
"""

import logging
from typing import List, Sequence

from dockturn.updates.cleanup import cleanup_images
from dockturn.updates.self_update import prepare_self_replacement
from dockturn.updates.types import ContainerRecord, Failure, UpdateParams

logger = logging.getLogger(__name__)


class RestartStrategy:
    """
    Base class holding the stop/restart primitives.

    Args:
        client: RuntimeClient
        params: Configuration of the current run
        hooks: LifecycleHooks used when lifecycle hooks are enabled
    """

    name = "base"

    def __init__(self, client, params: UpdateParams, hooks):
        self.client = client
        self.params = params
        self.hooks = hooks

    def run(self, candidates: Sequence[ContainerRecord]) -> List[Failure]:
        """
        Returns:
            Failures in the order they happened
        """
        raise NotImplementedError

    def stop_stale_container(self, record: ContainerRecord):
        """
        Stop one candidate ahead of its replacement.

        Raises:
            Exception: If the pre-update hook or the stop call failed
        """
        container = record.container

        if not record.stale:
            return

        if self.client.is_self(container):
            logger.debug(f"This is the agent container {container.name}, keeping it running")
            return

        if self.params.lifecycle_hooks:
            try:
                self.hooks.execute_pre_update_command(container)
            except Exception as e:
                logger.error(f"Pre-update command failed for {container.name}: {e}")
                logger.info(f"Skipping container {container.name} as the pre-update command failed")
                raise

        try:
            self.client.stop_container(container, self.params.timeout)
        except Exception as e:
            logger.error(f"Error stopping {container.name}: {e}")
            raise

    def restart_stale_container(self, record: ContainerRecord) -> bool:
        """
        Replace one stopped candidate.

        Returns:
            False when the replacement was skipped because the agent's own
            container could not be renamed; True otherwise

        Raises:
            Exception: If creating or starting the replacement failed
        """
        container = record.container

        if self.client.is_self(container):
            if not prepare_self_replacement(record, self.client):
                return False

        if self.params.no_restart:
            return True

        try:
            new_container_id = self.client.start_container(container)
        except Exception as e:
            logger.error(f"Error starting replacement for {container.name}: {e}")
            raise

        if record.stale and self.params.lifecycle_hooks:
            try:
                self.hooks.execute_post_update_command(new_container_id)
            except Exception as e:
                logger.error(f"Post-update command failed for {container.name}: {e}")
        return True

    def cleanup(self, image_ids: Sequence[str]):
        if self.params.cleanup:
            cleanup_images(self.client, image_ids)


class RollingRestart(RestartStrategy):
    """Stop and restart one container at a time."""

    name = "rolling"

    def run(self, candidates: Sequence[ContainerRecord]) -> List[Failure]:
        failures = []
        cleanup_image_ids = []

        for record in candidates:
            if not record.stale:
                continue

            try:
                self.stop_stale_container(record)
            except Exception as e:
                failures.append(Failure(record.id, e))
                continue

            try:
                attempted = self.restart_stale_container(record)
            except Exception as e:
                failures.append(Failure(record.id, e))
                attempted = True

            if attempted:
                cleanup_image_ids.append(record.image_id)

        self.cleanup(cleanup_image_ids)
        return failures


class BatchRestart(RestartStrategy):
    """Stop every candidate, then restart the stale ones."""

    name = "batch"

    def run(self, candidates: Sequence[ContainerRecord]) -> List[Failure]:
        stop_failures = self.stop_containers_in_reversed_order(candidates)
        restart_failures = self.restart_containers_in_sorted_order(
            candidates,
            stop_failed={failure.container_id for failure in stop_failures},
        )
        return stop_failures + restart_failures

    def stop_containers_in_reversed_order(self, candidates: Sequence[ContainerRecord]) -> List[Failure]:
        failures = []
        for record in candidates:
            try:
                self.stop_stale_container(record)
            except Exception as e:
                failures.append(Failure(record.id, e))
        return failures

    def restart_containers_in_sorted_order(
        self,
        candidates: Sequence[ContainerRecord],
        stop_failed=frozenset()
    ) -> List[Failure]:
        failures = []
        cleanup_image_ids = []

        for record in reversed(candidates):
            if not record.stale:
                continue
            if record.id in stop_failed:
                logger.debug(f"Not restarting {record.name}, it could not be stopped")
                continue

            try:
                attempted = self.restart_stale_container(record)
            except Exception as e:
                failures.append(Failure(record.id, e))
                attempted = True

            if attempted:
                cleanup_image_ids.append(record.image_id)

        self.cleanup(cleanup_image_ids)
        return failures


def get_restart_strategy(client, params: UpdateParams, hooks) -> RestartStrategy:
    if params.rolling_restart:
        return RollingRestart(client, params, hooks)
    return BatchRestart(client, params, hooks)
