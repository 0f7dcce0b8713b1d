"""
Lifecycle hooks.

Containers declare shell commands in labels that run inside them around an
update: pre-check and post-check once per run, pre-update before the
container is stopped, post-update inside the replacement after it started.
Only a failing pre-update command changes what the pipeline does; every
other hook is best-effort and its failures are only logged.
"""

import logging

from dockturn.container.container import Container
from dockturn.container.filters import ContainerFilter
from dockturn.utils.image_id import short_id

logger = logging.getLogger(__name__)

CHECK_TIMEOUT_MINUTES = 1


class LifecycleHooks:
    """
    Runs label-declared lifecycle commands through the runtime client.

    Args:
        client: RuntimeClient used to list containers and exec commands
    """

    def __init__(self, client):
        self.client = client

    def execute_pre_checks(self, container_filter: ContainerFilter):
        """Run the pre-check command of every selected container."""
        self._execute_checks(container_filter, 'pre-check')

    def execute_post_checks(self, container_filter: ContainerFilter):
        """Run the post-check command of every selected container."""
        self._execute_checks(container_filter, 'post-check')

    def _execute_checks(self, container_filter: ContainerFilter, kind: str):
        try:
            containers = self.client.list_containers(container_filter)
        except Exception as e:
            logger.error(f"Unable to list containers for {kind} commands: {e}")
            return

        for container in containers:
            if kind == 'pre-check':
                command = container.pre_check_command
            else:
                command = container.post_check_command

            if not command:
                logger.debug(f"No {kind} command supplied for {container.name}. Skipping")
                continue

            logger.debug(f"Executing {kind} command for {container.name}")
            try:
                self.client.execute_command(container.id, command, CHECK_TIMEOUT_MINUTES)
            except Exception as e:
                logger.error(f"{kind} command failed for {container.name}: {e}")

    def execute_pre_update_command(self, container: Container):
        """
        Run the pre-update command of a container about to be stopped.

        Raises:
            Exception: Whatever the runtime client raised; the caller skips the container
        """
        command = container.pre_update_command
        if not command:
            logger.debug(f"No pre-update command supplied for {container.name}. Skipping")
            return

        if not container.is_running or container.is_restarting:
            logger.debug(f"Container {container.name} is not running. Skipping pre-update command")
            return

        logger.debug(f"Executing pre-update command for {container.name}")
        self.client.execute_command(container.id, command, container.pre_update_timeout)

    def execute_post_update_command(self, new_container_id: str):
        """Run the post-update command inside a freshly started replacement."""
        try:
            new_container = self.client.get_container(new_container_id)
        except Exception as e:
            logger.error(f"Unable to inspect new container {short_id(new_container_id)}: {e}")
            return

        command = new_container.post_update_command
        if not command:
            logger.debug(f"No post-update command supplied for {new_container.name}. Skipping")
            return

        logger.debug(f"Executing post-update command for {new_container.name}")
        try:
            self.client.execute_command(
                new_container_id, command, new_container.post_update_timeout
            )
        except Exception as e:
            logger.error(f"Post-update command failed for {new_container.name}: {e}")
