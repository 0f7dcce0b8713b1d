"""
Self-update protocol.

The agent cannot stop its own container and then start the replacement:
nothing would be left running to start it. Instead the running container is
renamed out of the way so the replacement can be created under the canonical
name while the old instance keeps running. The replacement, once up, stops
the previous instance (see ``cleanup_previous_instances``).
"""

import logging
from typing import Tuple

from dockturn.container.client import RuntimeClientError
from dockturn.utils.image_id import short_id
from dockturn.utils.names import rand_name

logger = logging.getLogger(__name__)

PREVIOUS_INSTANCE_STOP_TIMEOUT = 600


def prepare_self_replacement(record, client) -> bool:
    """
    Rename the running agent container to a random name.

    Returns:
        False when the rename failed; the replacement must not be started then
    """
    container = record.container
    new_name = rand_name()
    try:
        client.rename_container(container, new_name)
    except Exception as e:
        logger.error(f"Unable to rename {container.name} before replacing it: {e}")
        return False

    logger.info(f"Renamed running agent {container.name} to {new_name} ahead of its replacement")
    return True


def _created_at(container) -> Tuple[str, int]:
    """
    Sort key for a docker ``Created`` timestamp (RFC 3339, UTC).

    The daemon trims trailing zeros from the fractional seconds, so the
    fraction is compared as nanoseconds rather than as a string.
    """
    created = container.attrs.get('Created', '') or ''
    seconds, _, fraction = created.rstrip('Z').partition('.')
    if not fraction.isdigit():
        fraction = ''
    return seconds, int(fraction[:9].ljust(9, '0'))


def cleanup_previous_instances(client, cleanup: bool = False) -> int:
    """
    Stop every agent container except the most recently created one.

    Run at startup so that a replacement started by a self-update retires
    the instance that launched it.

    Returns:
        Number of previous instances stopped

    Raises:
        RuntimeClientError: If any previous instance could not be stopped
    """
    instances = client.list_containers(client.is_self)
    if len(instances) <= 1:
        logger.debug("There are no additional agent containers")
        return 0

    logger.info("Found multiple running agent instances. Cleaning up.")
    instances.sort(key=_created_at)

    stopped = 0
    stop_errors = 0
    for container in instances[:-1]:
        try:
            client.stop_container(container, PREVIOUS_INSTANCE_STOP_TIMEOUT)
        except Exception as e:
            logger.error(f"Could not stop previous agent instance {container.name}: {e}")
            stop_errors += 1
            continue
        stopped += 1

        if cleanup and container.image_id != instances[-1].image_id:
            try:
                client.remove_image_by_id(container.image_id)
            except Exception as e:
                logger.warning(
                    f"Could not remove image {short_id(container.image_id)} "
                    f"of previous agent instance: {e}"
                )

    if stop_errors:
        raise RuntimeClientError(f"{stop_errors} errors while stopping previous agent instances")
    return stopped
