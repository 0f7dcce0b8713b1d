"""
Shared test helper functions.

Import these in tests via: from tests.test_helpers import make_container
"""

from typing import Dict, List, Optional

from dockturn.container.container import Container
from dockturn.updates.types import ContainerRecord, StaleState

MUTATING_CALLS = ('stop_container', 'start_container', 'rename_container', 'remove_image_by_id')


def make_container(
    name: str,
    image: str = "app:latest",
    image_id: str = "sha256:old",
    labels: Optional[Dict[str, str]] = None,
    links: Optional[List[str]] = None,
    running: bool = True,
    image_info: bool = True,
    network_mode: str = "default",
    created: str = "2024-01-01T00:00:00.000000000Z",
) -> Container:
    """
    Create a Container snapshot shaped like docker inspect output.

    Args:
        name: Container name (without leading slash)
        image: Config.Image reference
        image_id: ID of the image the container runs
        labels: Container labels
        links: Names of legacy-linked containers
        running: State.Running
        image_info: False to simulate a failed image inspect
        network_mode: HostConfig.NetworkMode
        created: Creation timestamp

    Returns:
        Container snapshot
    """
    attrs = {
        'Id': (name + '0' * 64)[:64],
        'Name': f"/{name}",
        'Image': image_id,
        'Created': created,
        'Config': {
            'Image': image,
            'Labels': labels or {},
            'Env': ['PATH=/usr/bin'],
            'Hostname': (name + '0' * 64)[:12],
        },
        'HostConfig': {
            'Links': [f"/{link}:/{name}/{link}" for link in links or []] or None,
            'NetworkMode': network_mode,
        },
        'State': {'Running': running, 'Restarting': False},
        'NetworkSettings': {'Networks': {}},
    }
    info = None
    if image_info:
        info = {'Id': image_id, 'Config': {'Labels': {}, 'Env': ['PATH=/usr/bin']}}
    return Container(attrs, info)


def make_record(
    container: Container,
    state: StaleState = StaleState.STALE,
    newest_image_id: str = "sha256:new",
) -> ContainerRecord:
    """Wrap a container in a pipeline record."""
    return ContainerRecord(container=container, state=state, newest_image_id=newest_image_id)


def mutating_calls(client) -> list:
    """
    Daemon-mutating calls issued on a mocked runtime client, in order.

    Returns:
        List of (method name, container name or image ID)
    """
    calls = []
    for name, args, kwargs in client.method_calls:
        if name not in MUTATING_CALLS:
            continue
        target = args[0]
        calls.append((name, getattr(target, 'name', target)))
    return calls
