"""
Docker SDK runtime client.

Executes every daemon operation the update pipeline needs: listing,
staleness probes, stop/remove, recreate/start, rename, image removal and
lifecycle command execution. All calls are synchronous and block until the
daemon answers.

Container recreation uses the low-level API with HostConfig passthrough so
that every field the daemon reported (GPU device requests, ulimits, ...)
survives the update. Values that merely repeat the old image's defaults are
dropped so the new image's defaults take effect.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import docker
from docker.errors import DockerException, NotFound
from docker.utils import parse_repository_tag
from packaging import version

from dockturn.container.container import Container
from dockturn.container.filters import ContainerFilter, no_filter
from dockturn.utils.image_id import short_id

logger = logging.getLogger(__name__)

DEFAULT_STOP_SIGNAL = 'SIGTERM'
POLL_INTERVAL_SECONDS = 1

# Docker container ID length (short format)
CONTAINER_ID_SHORT_LENGTH = 12

# API version from which create accepts more than one network endpoint
MULTI_NETWORK_API_VERSION = "1.44"


class RuntimeClientError(Exception):
    """Raised when a daemon operation did not have the expected effect"""
    pass


class LifecycleCommandError(RuntimeClientError):
    """Raised when a lifecycle command fails or times out"""
    pass


@dataclass(frozen=True)
class ClientOptions:
    pull_images: bool = True
    include_stopped: bool = False
    include_restarting: bool = False
    revive_stopped: bool = False
    remove_volumes: bool = False


class RuntimeClient:
    """
    Runtime operations against one Docker daemon.

    Args:
        docker_client: Docker SDK client for the daemon
        options: Listing, pulling and recreation behaviour
    """

    def __init__(self, docker_client: docker.DockerClient, options: Optional[ClientOptions] = None):
        self.docker = docker_client
        self.options = options or ClientOptions()

    @classmethod
    def from_env(cls, options: Optional[ClientOptions] = None) -> 'RuntimeClient':
        """Connect using DOCKER_HOST / DOCKER_TLS_VERIFY / DOCKER_CERT_PATH."""
        return cls(docker.from_env(), options)

    @property
    def api(self):
        return self.docker.api

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_containers(self, container_filter: Optional[ContainerFilter] = None) -> List[Container]:
        """
        List the containers taking part in an update run.

        Raises:
            DockerException: If the daemon cannot be listed or a container inspected
        """
        container_filter = container_filter or no_filter

        statuses = ['running']
        if self.options.include_stopped:
            statuses.extend(['created', 'exited'])
        if self.options.include_restarting:
            statuses.append('restarting')

        logger.debug(f"Retrieving containers with status {', '.join(statuses)}")
        summaries = self.api.containers(filters={'status': statuses})

        containers = []
        for summary in summaries:
            container = self.get_container(summary['Id'])
            if container_filter(container):
                containers.append(container)

        logger.debug(f"Selected {len(containers)} of {len(summaries)} containers")
        return containers

    def get_container(self, container_id: str) -> Container:
        """Inspect one container and its image."""
        attrs = self.api.inspect_container(container_id)

        image_info = None
        try:
            image_info = self.api.inspect_image(attrs['Image'])
        except DockerException as e:
            logger.warning(
                f"Unable to inspect image of {attrs.get('Name', container_id).lstrip('/')}: {e}"
            )

        return Container(attrs, image_info)

    def is_self(self, container: Container) -> bool:
        """True when the container is the one running this agent."""
        return container.has_self_label

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def is_container_stale(self, container: Container) -> Tuple[bool, str]:
        """
        Check whether a newer image exists for the container.

        Returns:
            (stale, newest image ID); the newest image ID is the current one when not stale

        Raises:
            RuntimeClientError: If the image is pinned by ID
            DockerException: If pulling or inspecting the image fails
        """
        if not self.options.pull_images or container.is_no_pull:
            logger.debug(f"Skipping image pull for {container.name}")
        else:
            self._pull_image(container)

        return self._has_new_image(container)

    def _pull_image(self, container: Container):
        image_name = container.image_name
        if image_name.startswith('sha256:'):
            raise RuntimeClientError(
                f"Container {container.name} uses a pinned image and cannot be updated"
            )

        repository, tag = parse_repository_tag(image_name)
        logger.debug(f"Pulling {image_name} for {container.name}")
        self.api.pull(repository, tag=tag)

    def _has_new_image(self, container: Container) -> Tuple[bool, str]:
        current_image_id = container.image_id
        new_image_id = self.api.inspect_image(container.image_name)['Id']

        if new_image_id == current_image_id:
            logger.debug(f"No new images found for {container.name}")
            return False, current_image_id

        logger.info(f"Found new {container.image_name} image ({short_id(new_image_id)})")
        return True, new_image_id

    # ------------------------------------------------------------------
    # Stop / remove
    # ------------------------------------------------------------------

    def stop_container(self, container: Container, timeout: float):
        """
        Stop and remove a container.

        Args:
            container: Container to stop
            timeout: Seconds to wait for the container to exit

        Raises:
            DockerException: If the daemon rejects the kill or remove call
            RuntimeClientError: If the container is still present afterwards
        """
        signal = container.stop_signal or DEFAULT_STOP_SIGNAL
        container_short_id = short_id(container.id)

        if container.is_running:
            logger.info(f"Stopping {container.name} ({container_short_id}) with {signal}")
            self.api.kill(container.id, signal=signal)

        if not self._wait_for_stop_or_timeout(container.id, timeout):
            logger.debug(f"Container {container_short_id} did not stop within {timeout}s")

        if container.host_config.get('AutoRemove'):
            logger.debug(f"AutoRemove container {container_short_id}, skipping remove call")
        else:
            logger.debug(f"Removing container {container_short_id}")
            try:
                self.api.remove_container(
                    container.id, v=self.options.remove_volumes, force=True
                )
            except NotFound:
                pass

        if not self._wait_for_removal(container.id, timeout):
            raise RuntimeClientError(
                f"Container {container.name} ({container_short_id}) could not be removed"
            )

    def _wait_for_stop_or_timeout(self, container_id: str, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            try:
                attrs = self.api.inspect_container(container_id)
            except NotFound:
                return True
            if not (attrs.get('State') or {}).get('Running'):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(POLL_INTERVAL_SECONDS)

    def _wait_for_removal(self, container_id: str, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            try:
                self.api.inspect_container(container_id)
            except NotFound:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(POLL_INTERVAL_SECONDS)

    # ------------------------------------------------------------------
    # Recreate / start
    # ------------------------------------------------------------------

    def start_container(self, container: Container) -> str:
        """
        Recreate a container from its snapshot using the newest local image.

        The replacement takes the snapshot's name, so the old container must
        be removed or renamed first.

        Returns:
            ID of the new container

        Raises:
            DockerException: If creating, connecting or starting fails
        """
        create_kwargs, extra_endpoints = self._extract_create_config(container)

        logger.info(f"Creating {container.name}")
        response = self.api.create_container(**create_kwargs)
        new_container_id = response['Id']

        for network_name, endpoint_config in extra_endpoints.items():
            self._connect_network(new_container_id, network_name, endpoint_config)

        if not container.is_running and not self.options.revive_stopped:
            return new_container_id

        logger.debug(f"Starting container {container.name} ({short_id(new_container_id)})")
        self.api.start(new_container_id)
        return new_container_id

    def _connect_network(self, container_id: str, network_name: str, endpoint_config: Dict[str, Any]):
        """Connect a created container to an additional network (API < 1.44)."""
        connect_kwargs = {}

        ipam = endpoint_config.get('IPAMConfig') or {}
        if ipam.get('IPv4Address'):
            connect_kwargs['ipv4_address'] = ipam['IPv4Address']
        if ipam.get('IPv6Address'):
            connect_kwargs['ipv6_address'] = ipam['IPv6Address']
        if endpoint_config.get('Aliases'):
            connect_kwargs['aliases'] = endpoint_config['Aliases']
        if endpoint_config.get('Links'):
            connect_kwargs['links'] = endpoint_config['Links']

        logger.debug(f"Connecting {short_id(container_id)} to network {network_name}")
        self.api.connect_container_to_network(container_id, network_name, **connect_kwargs)

    def _extract_create_config(self, container: Container) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
        """
        Build create_container kwargs from a container snapshot.

        Returns:
            (create kwargs, endpoints to connect after creation)
        """
        config = container.config
        host_config = dict(container.host_config)
        image_config = (container.image_info or {}).get('Config') or {}
        network_mode = host_config.get('NetworkMode') or ''
        shares_network = network_mode.startswith('container:')

        # Resolve container:ID to container:name so the link survives the dependency's own update
        if shares_network:
            ref = network_mode.split(':', 1)[1]
            try:
                ref_name = self.api.inspect_container(ref).get('Name', '').lstrip('/')
                if ref_name:
                    host_config['NetworkMode'] = f"container:{ref_name}"
            except DockerException as e:
                logger.warning(f"Failed to resolve NetworkMode of {container.name}: {e}")

        command = config.get('Cmd')
        if command == image_config.get('Cmd'):
            command = None
        entrypoint = config.get('Entrypoint')
        if entrypoint == image_config.get('Entrypoint'):
            entrypoint = None

        working_dir = config.get('WorkingDir') or None
        if working_dir == (image_config.get('WorkingDir') or None):
            working_dir = None
        user = config.get('User') or None
        if user == (image_config.get('User') or None):
            user = None

        image_env = set(image_config.get('Env') or [])
        environment = [e for e in config.get('Env') or [] if e not in image_env]

        labels = self._extract_user_labels(container.labels, container.image_labels)

        image_volumes = image_config.get('Volumes') or {}
        volumes = [v for v in (config.get('Volumes') or {}) if v not in image_volumes]

        image_ports = image_config.get('ExposedPorts') or {}
        exposed = [p for p in (config.get('ExposedPorts') or {}) if p not in image_ports]
        for port in host_config.get('PortBindings') or {}:
            if port not in exposed:
                exposed.append(port)
        ports = [tuple(p.split('/', 1)) if '/' in p else p for p in exposed]

        hostname = config.get('Hostname')
        if shares_network or hostname == container.id[:CONTAINER_ID_SHORT_LENGTH]:
            hostname = None

        networking_config, extra_endpoints = self._extract_network_config(container)

        create_kwargs = {
            'image': container.image_name,
            'name': container.name,
            'hostname': hostname,
            'domainname': config.get('Domainname') or None,
            'user': user,
            'environment': environment or None,
            'command': command,
            'entrypoint': entrypoint,
            'working_dir': working_dir,
            'labels': labels,
            'volumes': volumes or None,
            'ports': ports or None,
            'host_config': host_config,
            'networking_config': networking_config,
            'healthcheck': config.get('Healthcheck'),
            'stop_signal': config.get('StopSignal'),
            'tty': config.get('Tty', False),
            'stdin_open': config.get('OpenStdin', False),
        }
        return create_kwargs, extra_endpoints

    def _extract_user_labels(
        self,
        container_labels: Dict[str, str],
        image_labels: Dict[str, str]
    ) -> Dict[str, str]:
        """
        Extract user-added labels by filtering out old image defaults.

        This preserves user customizations while allowing new image labels to take effect.
        """
        user_labels = dict(container_labels or {})

        for key, image_value in (image_labels or {}).items():
            if user_labels.get(key) == image_value:
                user_labels.pop(key, None)

        return user_labels

    def _extract_network_config(
        self,
        container: Container
    ) -> Tuple[Optional[Dict[str, Any]], Dict[str, Dict[str, Any]]]:
        """
        Split the container's network endpoints into create-time config and later connects.

        Returns:
            (networking_config for create, {network: endpoint config} to connect afterwards)
        """
        network_mode = container.host_config.get('NetworkMode') or ''
        if network_mode.startswith('container:') or network_mode in ('host', 'none'):
            return None, {}

        networks = (container.attrs.get('NetworkSettings') or {}).get('Networks') or {}
        if not networks:
            return None, {}

        endpoints = {}
        for network_name, network_data in networks.items():
            endpoint_config = {}

            ipam_config = network_data.get('IPAMConfig') or {}
            ipam = {
                key: ipam_config[key]
                for key in ('IPv4Address', 'IPv6Address')
                if ipam_config.get(key)
            }
            if ipam:
                endpoint_config['IPAMConfig'] = ipam

            # Short-ID aliases are added by the daemon and would point at the old container
            aliases = [
                a for a in network_data.get('Aliases') or []
                if len(a) != CONTAINER_ID_SHORT_LENGTH
            ]
            if aliases:
                endpoint_config['Aliases'] = aliases

            if network_data.get('Links'):
                endpoint_config['Links'] = network_data['Links']

            endpoints[network_name] = endpoint_config

        api_version = version.parse(self.api.api_version)
        if api_version >= version.parse(MULTI_NETWORK_API_VERSION):
            return {'EndpointsConfig': endpoints}, {}

        # Older daemons accept a single endpoint at creation, matching NetworkMode
        primary = network_mode if network_mode in endpoints else next(iter(endpoints))
        extra = {name: cfg for name, cfg in endpoints.items() if name != primary}
        return {'EndpointsConfig': {primary: endpoints[primary]}}, extra

    # ------------------------------------------------------------------
    # Rename / image removal / exec
    # ------------------------------------------------------------------

    def rename_container(self, container: Container, new_name: str):
        logger.debug(f"Renaming container {container.name} ({short_id(container.id)}) to {new_name}")
        self.api.rename(container.id, new_name)

    def remove_image_by_id(self, image_id: str):
        """
        Remove an image, untagging every reference to it.

        Raises:
            DockerException: If the daemon refuses (for example, still in use)
        """
        image_short_id = short_id(image_id)
        logger.info(f"Removing image {image_short_id}")

        items = self.api.remove_image(image_id, force=True) or []
        untagged = [item['Untagged'] for item in items if 'Untagged' in item]
        deleted = [item['Deleted'] for item in items if 'Deleted' in item]
        logger.debug(
            f"Image {image_short_id}: untagged {len(untagged)} reference(s), "
            f"deleted {len(deleted)} layer(s)"
        )

    def execute_command(self, container_id: str, command: str, timeout_minutes: int):
        """
        Run a shell command inside a container and wait for it to exit.

        Args:
            container_id: Container to exec in
            command: Shell command line, run with ``sh -c``
            timeout_minutes: Minutes to wait before giving up, 0 waits forever

        Raises:
            LifecycleCommandError: If the command exits non-zero or times out
            DockerException: If the exec cannot be created or started
        """
        container_short_id = short_id(container_id)
        logger.debug(f"Executing {command!r} in {container_short_id}")

        exec_id = self.api.exec_create(container_id, ['sh', '-c', command])['Id']
        self.api.exec_start(exec_id, detach=True)

        deadline = None
        if timeout_minutes > 0:
            deadline = time.monotonic() + timeout_minutes * 60

        while True:
            info = self.api.exec_inspect(exec_id)
            if not info.get('Running'):
                break
            if deadline is not None and time.monotonic() >= deadline:
                raise LifecycleCommandError(
                    f"Command {command!r} in {container_short_id} timed out "
                    f"after {timeout_minutes} minute(s)"
                )
            time.sleep(POLL_INTERVAL_SECONDS)

        exit_code = info.get('ExitCode')
        if exit_code:
            raise LifecycleCommandError(
                f"Command {command!r} in {container_short_id} exited with code {exit_code}"
            )
