"""
Container snapshot used by the update pipeline.

A Container wraps the raw docker inspect data of one container and of its
image, captured when the container was listed. It never talks to the daemon
itself; the RuntimeClient owns every call. The snapshot is what the
replacement container is recreated from, so it must not change after listing.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Label keys
ENABLE_LABEL = 'dockturn.enable'
MONITOR_ONLY_LABEL = 'dockturn.monitor-only'
NO_PULL_LABEL = 'dockturn.no-pull'
SELF_LABEL = 'dockturn.self'
SCOPE_LABEL = 'dockturn.scope'
STOP_SIGNAL_LABEL = 'dockturn.stop-signal'
DEPENDS_ON_LABEL = 'dockturn.depends-on'
PRE_CHECK_LABEL = 'dockturn.lifecycle.pre-check'
POST_CHECK_LABEL = 'dockturn.lifecycle.post-check'
PRE_UPDATE_LABEL = 'dockturn.lifecycle.pre-update'
POST_UPDATE_LABEL = 'dockturn.lifecycle.post-update'
PRE_UPDATE_TIMEOUT_LABEL = 'dockturn.lifecycle.pre-update-timeout'
POST_UPDATE_TIMEOUT_LABEL = 'dockturn.lifecycle.post-update-timeout'

DEFAULT_HOOK_TIMEOUT_MINUTES = 1


def _label_is_true(labels: Dict[str, str], key: str) -> bool:
    return labels.get(key, '').strip().lower() == 'true'


class Container:
    """
    Read-only view over docker inspect output.

    Args:
        attrs: Result of inspecting the container (``client.api.inspect_container``)
        image_info: Result of inspecting its image, or None when that failed
    """

    def __init__(self, attrs: Dict[str, Any], image_info: Optional[Dict[str, Any]] = None):
        self.attrs = attrs
        self.image_info = image_info

    def __repr__(self) -> str:
        return f"Container(name={self.name!r}, id={self.id[:12]!r})"

    @property
    def id(self) -> str:
        return self.attrs.get('Id', '')

    @property
    def name(self) -> str:
        """Container name without the leading slash docker reports."""
        return self.attrs.get('Name', '').lstrip('/')

    @property
    def config(self) -> Dict[str, Any]:
        return self.attrs.get('Config') or {}

    @property
    def host_config(self) -> Dict[str, Any]:
        return self.attrs.get('HostConfig') or {}

    @property
    def labels(self) -> Dict[str, str]:
        return self.config.get('Labels') or {}

    @property
    def image_id(self) -> str:
        """ID of the image the container currently runs."""
        return self.attrs.get('Image', '')

    @property
    def image_name(self) -> str:
        """
        Image reference the container was created from.

        An untagged reference gets ``:latest`` so the local lookup after a pull
        resolves to the same tag the pull fetched. Registry ports are not tags.
        """
        image_name = self.config.get('Image', '')
        if image_name.startswith('sha256:') or '@' in image_name:
            return image_name
        last_segment = image_name.rsplit('/', 1)[-1]
        if ':' not in last_segment:
            image_name = f"{image_name}:latest"
        return image_name

    @property
    def has_image_info(self) -> bool:
        return self.image_info is not None

    @property
    def image_labels(self) -> Dict[str, str]:
        if not self.image_info:
            return {}
        return (self.image_info.get('Config') or {}).get('Labels') or {}

    @property
    def state(self) -> Dict[str, Any]:
        return self.attrs.get('State') or {}

    @property
    def is_running(self) -> bool:
        return bool(self.state.get('Running'))

    @property
    def is_restarting(self) -> bool:
        return bool(self.state.get('Restarting'))

    @property
    def is_monitor_only(self) -> bool:
        return _label_is_true(self.labels, MONITOR_ONLY_LABEL)

    @property
    def is_no_pull(self) -> bool:
        return _label_is_true(self.labels, NO_PULL_LABEL)

    @property
    def has_self_label(self) -> bool:
        return _label_is_true(self.labels, SELF_LABEL)

    @property
    def enabled(self) -> Optional[bool]:
        """
        Tri-state value of the enable label.

        Returns:
            True/False when the label holds a boolean, None when absent or unparsable
        """
        raw = self.labels.get(ENABLE_LABEL)
        if raw is None:
            return None
        value = raw.strip().lower()
        if value == 'true':
            return True
        if value == 'false':
            return False
        logger.warning(f"Container {self.name} has unparsable {ENABLE_LABEL} label: {raw!r}")
        return None

    @property
    def scope(self) -> Optional[str]:
        return self.labels.get(SCOPE_LABEL)

    @property
    def stop_signal(self) -> Optional[str]:
        return self.labels.get(STOP_SIGNAL_LABEL) or None

    @property
    def links(self) -> List[str]:
        """
        Names of the containers this one depends on.

        The depends-on label replaces legacy links entirely. Without it, legacy
        ``--link`` targets and a ``container:<name>`` network mode count as links.
        """
        depends_on = self.labels.get(DEPENDS_ON_LABEL, '')
        if depends_on:
            return [name.strip().lstrip('/') for name in depends_on.split(',') if name.strip()]

        links = []
        for link in self.host_config.get('Links') or []:
            # Format: "/db:/web/db"
            links.append(link.split(':')[0].lstrip('/'))

        network_mode = self.host_config.get('NetworkMode') or ''
        if network_mode.startswith('container:'):
            links.append(network_mode[len('container:'):].lstrip('/'))

        return links

    @property
    def pre_check_command(self) -> str:
        return self.labels.get(PRE_CHECK_LABEL, '')

    @property
    def post_check_command(self) -> str:
        return self.labels.get(POST_CHECK_LABEL, '')

    @property
    def pre_update_command(self) -> str:
        return self.labels.get(PRE_UPDATE_LABEL, '')

    @property
    def post_update_command(self) -> str:
        return self.labels.get(POST_UPDATE_LABEL, '')

    @property
    def pre_update_timeout(self) -> int:
        return self._timeout_label(PRE_UPDATE_TIMEOUT_LABEL)

    @property
    def post_update_timeout(self) -> int:
        return self._timeout_label(POST_UPDATE_TIMEOUT_LABEL)

    def _timeout_label(self, key: str) -> int:
        """Hook timeout in minutes; 0 disables the timeout."""
        raw = self.labels.get(key)
        if raw is None or raw.strip() == '':
            return DEFAULT_HOOK_TIMEOUT_MINUTES
        try:
            minutes = int(raw)
        except ValueError:
            logger.warning(f"Invalid {key} label on {self.name}: {raw!r}, using default")
            return DEFAULT_HOOK_TIMEOUT_MINUTES
        return max(0, minutes)
