"""
Shared pytest fixtures for dockturn tests.

Fixtures provided:
- mock_client: RuntimeClient mock with self detection and start wired up
- mock_hooks: LifecycleHooks mock
- progress: Fresh Progress accumulator
"""

from unittest.mock import MagicMock

import pytest

from dockturn.container.client import RuntimeClient
from dockturn.lifecycle import LifecycleHooks
from dockturn.session import Progress


@pytest.fixture
def mock_client():
    """
    Mock RuntimeClient for testing without a Docker daemon.

    is_self follows the self label; start_container returns "new-<name>".
    """
    client = MagicMock(spec=RuntimeClient)
    client.is_self.side_effect = lambda c: c.has_self_label
    client.start_container.side_effect = lambda c: f"new-{c.name}"
    client.is_container_stale.return_value = (False, "sha256:old")
    return client


@pytest.fixture
def mock_hooks():
    return MagicMock(spec=LifecycleHooks)


@pytest.fixture
def progress():
    return Progress()
