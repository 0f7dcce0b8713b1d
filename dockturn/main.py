"""
dockturn entry point.

Runs a single update pass against the Docker daemon configured through the
environment and exits. Scheduling repeated runs is left to the caller.
"""

import logging
import sys

from docker.errors import DockerException

from dockturn.config.settings import AppConfig, setup_logging
from dockturn.container.client import RuntimeClient
from dockturn.updates.self_update import cleanup_previous_instances
from dockturn.updates.update_executor import update

logger = logging.getLogger(__name__)


def run_once() -> int:
    """
    Execute one update pass.

    Returns:
        Process exit status
    """
    try:
        AppConfig.validate()
        params = AppConfig.update_params()
        client = RuntimeClient.from_env(AppConfig.client_options())
    except (ValueError, DockerException) as e:
        logger.error(f"Unable to start: {e}")
        return 1

    try:
        cleanup_previous_instances(client, cleanup=params.cleanup)
    except Exception as e:
        logger.error(f"Previous agent instances were not cleaned up: {e}")

    try:
        report = update(client, params)
    except Exception as e:
        logger.error(f"Update run aborted: {e}", exc_info=True)
        return 1

    logger.info(
        f"Update run finished: scanned={len(report.scanned)} updated={len(report.updated)} "
        f"failed={len(report.failed)} skipped={len(report.skipped)} "
        f"stale={len(report.stale)} fresh={len(report.fresh)}"
    )
    return 0


def main():
    setup_logging()
    sys.exit(run_once())


if __name__ == "__main__":
    main()
