"""
Image cleanup after restarts.
"""

import logging
from typing import Iterable

from dockturn.utils.image_id import short_id

logger = logging.getLogger(__name__)


def cleanup_images(client, image_ids: Iterable[str]) -> int:
    """
    Remove superseded images, once per distinct image ID.

    Removal is best-effort: failures are logged and never retried.

    Returns:
        Number of images removed
    """
    removed = 0
    for image_id in dict.fromkeys(i for i in image_ids if i):
        try:
            client.remove_image_by_id(image_id)
            removed += 1
        except Exception as e:
            logger.error(f"Failed to remove image {short_id(image_id)}: {e}")
    return removed
