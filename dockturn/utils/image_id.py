"""
Image ID Normalization Utilities

Docker image IDs come in multiple formats:
- Full SHA256: "sha256:abc123def456..." (71+ chars)
- Short ID: "abc123def456" (12 chars)

Log lines always use the 12-char short format.
"""

from typing import Optional


def short_id(object_id: Optional[str]) -> str:
    """
    Normalize a container or image ID to 12-char short format without sha256: prefix.

    Examples:
        >>> short_id("sha256:abc123def456789")
        "abc123def456"
        >>> short_id(None)
        ""
    """
    if not object_id:
        return ""
    return object_id.replace('sha256:', '')[:12]
