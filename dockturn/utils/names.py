"""Random container names for the self-update rename step."""

import secrets
import string

_LETTERS = string.ascii_letters
RANDOM_NAME_LENGTH = 32


def rand_name() -> str:
    """Return a 32-letter random name, unique enough to never collide on one daemon."""
    return ''.join(secrets.choice(_LETTERS) for _ in range(RANDOM_NAME_LENGTH))
