"""Tracking-number generation.

Format: 12 characters from ``[A-Z0-9]`` in hyphen-separated groups of
four, e.g. ``AB12-CD34-EF56`` (36**12 ~ 4.7e18 combinations).
"""

import secrets
import string

ALPHABET = string.ascii_uppercase + string.digits
LENGTH = 12
GROUP = 4


def generate_tracking_number() -> str:
    raw = "".join(secrets.choice(ALPHABET) for _ in range(LENGTH))
    return "-".join(raw[i : i + GROUP] for i in range(0, LENGTH, GROUP))
