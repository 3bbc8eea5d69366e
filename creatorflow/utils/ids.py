"""
Client-side identity generation.

Ids are random UUID4 strings (122 random bits). The chance of any collision
among n ids is about n^2 / 2^123, negligible for any realistic account.
"""

import uuid


def generate_id() -> str:
    """Return a fresh opaque record id."""
    return str(uuid.uuid4())
