"""Identifier generation for sessions, messages and responses."""

import secrets
import time


def generate_id(prefix: str) -> str:
    """Generate a sortable, collision-resistant identifier.

    Format is ``{prefix}_{epoch_millis}_{8 hex chars}``, e.g.
    ``session_1718000000000_9f2c01ab``.
    """
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
