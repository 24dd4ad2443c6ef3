"""Prefixed ID generation utility."""

import uuid


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "whk_", "dlv_", "ntf_").

    Returns:
        A string like "dlv_a1b2c3d4e5f6a7b8".
    """
    return f"{prefix}{uuid.uuid4().hex[:16]}"
