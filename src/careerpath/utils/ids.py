"""UUID generation utilities for CareerPath."""

import uuid


def generate_random_uuid() -> str:
    """
    Generate random UUID v4.

    Used as the identity of newly created journal entries.

    Returns:
        UUID string in standard format

    Example:
        >>> generate_random_uuid()
        "f47ac10b-58cc-4372-a567-0e02b2c3d479"
    """
    return str(uuid.uuid4())
