"""ID and value generators (CUID for entity keys, UUID for correlation ids)."""

import uuid

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_uuid() -> str:
    """Generate a random UUID4 string (correlation ids, trigger event ids)."""
    return str(uuid.uuid4())
