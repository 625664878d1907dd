"""Input normalization shared by the read and write paths."""

import uuid

from vortexstream.errors import InvalidArgument


def parse_id(value: str, name: str = "id") -> str:
    """Normalize an entity id, raising InvalidArgument if it is not a UUID."""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise InvalidArgument(f"Invalid {name}") from None


def require_text(
    value: str | None, name: str, min_length: int = 1, max_length: int | None = None
) -> str:
    """Strip ``value`` and check its length bounds."""
    text = (value or "").strip()
    if not text:
        raise InvalidArgument(f"{name} is required")
    if len(text) < min_length:
        raise InvalidArgument(f"{name} must be at least {min_length} characters")
    if max_length is not None and len(text) > max_length:
        raise InvalidArgument(f"{name} must be at most {max_length} characters")
    return text
