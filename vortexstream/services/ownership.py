"""The single ownership rule applied by every owner-only mutation."""

from vortexstream.errors import Unauthorized


def is_owner(entity, actor_id: str | None) -> bool:
    """True if ``actor_id`` owns ``entity`` (anything with an ``owner_id``)."""
    return entity is not None and actor_id is not None and entity.owner_id == actor_id


def ensure_owner(entity, actor_id: str | None, action: str = "modify") -> None:
    """Raise Unauthorized unless ``actor_id`` owns ``entity``."""
    if not is_owner(entity, actor_id):
        kind = type(entity).__name__.lower()
        raise Unauthorized(f"You are not allowed to {action} this {kind}")
