"""Authorization rules for subdomain records."""

import logging

from subdomain_registry.config import settings
from subdomain_registry.errors import Forbidden
from subdomain_registry.models.subdomain import Subdomain
from subdomain_registry.schemas.identity import Actor
from subdomain_registry.utils.email_masking import mask_email

logger = logging.getLogger(__name__)


def can_read(actor: Actor, record: Subdomain) -> bool:
    """Admins read everything; users read their own records."""
    return actor.is_admin or actor.id == record.owner_id


def can_mutate(actor: Actor, record: Subdomain) -> bool:
    """Admins mutate everything; owners only when OWNERS_CAN_MODIFY is set."""
    if actor.is_admin:
        return True
    return settings.OWNERS_CAN_MODIFY and actor.id == record.owner_id


def require_admin(actor: Actor) -> None:
    """
    Ensure the actor carries the admin capability.

    Raises:
        Forbidden: If the actor is not an admin
    """
    if not actor.is_admin:
        logger.warning(f"Access denied: {_who(actor)} is not admin")
        raise Forbidden("Forbidden: Admin access required")


def ensure_can_read(actor: Actor, record: Subdomain) -> None:
    if not can_read(actor, record):
        logger.warning(f"Access denied: {_who(actor)} tried to access {record.label}")
        raise Forbidden("Access denied")


def ensure_can_mutate(actor: Actor, record: Subdomain) -> None:
    if not can_mutate(actor, record):
        logger.warning(f"Change denied: {_who(actor)} tried to modify {record.label}")
        raise Forbidden("Access denied")


def _who(actor: Actor) -> str:
    return mask_email(actor.email) if actor.email else f"user {actor.id}"
