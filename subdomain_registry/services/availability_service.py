"""Public label availability checks."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from subdomain_registry.schemas.subdomain import AvailabilityResponse
from subdomain_registry.services.registry_service import find_active_by_label
from subdomain_registry.utils.label_validator import validate_label

logger = logging.getLogger(__name__)


async def check_availability(db: AsyncSession, label: Any) -> AvailabilityResponse:
    """
    Check whether a label can currently be claimed.

    Invalid labels are reported as unavailable with the validation reason,
    without touching the database.

    Args:
        db: Database session
        label: Candidate label

    Returns:
        AvailabilityResponse with availability status
    """
    check = validate_label(label)
    if not check.valid:
        shown = label.strip().lower() if isinstance(label, str) else ""
        return AvailabilityResponse(label=shown, available=False, reason=check.error)

    existing = await find_active_by_label(db, check.value)
    if existing is not None:
        logger.debug(f"Label {check.value} is taken")
        return AvailabilityResponse(
            label=check.value,
            available=False,
            reason="This subdomain is already taken",
        )

    return AvailabilityResponse(label=check.value, available=True)
