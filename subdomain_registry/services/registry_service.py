"""Subdomain registry: claims, moderation, and DNS synchronization.

The persisted record is the source of truth for who owns a label. DNS is a
best-effort projection of it: a failed PowerDNS write never fails a registry
mutation, it is recorded on the record (dns_created=False, dns_error) so the
owner or an admin can retry by re-submitting the target or running a
reconciliation sweep.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from subdomain_registry.config import settings
from subdomain_registry.errors import (
    InvalidLabel,
    InvalidTarget,
    InvalidTransition,
    LabelTaken,
    NotFound,
    UpstreamUnavailable,
)
from subdomain_registry.models.subdomain import RecordType, Subdomain, SubdomainStatus
from subdomain_registry.schemas.identity import Actor
from subdomain_registry.schemas.subdomain import ReconcileResponse
from subdomain_registry.services.access_policy import (
    ensure_can_mutate,
    ensure_can_read,
    require_admin,
)
from subdomain_registry.services.dns_client import DnsWriteFailed, dns_client
from subdomain_registry.utils.email_masking import mask_email
from subdomain_registry.utils.label_validator import validate_label
from subdomain_registry.utils.target_validator import validate_target

logger = logging.getLogger(__name__)

# Errors meaning the database itself is unreachable
STORE_ERRORS = (OperationalError, InterfaceError)

DEFAULT_PAGE_SIZE = 20


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _execute(db: AsyncSession, statement: Any) -> Any:
    try:
        return await db.execute(statement)
    except STORE_ERRORS as e:
        logger.error(f"Subdomain store unavailable: {e}")
        raise UpstreamUnavailable("Subdomain store is unavailable") from e


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except STORE_ERRORS as e:
        logger.error(f"Subdomain store unavailable: {e}")
        raise UpstreamUnavailable("Subdomain store is unavailable") from e


async def _load(db: AsyncSession, subdomain_id: UUID) -> Subdomain:
    result = await _execute(db, select(Subdomain).where(Subdomain.id == subdomain_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFound("Subdomain not found", details={"id": str(subdomain_id)})
    return record


async def _sync_dns(record: Subdomain) -> bool:
    """
    Push the record's current target to PowerDNS and flag the outcome.

    Args:
        record: Record whose label/type/target should be written

    Returns:
        True if PowerDNS accepted the write
    """
    try:
        if record.record_type == RecordType.A.value:
            await dns_client.upsert_a(record.label, record.target)
        else:
            await dns_client.upsert_cname(record.label, record.target)
    except DnsWriteFailed as e:
        record.dns_created = False
        record.dns_error = str(e)
        logger.error(f"DNS write failed for {record.label} (record kept, retry available): {e}")
        return False

    record.dns_created = True
    record.dns_error = None
    logger.info(f"DNS record in sync for {record.label} -> {record.target}")
    return True


async def find_active_by_label(db: AsyncSession, label: str) -> Subdomain | None:
    """
    Look up the record currently holding a label.

    Args:
        db: Database session
        label: Normalized label

    Returns:
        Subdomain if the label is claimed, None otherwise
    """
    result = await _execute(db, select(Subdomain).where(Subdomain.label == label))
    return result.scalar_one_or_none()


async def create_subdomain(
    db: AsyncSession,
    actor: Actor,
    label: str,
    record_type: str,
    target: str,
) -> Subdomain:
    """
    Claim a label for the actor.

    In auto-approval mode the record is approved immediately and the DNS
    record is written; a DNS failure is recorded on the record rather than
    failing the claim. In moderated mode the record waits as pending and DNS
    is written on approval.

    The row is flushed before DNS is touched. The unique index on label is
    the authority on uniqueness, so a concurrent create that loses the race
    fails with LabelTaken without having written DNS.

    Args:
        db: Database session
        actor: Verified caller, becomes the owner
        label: Requested label
        record_type: "A" or "CNAME"
        target: IPv4 address or domain name

    Returns:
        Created subdomain record

    Raises:
        InvalidLabel: If the label fails validation
        InvalidTarget: If the target does not match the record type
        LabelTaken: If another record holds the label
    """
    label_check = validate_label(label)
    if not label_check.valid:
        raise InvalidLabel(label_check.error or "Invalid subdomain name", details={"label": label})

    target_check = validate_target(record_type, target)
    if not target_check.valid:
        raise InvalidTarget(
            target_check.error or "Invalid target",
            details={"record_type": record_type, "target": target},
        )

    name = label_check.value
    logger.info(f"Subdomain request from {mask_email(actor.email)}: {name}")

    if await find_active_by_label(db, name) is not None:
        logger.info(f"Subdomain {name} already taken")
        raise LabelTaken("This subdomain is already taken", details={"label": name})

    moderated = settings.MODERATION_MODE
    now = _now()
    record = Subdomain(
        id=uuid4(),
        label=name,
        owner_id=actor.id,
        owner_email=actor.email,
        record_type=record_type,
        target=target_check.value,
        status=(SubdomainStatus.PENDING if moderated else SubdomainStatus.APPROVED).value,
        dns_created=False,
        dns_error=None,
        created_at=now,
        approved_at=None if moderated else now,
    )

    db.add(record)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a concurrent claim for the same label
        logger.warning(f"Race condition claiming subdomain {name}")
        raise LabelTaken("This subdomain is already taken", details={"label": name}) from e
    except STORE_ERRORS as e:
        logger.error(f"Subdomain store unavailable: {e}")
        raise UpstreamUnavailable("Subdomain store is unavailable") from e

    if not moderated:
        await _sync_dns(record)
        await _flush(db)

    await db.refresh(record)

    logger.info(
        f"Subdomain created ({record.status}): {name} by {mask_email(actor.email)}, "
        f"dns_created={record.dns_created}"
    )
    return record


async def get_subdomain(db: AsyncSession, actor: Actor, subdomain_id: UUID) -> Subdomain:
    """
    Get a single record the actor may read.

    Raises:
        NotFound: If no record has this id
        Forbidden: If the actor is neither owner nor admin
    """
    record = await _load(db, subdomain_id)
    ensure_can_read(actor, record)
    return record


async def list_subdomains(
    db: AsyncSession,
    actor: Actor,
    status: str | None = None,
    owner_id: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: UUID | None = None,
) -> tuple[list[Subdomain], UUID | None]:
    """
    List records newest first, one page at a time.

    Non-admin actors only ever see their own records; the owner_id filter
    is honoured for admins only. An unknown cursor starts from the top.

    Args:
        db: Database session
        actor: Verified caller
        status: Optional status filter
        owner_id: Optional owner filter (admin only)
        limit: Page size
        cursor: Id of the last record of the previous page

    Returns:
        Tuple of (records, cursor for the next page or None)
    """
    query = select(Subdomain)

    if not actor.is_admin:
        query = query.where(Subdomain.owner_id == actor.id)
    elif owner_id:
        query = query.where(Subdomain.owner_id == owner_id)

    if status:
        query = query.where(Subdomain.status == status)

    if cursor is not None:
        anchor_result = await _execute(
            db,
            select(Subdomain.created_at, Subdomain.id).where(Subdomain.id == cursor),
        )
        anchor = anchor_result.first()
        if anchor is not None:
            query = query.where(
                or_(
                    Subdomain.created_at < anchor.created_at,
                    and_(
                        Subdomain.created_at == anchor.created_at,
                        Subdomain.id < anchor.id,
                    ),
                )
            )

    query = query.order_by(Subdomain.created_at.desc(), Subdomain.id.desc()).limit(limit + 1)

    result = await _execute(db, query)
    records = list(result.scalars().all())

    has_more = len(records) > limit
    records = records[:limit]
    next_cursor = records[-1].id if has_more and records else None

    return records, next_cursor


async def update_target(
    db: AsyncSession,
    actor: Actor,
    subdomain_id: UUID,
    new_target: str,
) -> Subdomain:
    """
    Point a record at a new target and rewrite its DNS record.

    The record type is immutable, so the target is validated against it.
    DNS is written only for approved records; the outcome is recorded on
    the record and never fails the update. Submitting the current target
    again is how a failed DNS write is retried.

    Raises:
        NotFound: If no record has this id
        Forbidden: If the actor may not modify the record
        InvalidTarget: If the target does not match the record type
    """
    record = await _load(db, subdomain_id)
    ensure_can_mutate(actor, record)

    target_check = validate_target(record.record_type, new_target)
    if not target_check.valid:
        raise InvalidTarget(
            target_check.error or "Invalid target",
            details={"record_type": record.record_type, "target": new_target},
        )

    logger.info(f"Updating {record.label}: {record.target} -> {target_check.value}")

    record.target = target_check.value
    record.updated_at = _now()

    if record.status == SubdomainStatus.APPROVED.value:
        await _sync_dns(record)

    await _flush(db)

    logger.info(f"Subdomain updated: {record.label} by {mask_email(actor.email)}")
    return record


async def set_status(
    db: AsyncSession,
    actor: Actor,
    subdomain_id: UUID,
    new_status: str,
) -> Subdomain:
    """
    Approve or reject a pending record (moderated mode).

    Approval writes the DNS record with the same succeed-and-flag policy as
    create; rejection touches nothing in DNS. Approved and rejected are
    terminal.

    Raises:
        Forbidden: If the actor is not an admin
        NotFound: If no record has this id
        InvalidTransition: Unless moving pending -> approved|rejected
    """
    require_admin(actor)
    record = await _load(db, subdomain_id)

    if new_status not in (SubdomainStatus.APPROVED.value, SubdomainStatus.REJECTED.value):
        raise InvalidTransition(
            f"Cannot move a subdomain to {new_status}",
            details={"from": record.status, "to": new_status},
        )

    if record.status != SubdomainStatus.PENDING.value:
        raise InvalidTransition(
            f"Subdomain is already {record.status}",
            details={"from": record.status, "to": new_status},
        )

    now = _now()
    record.status = new_status
    record.updated_at = now

    if new_status == SubdomainStatus.APPROVED.value:
        record.approved_at = now
        await _sync_dns(record)

    await _flush(db)

    logger.info(f"Subdomain {record.label} {new_status} by {mask_email(actor.email)}")
    return record


async def delete_subdomain(db: AsyncSession, actor: Actor, subdomain_id: UUID) -> None:
    """
    Delete a record, freeing its label.

    If DNS was written, the rrset is removed best-effort: a PowerDNS
    failure is logged and the record is deleted regardless.

    Raises:
        NotFound: If no record has this id
        Forbidden: If the actor may not modify the record
    """
    record = await _load(db, subdomain_id)
    ensure_can_mutate(actor, record)

    logger.info(f"Deleting subdomain: {record.label} by {mask_email(actor.email)}")

    if record.dns_created:
        try:
            await dns_client.delete_record_set(record.label, record.record_type)
        except DnsWriteFailed as e:
            logger.error(f"DNS delete failed for {record.label} (non-blocking): {e}")

    await db.delete(record)
    await _flush(db)

    logger.info(f"Subdomain deleted: {record.label}")


async def reconcile_dns(
    db: AsyncSession,
    actor: Actor,
    limit: int = 100,
) -> ReconcileResponse:
    """
    Retry DNS writes for approved records whose last write failed.

    Operator-triggered; nothing schedules this automatically. Records are
    processed oldest first and each keeps its own outcome.

    Args:
        db: Database session
        actor: Verified caller (must be admin)
        limit: Maximum records to retry in one sweep

    Returns:
        Summary of the sweep
    """
    require_admin(actor)

    result = await _execute(
        db,
        select(Subdomain)
        .where(
            Subdomain.status == SubdomainStatus.APPROVED.value,
            Subdomain.dns_created.is_(False),
        )
        .order_by(Subdomain.created_at.asc())
        .limit(limit),
    )
    records = list(result.scalars().all())

    failed_labels = []
    for record in records:
        if not await _sync_dns(record):
            failed_labels.append(record.label)

    await _flush(db)

    succeeded = len(records) - len(failed_labels)
    logger.info(
        f"DNS reconciliation: {len(records)} attempted, {succeeded} succeeded, "
        f"{len(failed_labels)} failed"
    )
    return ReconcileResponse(
        attempted=len(records),
        succeeded=succeeded,
        failed=len(failed_labels),
        failed_labels=failed_labels,
    )
