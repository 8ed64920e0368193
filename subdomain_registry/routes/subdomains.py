"""Subdomain registry API routes."""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from subdomain_registry.database import get_session
from subdomain_registry.dependencies import enforce_create_rate_limit, get_current_actor
from subdomain_registry.schemas.identity import Actor
from subdomain_registry.schemas.subdomain import (
    AvailabilityResponse,
    CreateSubdomainRequest,
    ReconcileResponse,
    SetStatusRequest,
    SubdomainItem,
    SubdomainListResponse,
    UpdateTargetRequest,
)
from subdomain_registry.services import availability_service, registry_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/subdomains/check", response_model=AvailabilityResponse)
async def check_availability(
    name: str = Query(..., min_length=1, max_length=255, description="Label to check"),
    db: AsyncSession = Depends(get_session),
) -> AvailabilityResponse:
    """
    Check whether a subdomain label can be claimed.

    Public endpoint, no authentication required. Invalid labels are
    reported as unavailable with the reason.

    **Example:**
    ```
    GET /api/subdomains/check?name=alice
    ```
    """
    return await availability_service.check_availability(db, name)


@router.post(
    "/subdomains",
    response_model=SubdomainItem,
    status_code=status.HTTP_201_CREATED,
)
async def create_subdomain(
    request: CreateSubdomainRequest,
    actor: Actor = Depends(enforce_create_rate_limit),
    db: AsyncSession = Depends(get_session),
) -> SubdomainItem:
    """
    Claim a subdomain and create its DNS record.

    **Request Body:**
    ```json
    { "label": "alice", "record_type": "A", "target": "203.0.113.10" }
    ```

    **Auto-approval mode:** the claim is approved immediately and the DNS
    record is written. If PowerDNS is unavailable the claim still succeeds
    with `dns_created: false` and `dns_error` set; retry by re-submitting the
    target via `PATCH /subdomains/{id}`.

    **Moderated mode:** the claim is stored as `pending` until an admin
    approves it.

    **Error Codes:**
    - `INVALID_LABEL`: Label fails format or reservation rules
    - `INVALID_TARGET`: Target does not match the record type
    - `LABEL_TAKEN`: Another record holds the label (409)
    - `RATE_LIMIT_EXCEEDED`: Too many claims in the window (429)
    """
    record = await registry_service.create_subdomain(
        db,
        actor,
        label=request.label,
        record_type=request.record_type,
        target=request.target,
    )
    return SubdomainItem.model_validate(record)


@router.get("/subdomains", response_model=SubdomainListResponse)
async def list_subdomains(
    limit: int = Query(20, ge=1, le=100, description="Items per page (max 100)"),
    cursor: UUID | None = Query(None, description="Id of the last item of the previous page"),
    status_filter: Literal["pending", "approved", "rejected"] | None = Query(
        None, alias="status", description="Filter by claim status"
    ),
    owner_id: str | None = Query(None, description="Filter by owner (admin only)"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> SubdomainListResponse:
    """
    List subdomains, newest first.

    Admins see every record; other callers see only their own. Pass the
    returned `next_cursor` as `cursor` to fetch the next page.
    """
    records, next_cursor = await registry_service.list_subdomains(
        db,
        actor,
        status=status_filter,
        owner_id=owner_id,
        limit=limit,
        cursor=cursor,
    )

    return SubdomainListResponse(
        items=[SubdomainItem.model_validate(r) for r in records],
        has_more=next_cursor is not None,
        next_cursor=next_cursor,
    )


@router.post("/subdomains/reconcile", response_model=ReconcileResponse)
async def reconcile_dns(
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to retry"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> ReconcileResponse:
    """
    Retry DNS writes for approved subdomains whose DNS is out of sync.

    Admin only. Each record keeps its own outcome in `dns_created` /
    `dns_error`.
    """
    return await registry_service.reconcile_dns(db, actor, limit=limit)


@router.get("/subdomains/{subdomain_id}", response_model=SubdomainItem)
async def get_subdomain(
    subdomain_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> SubdomainItem:
    """Get a single subdomain (owner or admin)."""
    record = await registry_service.get_subdomain(db, actor, subdomain_id)
    return SubdomainItem.model_validate(record)


@router.patch("/subdomains/{subdomain_id}", response_model=SubdomainItem)
async def update_subdomain_target(
    subdomain_id: UUID,
    request: UpdateTargetRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> SubdomainItem:
    """
    Point a subdomain at a new target.

    The record type cannot change. The update succeeds even if the DNS
    write fails; check `dns_created` / `dns_error` in the response.
    """
    record = await registry_service.update_target(db, actor, subdomain_id, request.target)
    return SubdomainItem.model_validate(record)


@router.put("/subdomains/{subdomain_id}/status", response_model=SubdomainItem)
async def set_subdomain_status(
    subdomain_id: UUID,
    request: SetStatusRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> SubdomainItem:
    """
    Approve or reject a pending subdomain (admin only).

    Approval creates the DNS record; rejection does not touch DNS.

    **Error Codes:**
    - `FORBIDDEN`: Caller is not an admin
    - `INVALID_TRANSITION`: Subdomain is not pending
    """
    record = await registry_service.set_status(db, actor, subdomain_id, request.status)
    return SubdomainItem.model_validate(record)


@router.delete("/subdomains/{subdomain_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subdomain(
    subdomain_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """
    Delete a subdomain and free its label.

    The DNS record is removed best-effort; a PowerDNS failure does not
    block deletion.
    """
    await registry_service.delete_subdomain(db, actor, subdomain_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
