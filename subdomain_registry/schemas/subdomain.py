"""Subdomain-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateSubdomainRequest(BaseModel):
    """Request schema for claiming a subdomain."""

    label: str = Field(..., max_length=255, description="Subdomain label (e.g., alice)")
    record_type: Literal["A", "CNAME"] = Field(default="A", description="DNS record type")
    target: str = Field(
        ...,
        max_length=512,
        description="IPv4 address (A) or domain name (CNAME)",
    )

    @field_validator("record_type", mode="before")
    @classmethod
    def upper_record_type(cls, v: object) -> object:
        """Accept record types in any case."""
        return v.strip().upper() if isinstance(v, str) else v


class UpdateTargetRequest(BaseModel):
    """Request schema for pointing a subdomain at a new target."""

    target: str = Field(..., max_length=512, description="New IPv4 address or domain name")


class SetStatusRequest(BaseModel):
    """Request schema for moderating a pending subdomain."""

    status: Literal["approved", "rejected"] = Field(..., description="New claim status")


class SubdomainItem(BaseModel):
    """Subdomain record as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    label: str
    owner_id: str
    owner_email: str | None
    record_type: str
    target: str
    status: str
    dns_created: bool = Field(
        ...,
        description="False means the claim is stored but DNS is out of sync",
    )
    dns_error: str | None
    created_at: datetime
    approved_at: datetime | None
    updated_at: datetime | None


class SubdomainListResponse(BaseModel):
    """Response for the subdomain list endpoint (cursor paginated)."""

    items: list[SubdomainItem]
    has_more: bool
    next_cursor: UUID | None


class AvailabilityResponse(BaseModel):
    """Response for label availability checks."""

    label: str
    available: bool
    reason: str | None = None


class ReconcileResponse(BaseModel):
    """Summary of a DNS reconciliation sweep."""

    attempted: int
    succeeded: int
    failed: int
    failed_labels: list[str]
