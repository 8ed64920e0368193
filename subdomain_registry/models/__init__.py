"""SQLAlchemy models."""

from subdomain_registry.models.subdomain import RecordType, Subdomain, SubdomainStatus

__all__ = [
    "Subdomain",
    "RecordType",
    "SubdomainStatus",
]
