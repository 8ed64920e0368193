"""Registry error taxonomy.

Every error a caller can receive from a registry operation derives from
RegistryError and carries a machine-readable code plus the HTTP status used
by the API layer. DNS write failures are deliberately absent here: they are
recorded on the record (dns_created/dns_error) and never propagated.
"""

from typing import Any

from fastapi import status


class RegistryError(Exception):
    """Base exception for registry operations."""

    code = "REGISTRY_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidLabel(RegistryError):
    code = "INVALID_LABEL"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTarget(RegistryError):
    code = "INVALID_TARGET"
    status_code = status.HTTP_400_BAD_REQUEST


class LabelTaken(RegistryError):
    code = "LABEL_TAKEN"
    status_code = status.HTTP_409_CONFLICT


class NotFound(RegistryError):
    code = "SUBDOMAIN_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(RegistryError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(RegistryError):
    code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT


class UpstreamUnavailable(RegistryError):
    """The persisted store could not be reached."""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
