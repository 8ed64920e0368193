"""Subdomain label validation utilities."""

import re
from collections.abc import Iterable
from typing import Any, NamedTuple

from subdomain_registry.config import settings

LABEL_REGEX = re.compile(r"^[a-z0-9-]+$")

MIN_LABEL_LENGTH = 3
MAX_LABEL_LENGTH = 63


class ValidationResult(NamedTuple):
    """Outcome of a validation: the normalized value, or the reason it failed."""

    valid: bool
    value: str | None = None
    error: str | None = None


def validate_label(
    label: Any,
    reserved: Iterable[str] | None = None,
) -> ValidationResult:
    """
    Validate and normalize a subdomain label.

    Never raises: malformed input (including non-strings) produces an
    invalid result with a human-readable reason.

    Args:
        label: Candidate label as supplied by the caller
        reserved: Labels that cannot be claimed (defaults to RESERVED_LABELS)

    Returns:
        ValidationResult with the trimmed, lowercased label when valid
    """
    if not label or not isinstance(label, str):
        return ValidationResult(False, error="Subdomain name is required")

    value = label.strip().lower()

    if len(value) < MIN_LABEL_LENGTH or len(value) > MAX_LABEL_LENGTH:
        return ValidationResult(
            False,
            error=f"Subdomain must be between {MIN_LABEL_LENGTH} and {MAX_LABEL_LENGTH} characters",
        )

    if not LABEL_REGEX.match(value):
        return ValidationResult(
            False,
            error="Subdomain can only contain lowercase letters, numbers, and hyphens",
        )

    if value.startswith("-") or value.endswith("-"):
        return ValidationResult(False, error="Subdomain cannot start or end with a hyphen")

    reserved_set = settings.reserved_labels_set if reserved is None else {r.lower() for r in reserved}
    if value in reserved_set:
        return ValidationResult(False, error="This subdomain name is reserved")

    return ValidationResult(True, value=value)
