"""DNS record target validation utilities."""

import re
from typing import Any

from subdomain_registry.utils.label_validator import ValidationResult

IPV4_REGEX = re.compile(
    r"(25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9][0-9]|[0-9])"
    r"(\.(25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9][0-9]|[0-9])){3}"
)

HOST_LABEL_REGEX = re.compile(r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?")
# Alphabetic or punycode (IDN) top-level domain
TLD_REGEX = re.compile(r"[a-z]{2,63}|xn--[a-z0-9-]{1,59}")
SCHEME_REGEX = re.compile(r"^https?://", re.IGNORECASE)

MAX_FQDN_LENGTH = 253


def validate_ipv4(ip: Any) -> ValidationResult:
    """
    Validate a dotted-quad IPv4 literal (for A records).

    Args:
        ip: Candidate address

    Returns:
        ValidationResult with the trimmed address when valid
    """
    if not ip or not isinstance(ip, str):
        return ValidationResult(False, error="IP address is required")

    value = ip.strip()
    if not IPV4_REGEX.fullmatch(value):
        return ValidationResult(False, error="Invalid IPv4 address")

    return ValidationResult(True, value=value)


def validate_fqdn(target: Any) -> ValidationResult:
    """
    Validate a fully-qualified domain name (for CNAME records).

    An http(s):// prefix, a trailing slash and a trailing root dot are
    stripped before validation, so "https://app.example.org/" is accepted
    and normalized to "app.example.org".

    Args:
        target: Candidate domain name or URL

    Returns:
        ValidationResult with the bare lowercase hostname when valid
    """
    if not target or not isinstance(target, str):
        return ValidationResult(False, error="URL/domain is required")

    value = SCHEME_REGEX.sub("", target.strip())
    if value.endswith("/"):
        value = value[:-1]
    if value.endswith("."):
        value = value[:-1]
    value = value.lower()

    if not value or len(value) > MAX_FQDN_LENGTH:
        return ValidationResult(False, error="Invalid domain or URL")

    labels = value.split(".")
    if len(labels) < 2:
        return ValidationResult(False, error="Invalid domain or URL")

    if not all(HOST_LABEL_REGEX.fullmatch(label) for label in labels):
        return ValidationResult(False, error="Invalid domain or URL")

    if not TLD_REGEX.fullmatch(labels[-1]):
        return ValidationResult(False, error="Invalid domain or URL")

    return ValidationResult(True, value=value)


def validate_target(record_type: str, target: Any) -> ValidationResult:
    """
    Validate a target against the record type it will be written as.

    Args:
        record_type: "A" or "CNAME"
        target: Candidate target

    Returns:
        ValidationResult from the matching validator
    """
    if record_type == "A":
        return validate_ipv4(target)
    if record_type == "CNAME":
        return validate_fqdn(target)
    return ValidationResult(False, error="Invalid record type. Must be A or CNAME.")
