"""PowerDNS HTTP API client for managing rrsets under the parent zone."""

import logging
from typing import Any

import httpx

from subdomain_registry.config import settings

logger = logging.getLogger(__name__)


class DnsWriteFailed(Exception):
    """A PowerDNS write did not complete (transport, auth, or non-2xx)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PowerDNSClient:
    """Async wrapper for the PowerDNS zone PATCH API.

    Every write uses REPLACE or DELETE changetypes, so repeating a call
    with the same input converges on the same zone state. The client
    never retries; callers decide what to do with a DnsWriteFailed.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        zone: str | None = None,
        ttl: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client from settings, allowing per-argument overrides."""
        self.api_url = (api_url or settings.DNS_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.DNS_API_KEY
        zone = zone or settings.PARENT_ZONE
        self.zone = zone if zone.endswith(".") else f"{zone}."
        self.ttl = ttl if ttl is not None else settings.RECORD_TTL
        self.timeout = timeout if timeout is not None else settings.DNS_API_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def zone_url(self) -> str:
        return f"{self.api_url}/api/v1/servers/localhost/zones/{self.zone}"

    def fqdn(self, label: str) -> str:
        """Fully-qualified rrset name for a label, with the trailing dot."""
        return f"{label}.{self.zone}"

    async def upsert_a(self, label: str, ipv4: str) -> None:
        """
        Create or replace the A rrset for a label.

        Args:
            label: Subdomain label (without parent zone)
            ipv4: Target IPv4 address

        Raises:
            DnsWriteFailed: If PowerDNS did not accept the change
        """
        await self._replace(label, "A", ipv4)

    async def upsert_cname(self, label: str, target: str) -> None:
        """
        Create or replace the CNAME rrset for a label.

        Args:
            label: Subdomain label (without parent zone)
            target: Target domain; a trailing dot is added if missing

        Raises:
            DnsWriteFailed: If PowerDNS did not accept the change
        """
        content = target if target.endswith(".") else f"{target}."
        await self._replace(label, "CNAME", content)

    async def delete_record_set(self, label: str, record_type: str) -> None:
        """
        Delete the rrset of the given type for a label.

        PowerDNS treats deleting a missing rrset as success.

        Raises:
            DnsWriteFailed: On transport/auth failure or non-2xx status
        """
        fqdn = self.fqdn(label)
        logger.info(f"Deleting {record_type} record: {fqdn}")
        rrset = {
            "name": fqdn,
            "type": record_type,
            "changetype": "DELETE",
        }
        await self._patch(rrset, action=f"DELETE {record_type}")

    async def _replace(self, label: str, record_type: str, content: str) -> None:
        fqdn = self.fqdn(label)
        logger.info(f"Creating {record_type} record ({self.api_url}): {fqdn} -> {content}")
        rrset = {
            "name": fqdn,
            "type": record_type,
            "ttl": self.ttl,
            "changetype": "REPLACE",
            "records": [{"content": content, "disabled": False}],
        }
        await self._patch(rrset, action=f"REPLACE {record_type}")

    async def _patch(self, rrset: dict[str, Any], action: str) -> None:
        """Send a single-rrset PATCH to the zone and map failures to DnsWriteFailed."""
        fqdn = rrset["name"]
        headers = {
            "X-API-Key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.patch(
                    self.zone_url,
                    json={"rrsets": [rrset]},
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.error(f"DNS {action} {fqdn} failed: timed out after {self.timeout}s")
            raise DnsWriteFailed(f"PowerDNS API timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"DNS {action} {fqdn} failed: {e}")
            raise DnsWriteFailed(f"PowerDNS API unreachable: {e}") from e

        if not response.is_success:
            body = response.text
            logger.error(f"DNS {action} {fqdn} failed: HTTP {response.status_code} {body}")
            raise DnsWriteFailed(
                f"PowerDNS API error ({response.status_code}): {body}",
                status_code=response.status_code,
                body=body,
            )

        logger.info(f"DNS {action} {fqdn} succeeded")


# Global PowerDNS client instance
dns_client = PowerDNSClient()
