"""Tests for the PowerDNS API client."""

import json

import httpx
import pytest

from subdomain_registry.services.dns_client import DnsWriteFailed, PowerDNSClient

ZONE_URL = "http://pdns.test:8081/api/v1/servers/localhost/zones/example.com."


class FakePowerDNS:
    """Minimal in-memory PowerDNS zone applying REPLACE/DELETE rrset changes."""

    def __init__(self, status_code: int = 204, body: str = ""):
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []
        self.rrsets: dict[tuple[str, str], dict] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 300:
            return httpx.Response(self.status_code, text=self.body)

        for rrset in json.loads(request.content)["rrsets"]:
            key = (rrset["name"], rrset["type"])
            if rrset["changetype"] == "REPLACE":
                self.rrsets[key] = {"ttl": rrset["ttl"], "records": rrset["records"]}
            elif rrset["changetype"] == "DELETE":
                self.rrsets.pop(key, None)
        return httpx.Response(self.status_code)


def _client(server) -> PowerDNSClient:
    return PowerDNSClient(
        api_url="http://pdns.test:8081/",
        api_key="secret-key",
        zone="example.com",
        ttl=3600,
        timeout=5.0,
        transport=httpx.MockTransport(server),
    )


class TestFqdn:
    def test_zone_gets_trailing_dot(self):
        client = PowerDNSClient(zone="example.com", api_key="k")
        assert client.zone == "example.com."
        assert client.fqdn("alice") == "alice.example.com."

    def test_zone_url(self):
        client = _client(FakePowerDNS())
        assert client.zone_url == ZONE_URL


class TestUpsertA:
    async def test_sends_replace_rrset(self):
        server = FakePowerDNS()
        await _client(server).upsert_a("alice", "10.0.0.5")

        assert len(server.requests) == 1
        request = server.requests[0]
        assert request.method == "PATCH"
        assert str(request.url) == ZONE_URL
        assert request.headers["X-API-Key"] == "secret-key"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {
            "rrsets": [{
                "name": "alice.example.com.",
                "type": "A",
                "ttl": 3600,
                "changetype": "REPLACE",
                "records": [{"content": "10.0.0.5", "disabled": False}],
            }]
        }

    async def test_repeated_upsert_is_idempotent(self):
        once = FakePowerDNS()
        await _client(once).upsert_a("alice", "10.0.0.5")

        twice = FakePowerDNS()
        client = _client(twice)
        await client.upsert_a("alice", "10.0.0.5")
        await client.upsert_a("alice", "10.0.0.5")

        assert once.rrsets == twice.rrsets
        assert twice.requests[0].content == twice.requests[1].content

    async def test_new_address_overwrites(self):
        server = FakePowerDNS()
        client = _client(server)
        await client.upsert_a("alice", "10.0.0.5")
        await client.upsert_a("alice", "10.0.0.9")

        records = server.rrsets[("alice.example.com.", "A")]["records"]
        assert records == [{"content": "10.0.0.9", "disabled": False}]


class TestUpsertCname:
    async def test_appends_trailing_dot(self):
        server = FakePowerDNS()
        await _client(server).upsert_cname("blog", "target.example.net")

        rrset = json.loads(server.requests[0].content)["rrsets"][0]
        assert rrset["type"] == "CNAME"
        assert rrset["changetype"] == "REPLACE"
        assert rrset["records"] == [{"content": "target.example.net.", "disabled": False}]

    async def test_keeps_existing_trailing_dot(self):
        server = FakePowerDNS()
        await _client(server).upsert_cname("blog", "target.example.net.")

        rrset = json.loads(server.requests[0].content)["rrsets"][0]
        assert rrset["records"][0]["content"] == "target.example.net."


class TestDeleteRecordSet:
    async def test_sends_delete_without_records_or_ttl(self):
        server = FakePowerDNS()
        client = _client(server)
        await client.upsert_a("alice", "10.0.0.5")
        await client.delete_record_set("alice", "A")

        body = json.loads(server.requests[1].content)
        assert body == {
            "rrsets": [{"name": "alice.example.com.", "type": "A", "changetype": "DELETE"}]
        }
        assert server.rrsets == {}

    async def test_deleting_missing_rrset_succeeds(self):
        server = FakePowerDNS()
        await _client(server).delete_record_set("ghost", "CNAME")
        assert len(server.requests) == 1


class TestFailures:
    async def test_non_2xx_raises_with_body(self):
        server = FakePowerDNS(status_code=422, body='{"error": "RRset invalid"}')

        with pytest.raises(DnsWriteFailed) as exc_info:
            await _client(server).upsert_a("alice", "10.0.0.5")

        assert exc_info.value.status_code == 422
        assert exc_info.value.body == '{"error": "RRset invalid"}'
        assert "422" in str(exc_info.value)

    async def test_auth_rejection_raises(self):
        server = FakePowerDNS(status_code=401, body="Unauthorized")

        with pytest.raises(DnsWriteFailed) as exc_info:
            await _client(server).delete_record_set("alice", "A")

        assert exc_info.value.status_code == 401

    async def test_connect_error_raises(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(DnsWriteFailed) as exc_info:
            await _client(refuse).upsert_a("alice", "10.0.0.5")

        assert exc_info.value.status_code is None
        assert "unreachable" in str(exc_info.value)

    async def test_timeout_raises(self):
        def hang(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(DnsWriteFailed) as exc_info:
            await _client(hang).upsert_cname("blog", "target.example.net")

        assert "timed out" in str(exc_info.value)

    async def test_no_retry_on_failure(self):
        server = FakePowerDNS(status_code=500, body="boom")

        with pytest.raises(DnsWriteFailed):
            await _client(server).upsert_a("alice", "10.0.0.5")

        assert len(server.requests) == 1
