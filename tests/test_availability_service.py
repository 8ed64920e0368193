"""Tests for label availability checks."""

from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import AsyncSession

from subdomain_registry.services.availability_service import check_availability
from subdomain_registry.services.registry_service import create_subdomain, delete_subdomain

from conftest import create_record


class TestCheckAvailability:
    async def test_unclaimed_label_available(self, db: AsyncSession):
        result = await check_availability(db, "Fresh-Name")

        assert result.available is True
        assert result.label == "fresh-name"
        assert result.reason is None

    async def test_claimed_label_unavailable(self, db: AsyncSession):
        await create_record(db, label="taken-label")

        result = await check_availability(db, "taken-label")

        assert result.available is False
        assert "already taken" in result.reason

    async def test_rejected_record_still_holds_label(self, db: AsyncSession):
        await create_record(db, label="held-label", status="rejected", dns_created=False)

        result = await check_availability(db, "held-label")

        assert result.available is False

    async def test_invalid_label_skips_lookup(self):
        db = AsyncMock(spec=AsyncSession)

        result = await check_availability(db, "ab")

        assert result.available is False
        assert "between 3 and 63" in result.reason
        db.execute.assert_not_awaited()

    async def test_reserved_label(self, db: AsyncSession):
        result = await check_availability(db, "admin")

        assert result.available is False
        assert "reserved" in result.reason

    async def test_available_again_after_delete(self, db: AsyncSession, owner, mock_dns_client):
        record = await create_subdomain(db, owner, "taken-label", "A", "10.0.0.5")
        assert (await check_availability(db, "taken-label")).available is False

        await delete_subdomain(db, owner, record.id)

        assert (await check_availability(db, "taken-label")).available is True
