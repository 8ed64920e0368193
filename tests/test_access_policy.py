"""Tests for subdomain access rules."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from subdomain_registry.config import settings
from subdomain_registry.errors import Forbidden
from subdomain_registry.services.access_policy import (
    can_mutate,
    can_read,
    ensure_can_mutate,
    ensure_can_read,
    require_admin,
)

from conftest import create_record


class TestCanRead:
    async def test_owner_can_read(self, db: AsyncSession, owner):
        record = await create_record(db, owner_id=owner.id)
        assert can_read(owner, record) is True

    async def test_other_user_cannot_read(self, db: AsyncSession, owner, other_user):
        record = await create_record(db, owner_id=owner.id)
        assert can_read(other_user, record) is False
        with pytest.raises(Forbidden):
            ensure_can_read(other_user, record)

    async def test_admin_can_read_anything(self, db: AsyncSession, owner, admin):
        record = await create_record(db, owner_id=owner.id)
        assert can_read(admin, record) is True


class TestCanMutate:
    async def test_owner_can_mutate(self, db: AsyncSession, owner):
        record = await create_record(db, owner_id=owner.id)
        assert can_mutate(owner, record) is True

    async def test_other_user_cannot_mutate(self, db: AsyncSession, owner, other_user):
        record = await create_record(db, owner_id=owner.id)
        assert can_mutate(other_user, record) is False
        with pytest.raises(Forbidden):
            ensure_can_mutate(other_user, record)

    async def test_admin_can_mutate_anything(self, db: AsyncSession, owner, admin):
        record = await create_record(db, owner_id=owner.id)
        assert can_mutate(admin, record) is True

    async def test_owner_locked_out_when_owner_changes_disabled(
        self, db: AsyncSession, owner, admin, monkeypatch
    ):
        monkeypatch.setattr(settings, "OWNERS_CAN_MODIFY", False)
        record = await create_record(db, owner_id=owner.id)

        assert can_mutate(owner, record) is False
        assert can_mutate(admin, record) is True
        # Reading is unaffected
        assert can_read(owner, record) is True


class TestRequireAdmin:
    def test_admin_passes(self, admin):
        require_admin(admin)

    def test_non_admin_forbidden(self, owner):
        with pytest.raises(Forbidden) as exc_info:
            require_admin(owner)
        assert exc_info.value.status_code == 403
