"""Integration tests: per-requester cooldown backed by the discord_requests ledger."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.admin.policy import AccessPolicy, Principal
from invitegate.db.models import DiscordRequest
from invitegate.errors import CooldownActiveError
from invitegate.invites.cooldown import CooldownGate

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def gate(clock: FakeClock) -> CooldownGate:
    return CooldownGate(window=timedelta(hours=1), clock=clock, policy=AccessPolicy(["42"]))


class TestCooldownGate:

    @pytest.mark.asyncio
    async def test_first_request_is_allowed(self, db_session: AsyncSession, gate: CooldownGate):
        assert await gate.is_active(db_session, "123") is False
        await gate.check(db_session, Principal(discord_user_id="123"))

    @pytest.mark.asyncio
    async def test_blocks_inside_window(self, db_session: AsyncSession, gate: CooldownGate, clock: FakeClock):
        await gate.record(db_session, "123", "AAAA-AAAA-AAAA")
        clock.advance(minutes=59)

        with pytest.raises(CooldownActiveError) as exc_info:
            await gate.check(db_session, Principal(discord_user_id="123"))
        assert exc_info.value.message == gate.message

    @pytest.mark.asyncio
    async def test_allows_after_window(self, db_session: AsyncSession, gate: CooldownGate, clock: FakeClock):
        await gate.record(db_session, "123", "AAAA-AAAA-AAAA")
        clock.advance(hours=1, seconds=1)

        assert await gate.is_active(db_session, "123") is False
        await gate.check(db_session, Principal(discord_user_id="123"))

    @pytest.mark.asyncio
    async def test_other_users_are_independent(self, db_session: AsyncSession, gate: CooldownGate):
        await gate.record(db_session, "123", "AAAA-AAAA-AAAA")
        await gate.check(db_session, Principal(discord_user_id="456"))

    @pytest.mark.asyncio
    async def test_admin_bypasses(self, db_session: AsyncSession, gate: CooldownGate):
        await gate.record(db_session, "42", "AAAA-AAAA-AAAA")
        await gate.check(db_session, Principal(discord_user_id="42"))

    @pytest.mark.asyncio
    async def test_guild_admin_bypasses(self, db_session: AsyncSession, gate: CooldownGate):
        await gate.record(db_session, "123", "AAAA-AAAA-AAAA")
        await gate.check(db_session, Principal(discord_user_id="123", guild_admin=True))

    @pytest.mark.asyncio
    async def test_anonymous_principal_is_not_gated(self, db_session: AsyncSession, gate: CooldownGate):
        await gate.check(db_session, Principal(discord_user_id=None))

    @pytest.mark.asyncio
    async def test_record_overwrites_ledger_row(self, db_session: AsyncSession, gate: CooldownGate, clock: FakeClock):
        await gate.record(db_session, "123", "AAAA-AAAA-AAAA")
        clock.advance(hours=2)
        entry = await gate.record(db_session, "123", "BBBB-BBBB-BBBB")

        count = await db_session.execute(select(func.count()).select_from(DiscordRequest))
        assert count.scalar_one() == 1
        assert entry.invite_code == "BBBB-BBBB-BBBB"
        assert await gate.is_active(db_session, "123") is True
