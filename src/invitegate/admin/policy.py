"""Capability checks for privileged invite operations.

Admins are either listed in ``admin_discord_user_ids`` or, inside Discord,
hold the Administrator or Manage Server guild permission. Admins hold every
capability; everyone else holds none.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from invitegate.config import Settings


class Capability(enum.Enum):
    BYPASS_COOLDOWN = "bypass_cooldown"
    MANAGE_CODES = "manage_codes"
    VIEW_ADMIN = "view_admin"


ADMIN_CAPABILITIES = frozenset(Capability)


@dataclass(frozen=True)
class Principal:
    """The caller of an operation: a Discord identity plus any guild-level privilege."""

    discord_user_id: str | None
    guild_admin: bool = False


class AccessPolicy:
    def __init__(self, admin_discord_user_ids: Iterable[str] = ()) -> None:
        self.admin_discord_user_ids = frozenset(str(uid) for uid in admin_discord_user_ids)

    @classmethod
    def from_settings(cls, settings: Settings) -> AccessPolicy:
        return cls(settings.admin_discord_user_ids)

    def is_admin(self, principal: Principal) -> bool:
        if principal.guild_admin:
            return True
        return principal.discord_user_id is not None and principal.discord_user_id in self.admin_discord_user_ids

    def capabilities_for(self, principal: Principal) -> frozenset[Capability]:
        return ADMIN_CAPABILITIES if self.is_admin(principal) else frozenset()

    def allows(self, principal: Principal, capability: Capability) -> bool:
        """Check whether ``principal`` holds ``capability``."""
        return capability in self.capabilities_for(principal)
