"""Error taxonomy for the invite lifecycle.

User-facing errors subclass ``ValueError`` (via ``AccessError``) and carry a
message that is safe to show to the requester. Internal errors subclass
``RuntimeError``; they are logged and replaced by a generic message.
"""

from __future__ import annotations


class AccessError(ValueError):
    """Base class for errors whose message is returned to the user."""

    default_message = "Access denied"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InviteValidationError(AccessError):
    default_message = "Invalid input"


class InviteNotFoundError(AccessError):
    default_message = "Invalid invite code. Please check and try again."


class InviteAlreadyUsedError(AccessError):
    default_message = "This invite code has already been used."


class CooldownActiveError(AccessError):
    default_message = "You can only request access once per hour. Please wait before requesting again."


class NoPriorAccessError(AccessError):
    default_message = "No previous access found for this Discord account. Request an invite code first."


class ExhaustedAttemptsError(RuntimeError):
    """Could not find a free code within the attempt budget."""


class DuplicateCodeError(RuntimeError):
    """Insert hit the unique constraint on invite_codes.code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Invite code already exists: {code}")


class BulkGenerationError(RuntimeError):
    """Bulk generation stopped early. ``codes`` holds the ones already committed."""

    def __init__(self, codes: list[str], requested: int) -> None:
        self.codes = codes
        self.requested = requested
        super().__init__(f"Generated {len(codes)} of {requested} invite codes before failing")
