"""Invite gate tables.

Creates invite_codes, sessions, discord_requests, persistent_users
and reports.

Revision ID: 001_invite_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_invite_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Invite codes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS invite_codes (
            id SERIAL PRIMARY KEY,
            code VARCHAR(32) UNIQUE NOT NULL,
            is_used BOOLEAN NOT NULL DEFAULT false,
            used_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            discord_user_id VARCHAR(32),
            discord_username VARCHAR(64)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_invite_codes_code
        ON invite_codes(code)
    """)

    # --- Sessions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
            id SERIAL PRIMARY KEY,
            invite_code_id INTEGER REFERENCES invite_codes(id),
            access_time TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            user_agent TEXT,
            discord_user_id VARCHAR(32),
            discord_username VARCHAR(64)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_sessions_invite_code_id
        ON sessions(invite_code_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_sessions_discord_user_id
        ON sessions(discord_user_id)
    """)

    # --- Cooldown ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discord_requests (
            id SERIAL PRIMARY KEY,
            discord_user_id VARCHAR(32) UNIQUE NOT NULL,
            invite_code VARCHAR(32) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Persistent users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS persistent_users (
            id SERIAL PRIMARY KEY,
            discord_user_id VARCHAR(32) UNIQUE NOT NULL,
            discord_username VARCHAR(64) NOT NULL,
            first_access TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_access TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Reports ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reports (
            id SERIAL PRIMARY KEY,
            discord_user_id VARCHAR(32) NOT NULL,
            discord_username VARCHAR(64) NOT NULL,
            content TEXT NOT NULL,
            report_type VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'open',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_reports_created
        ON reports(created_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reports CASCADE")
    op.execute("DROP TABLE IF EXISTS persistent_users CASCADE")
    op.execute("DROP TABLE IF EXISTS discord_requests CASCADE")
    op.execute("DROP TABLE IF EXISTS sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS invite_codes CASCADE")
