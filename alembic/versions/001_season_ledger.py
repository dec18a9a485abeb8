"""Season ledger: seasons, profiles, run tokens, runs, leaderboard, crown.

Revision ID: 001_season_ledger
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_season_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Seasons (written by the season scheduler, read-only to the API) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS seasons (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            starts_at TIMESTAMPTZ NOT NULL,
            ends_at TIMESTAMPTZ NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT false
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_seasons_active
        ON seasons(is_active, starts_at DESC)
    """)

    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            user_id VARCHAR(64) PRIMARY KEY,
            username VARCHAR(24) NOT NULL UNIQUE,
            theme VARCHAR(16) NOT NULL DEFAULT 'dark',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_profiles_username_lower
        ON profiles(lower(username))
    """)

    # --- Run tokens ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS run_tokens (
            token_id VARCHAR(64) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            season_id BIGINT NOT NULL REFERENCES seasons(id),
            server_nonce VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            used BOOLEAN NOT NULL DEFAULT false,
            consumed_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_run_tokens_user
        ON run_tokens(user_id)
    """)

    # --- Runs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS runs (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            season_id BIGINT NOT NULL REFERENCES seasons(id),
            score BIGINT NOT NULL CHECK (score > 0),
            doubles INTEGER NOT NULL CHECK (doubles >= 0),
            duration_ms INTEGER NOT NULL CHECK (duration_ms >= 0),
            digest TEXT NOT NULL,
            is_valid BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_runs_user_created
        ON runs(user_id, created_at)
    """)

    # --- Leaderboard: best score per (season, user) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard (
            season_id BIGINT NOT NULL REFERENCES seasons(id),
            user_id VARCHAR(64) NOT NULL,
            best_score BIGINT NOT NULL,
            best_run_id BIGINT NOT NULL REFERENCES runs(id),
            updated_at TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (season_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_leaderboard_ranking
        ON leaderboard(season_id, best_score DESC, updated_at ASC)
    """)

    # --- Crown: one holder per season ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS crown (
            season_id BIGINT PRIMARY KEY REFERENCES seasons(id),
            user_id VARCHAR(64) NOT NULL,
            score BIGINT NOT NULL,
            run_id BIGINT NOT NULL REFERENCES runs(id),
            updated_at TIMESTAMPTZ NOT NULL
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS crown")
    op.execute("DROP TABLE IF EXISTS leaderboard")
    op.execute("DROP TABLE IF EXISTS runs")
    op.execute("DROP TABLE IF EXISTS run_tokens")
    op.execute("DROP TABLE IF EXISTS profiles")
    op.execute("DROP TABLE IF EXISTS seasons")
