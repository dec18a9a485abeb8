"""ORM models for seasons, run tokens, runs, and the season ledger.

Seasons and identities are owned by external processes; everything else is
written only by the run services.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from dod.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer, "sqlite")


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------


class Season(Base):
    """Maps to the 'seasons' table."""

    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """Maps to the 'profiles' table. One row per identity-provider user."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(24), unique=True, nullable=False)
    theme: Mapped[str] = mapped_column(String(16), nullable=False, default="dark", server_default="dark")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Run tokens
# ---------------------------------------------------------------------------


class RunToken(Base):
    """Maps to the 'run_tokens' table. Single-use, short-lived."""

    __tablename__ = "run_tokens"
    __table_args__ = (
        Index("idx_run_tokens_user", "user_id"),
    )

    token_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    season_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seasons.id"), nullable=False)
    server_nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false", nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class Run(Base):
    """Maps to the 'runs' table. Immutable once written."""

    __tablename__ = "runs"
    __table_args__ = (
        Index("idx_runs_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    season_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seasons.id"), nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    doubles: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    digest: Mapped[str] = mapped_column(Text, nullable=False)
    is_valid: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Season ledger: best score per user, and the crown
# ---------------------------------------------------------------------------


class LeaderboardEntry(Base):
    """Maps to the 'leaderboard' table. One row per (season, user)."""

    __tablename__ = "leaderboard"
    __table_args__ = (
        Index("idx_leaderboard_ranking", "season_id", "best_score", "updated_at"),
    )

    season_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seasons.id"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    best_score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    best_run_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("runs.id"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Crown(Base):
    """Maps to the 'crown' table. At most one row per season."""

    __tablename__ = "crown"

    season_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seasons.id"), primary_key=True, autoincrement=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    run_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("runs.id"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
