"""SQLAlchemy ORM models for the SQLite game store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    MetaData,
    String,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class IsoDateTime(TypeDecorator):
    """Timezone-aware datetimes stored as ISO 8601 text.

    SQLite has no native timestamp type and SQLAlchemy's default drops the offset.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[str]:
        return value.isoformat() if value is not None else None

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[datetime]:
        return datetime.fromisoformat(value) if value is not None else None


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


class GameRow(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)
    theme: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(IsoDateTime, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(IsoDateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(IsoDateTime, nullable=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class PlayerRow(Base):
    """A joined player; ``role_data`` holds the full role card as dealt."""

    __tablename__ = "players"
    __table_args__ = (Index("ix_players_game_id", "game_id"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    game_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    role_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    is_alive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    joined_at: Mapped[datetime] = mapped_column(IsoDateTime, nullable=False)


class VoteRow(Base):
    """The single live vote of ``player_id`` in a game."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("game_id", "player_id"),
        Index("ix_votes_game_id", "game_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    game_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    player_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(IsoDateTime, nullable=False)
