# plura/entities.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class System(Base, TimestampMixin):
    __tablename__ = "systems"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Slack user id of the account that owns the system
    owner_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    # no FK: the member may be deleted while fronting, readers treat a dangling id as "nobody"
    active_member_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    members: Mapped[List["Member"]] = relationship(
        back_populates="system",
        cascade="all, delete-orphan",
        order_by="Member.id",
    )


class Member(Base, TimestampMixin):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    system_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("systems.id", ondelete="CASCADE"),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    pronouns: Mapped[Optional[str]] = mapped_column(Text)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[Optional[str]] = mapped_column(String(7))

    system: Mapped[System] = relationship(back_populates="members")
    triggers: Mapped[List["Trigger"]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="Trigger.id",
    )
    aliases: Mapped[List["Alias"]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="Alias.id",
    )

    __table_args__ = (
        Index("ix_members_system_id", "system_id"),
    )

    @property
    def shown_name(self) -> str:
        return self.display_name or self.full_name


class Trigger(Base, TimestampMixin):
    __tablename__ = "triggers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    prefix: Mapped[Optional[str]] = mapped_column(Text)
    suffix: Mapped[Optional[str]] = mapped_column(Text)

    member: Mapped[Member] = relationship(back_populates="triggers")

    __table_args__ = (
        Index("ix_triggers_member_id", "member_id"),
    )


class Alias(Base, TimestampMixin):
    __tablename__ = "aliases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    alias: Mapped[str] = mapped_column(Text, nullable=False)

    member: Mapped[Member] = relationship(back_populates="aliases")

    __table_args__ = (
        Index("ix_aliases_member_id", "member_id"),
    )
