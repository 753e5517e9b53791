from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, Index, Numeric, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, String, Text


class Base(DeclarativeBase):
    pass


class BookingStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class TimeOfDay(StrEnum):
    MORNING = "morning"
    EVENING = "evening"


# SQLite only autoincrements INTEGER PRIMARY KEY.
_ID = BigInteger().with_variant(Integer, "sqlite")


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("name", name="uq_roles_name"),)

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # page key -> "read" | "write" | "edit" | "delete" | "all"
    permissions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    accessible_pages: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    users: Mapped[list["User"]] = relationship(back_populates="role")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[Optional[int]] = mapped_column(ForeignKey("roles.id"), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    role: Mapped[Optional["Role"]] = relationship(back_populates="users")


class Venue(Base):
    __tablename__ = "venues"
    __table_args__ = (CheckConstraint("capacity >= 0", name="chk_venues_capacity"),)

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    full_day_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    half_day_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    deposit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="venue")
    unavailable_dates: Mapped[list["VenueUnavailableDate"]] = relationship(back_populates="venue")


class VenueUnavailableDate(Base):
    __tablename__ = "venue_unavailable_dates"
    __table_args__ = (UniqueConstraint("venue_id", "date", name="uq_venue_unavailable_date"),)

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    venue: Mapped["Venue"] = relationship(back_populates="unavailable_dates")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="chk_bookings_time"),
        CheckConstraint(
            "(is_full_day AND time_of_day IS NULL) OR (NOT is_full_day AND time_of_day IS NOT NULL)",
            name="chk_bookings_time_of_day",
        ),
        CheckConstraint("guest_count >= 1", name="chk_bookings_guest_count"),
        Index("idx_bookings_venue_start", "venue_id", "start_date"),
    )

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    venue_id: Mapped[Optional[int]] = mapped_column(ForeignKey("venues.id"), nullable=True)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # venue-local, naive
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    is_full_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    time_of_day: Mapped[Optional[TimeOfDay]] = mapped_column(_str_enum(TimeOfDay), nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        _str_enum(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    deposit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    venue: Mapped[Optional["Venue"]] = relationship(back_populates="bookings")
