from datetime import datetime, timezone
import json
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from monety.db.base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    display_id: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(80))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))

    balance: Mapped[float] = mapped_column(Float, default=0.0)
    total_earnings: Mapped[float] = mapped_column(Float, default=0.0)
    # Never reset by the ledger itself; a day-boundary job owns that.
    today_earnings: Mapped[float] = mapped_column(Float, default=0.0)

    invite_code: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    invited_by: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)

    checkin_days_json: Mapped[str] = mapped_column(Text, default="[]")
    last_checkin: Mapped[str | None] = mapped_column(String(10), nullable=True)
    roulette_spins: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    @property
    def checkin_days(self) -> list[int]:
        try:
            parsed = json.loads(self.checkin_days_json or "[]")
        except json.JSONDecodeError:
            return []
        if not isinstance(parsed, list):
            return []
        return [int(day) for day in parsed]

    @checkin_days.setter
    def checkin_days(self, days: list[int]) -> None:
        self.checkin_days_json = json.dumps([int(day) for day in days])


class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("owner_user_id", "referred_user_id", name="uq_referrals_owner_referred"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    owner_user_id: Mapped[str] = mapped_column(String(32), index=True)
    referred_user_id: Mapped[str] = mapped_column(String(32), index=True)
    display_id: Mapped[str] = mapped_column(String(16))
    name: Mapped[str] = mapped_column(String(80))
    email: Mapped[str] = mapped_column(String(255))
    level: Mapped[int] = mapped_column(Integer, default=1)
    earnings: Mapped[float] = mapped_column(Float, default=0.0)
    has_purchased: Mapped[bool] = mapped_column(Boolean, default=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)


class Investment(Base):
    __tablename__ = "investments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    product_id: Mapped[int] = mapped_column(Integer)
    product_name: Mapped[str] = mapped_column(String(80))
    amount: Mapped[float] = mapped_column(Float)
    daily_return: Mapped[float] = mapped_column(Float)
    total_days: Mapped[int] = mapped_column(Integer)
    remaining_days: Mapped[int] = mapped_column(Integer)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    last_claim_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    amount: Mapped[float] = mapped_column(Float)
    fee: Mapped[float] = mapped_column(Float)
    net_amount: Mapped[float] = mapped_column(Float)
    pix_key: Mapped[str] = mapped_column(String(140))
    pix_type: Mapped[str] = mapped_column(String(10))
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)


class Deposit(Base):
    __tablename__ = "deposits"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    amount: Mapped[float] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    pix_code: Mapped[str] = mapped_column(Text)
    gateway_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
