from datetime import datetime
import math

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from monety.core.clock import elapsed_hours, resolve_now
from monety.db.models import Investment, User
from monety.services.record_store import locked_user

HOURS_PER_DAY = 24


def credit_earnings(user: User, amount: float) -> None:
    """Add ``amount`` to balance, lifetime and today's earnings in one step."""
    user.balance = round(float(user.balance or 0.0) + amount, 2)
    user.total_earnings = round(float(user.total_earnings or 0.0) + amount, 2)
    user.today_earnings = round(float(user.today_earnings or 0.0) + amount, 2)


def list_active_investments(db: Session, user_id: str) -> list[Investment]:
    return db.scalars(
        select(Investment)
        .where(Investment.user_id == user_id, Investment.status == "active")
        .order_by(Investment.start_date.asc())
    ).all()


def claim_investment(investment: Investment, now: datetime) -> float:
    """Mature whole days on one investment and return the amount they yield."""
    if investment.status != "active":
        return 0.0
    hours = elapsed_hours(investment.last_claim_date, now)
    if hours < HOURS_PER_DAY:
        return 0.0

    days_passed = math.floor(hours / HOURS_PER_DAY)
    claimable_days = min(days_passed, max(0, int(investment.remaining_days)))
    if claimable_days <= 0:
        return 0.0

    investment.remaining_days = int(investment.remaining_days) - claimable_days
    investment.last_claim_date = now
    if investment.remaining_days <= 0:
        investment.remaining_days = 0
        investment.status = "completed"
    return round(claimable_days * float(investment.daily_return), 2)


def accrue_returns(db: Session, user: User, now: datetime | None = None) -> float:
    """Credit every matured daily return of ``user``.

    Leaves the record untouched when nothing has matured, so calling it again
    inside the same 24-hour window is a no-op.
    """
    moment = resolve_now(now)
    accrued = 0.0
    for investment in list_active_investments(db, user.id):
        accrued += claim_investment(investment, moment)

    accrued = round(accrued, 2)
    if accrued <= 0:
        return 0.0

    credit_earnings(user, accrued)
    logger.info("Investment returns accrued", extra={"user_id": user.id, "amount": accrued})
    return accrued


def load_user(db: Session, user_id: str, now: datetime | None = None) -> User | None:
    """Read accessor for the current record, with returns brought up to date."""
    with locked_user(db, user_id) as user:
        if user is None:
            return None
        accrue_returns(db, user, now)
    return user
