from datetime import datetime

from loguru import logger
from sqlalchemy.orm import Session

from monety.core.clock import ledger_date_key, resolve_now
from monety.db.models import User
from monety.services.accrual_service import accrue_returns, credit_earnings
from monety.services.record_store import locked_user
from monety.services.results import OperationResult

CHECKIN_REWARDS: tuple[float, ...] = (1.0, 2.0, 3.0, 4.0, 5.0, 7.0, 10.0)
CHECKIN_CYCLE_DAYS = len(CHECKIN_REWARDS)


def reward_for_day(day: int) -> float:
    if 1 <= day <= CHECKIN_CYCLE_DAYS:
        return CHECKIN_REWARDS[day - 1]
    return 0.0


def current_checkin_day(user: User) -> int:
    return len(user.checkin_days) + 1


def get_checkin_status(user: User, now: datetime | None = None) -> dict:
    today = ledger_date_key(resolve_now(now))
    current_day = current_checkin_day(user)
    return {
        "current_day": current_day,
        "can_checkin": user.last_checkin != today and current_day <= CHECKIN_CYCLE_DAYS,
        "checked_in_today": user.last_checkin == today,
        "checkin_days": user.checkin_days,
        "last_checkin": user.last_checkin,
        "rewards": list(CHECKIN_REWARDS),
    }


def apply_checkin(user: User, day: int, now: datetime) -> OperationResult:
    today = ledger_date_key(now)
    if user.last_checkin == today:
        return OperationResult.fail("already_checked_in", "Already checked in today")
    days = user.checkin_days
    if day in days:
        return OperationResult.fail("day_already_claimed", f"Day {day} already claimed in this cycle")

    if not 1 <= day <= CHECKIN_CYCLE_DAYS:
        # Days outside the cycle pay nothing and leave the record as it was.
        return OperationResult.ok(0.0)

    reward = reward_for_day(day)
    credit_earnings(user, reward)
    user.checkin_days = [*days, day]
    user.last_checkin = today
    return OperationResult.ok(reward)


def _run_checkin(db: Session, user_id: str, day: int | None, now: datetime) -> OperationResult:
    with locked_user(db, user_id) as user:
        if user is None:
            return OperationResult.fail("user_not_found", "User not found")
        accrue_returns(db, user, now)
        if day is None:
            day = current_checkin_day(user)
            if day > CHECKIN_CYCLE_DAYS:
                return OperationResult.fail("cycle_complete", "Check-in cycle already completed")

        result = apply_checkin(user, day, now)
        if not result.success:
            logger.info("Check-in rejected", extra={"user_id": user.id, "code": result.error_code})
            return result
        db.add(user)
        logger.info("Check-in credited", extra={"user_id": user.id, "day": day, "reward": result.data})
    return result


def checkin(db: Session, user_id: str, day: int, now: datetime | None = None) -> OperationResult:
    return _run_checkin(db, user_id, day, resolve_now(now))


def perform_daily_checkin(db: Session, user_id: str, now: datetime | None = None) -> OperationResult:
    """Check in on the next day of the cycle.

    The cycle does not restart by itself: once all seven days are claimed,
    further check-ins are refused.
    """
    return _run_checkin(db, user_id, None, resolve_now(now))
