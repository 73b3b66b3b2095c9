from datetime import datetime
import random

from loguru import logger
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now
from monety.services.accrual_service import accrue_returns, credit_earnings
from monety.services.record_store import locked_user
from monety.services.results import OperationResult

# (prize, weight) in wheel-face order; zero-weight segments are display only.
PRIZE_TABLE: tuple[tuple[float, int], ...] = (
    (1.0, 35),
    (5.0, 30),
    (10.0, 20),
    (15.0, 10),
    (20.0, 5),
    (35.0, 0),
    (50.0, 0),
    (100.0, 0),
)

_default_rng = random.Random()


def wheel_segments() -> list[dict]:
    return [{"value": prize, "weight": weight} for prize, weight in PRIZE_TABLE]


def draw_prize(rng: random.Random | None = None) -> float:
    entries = [(prize, weight) for prize, weight in PRIZE_TABLE if weight > 0]
    total_weight = sum(weight for _, weight in entries)
    roll = (rng or _default_rng).random() * total_weight
    for prize, weight in entries:
        roll -= weight
        if roll < 0:
            return prize
    return entries[-1][0]


def spin_wheel(
    db: Session,
    user_id: str,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> OperationResult:
    moment = resolve_now(now)
    with locked_user(db, user_id) as user:
        if user is None:
            return OperationResult.fail("user_not_found", "User not found")
        accrue_returns(db, user, moment)
        if int(user.roulette_spins or 0) <= 0:
            logger.info("Spin rejected", extra={"user_id": user.id, "code": "no_spins"})
            return OperationResult.fail("no_spins", "No spins available")

        prize = draw_prize(rng)
        user.roulette_spins = int(user.roulette_spins) - 1
        credit_earnings(user, prize)
        db.add(user)
        logger.info("Wheel spun", extra={"user_id": user.id, "prize": prize})
    return OperationResult.ok(prize)
