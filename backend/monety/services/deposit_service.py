from datetime import datetime
import math

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now
from monety.core.config import get_settings
from monety.db.models import Deposit
from monety.services.accrual_service import accrue_returns
from monety.services.payment_gateway import PaymentGatewayError, request_pix_charge
from monety.services.record_store import get_user, locked_user
from monety.services.results import OperationResult


def list_user_deposits(db: Session, user_id: str) -> list[Deposit]:
    return db.scalars(
        select(Deposit).where(Deposit.user_id == user_id).order_by(Deposit.created_at.desc())
    ).all()


def get_deposit(db: Session, deposit_id: str) -> Deposit | None:
    return db.scalar(select(Deposit).where(Deposit.id == deposit_id))


def create_deposit(
    db: Session,
    user_id: str,
    amount: float,
    now: datetime | None = None,
) -> OperationResult:
    moment = resolve_now(now)
    requested = round(float(amount), 2)
    if not math.isfinite(requested) or requested <= 0:
        logger.info("Deposit rejected", extra={"user_id": user_id, "code": "invalid_amount"})
        return OperationResult.fail("invalid_amount", "Deposit amount must be a positive number")
    minimum = float(get_settings().deposit_min_amount)
    if requested < minimum:
        logger.info("Deposit rejected", extra={"user_id": user_id, "code": "below_minimum"})
        return OperationResult.fail("below_minimum", f"Minimum deposit is {minimum:.2f}")

    user = get_user(db, user_id)
    if user is None:
        return OperationResult.fail("user_not_found", "User not found")

    # Nothing is written locally until the gateway has issued the charge.
    try:
        charge = request_pix_charge(user.id, user.email, requested)
    except PaymentGatewayError as exc:
        logger.warning("Deposit gateway call failed", extra={"user_id": user.id, "error": str(exc)})
        return OperationResult.fail("gateway_error", str(exc))

    with locked_user(db, user_id) as locked:
        if locked is None:
            return OperationResult.fail("user_not_found", "User not found")
        accrue_returns(db, locked, moment)
        deposit = Deposit(
            user_id=locked.id,
            amount=requested,
            status="pending",
            pix_code=charge.pix_code,
            gateway_id=charge.gateway_id,
            created_at=moment,
            confirmed_at=None,
        )
        db.add(deposit)
        db.flush()
        logger.info("Deposit created", extra={"user_id": locked.id, "deposit_id": deposit.id, "amount": requested})
    return OperationResult.ok(deposit)


def confirm_deposit(db: Session, deposit_id: str, now: datetime | None = None) -> OperationResult:
    """Apply a verified payment event to a pending deposit.

    Unknown or already confirmed deposits are a successful no-op with no data,
    so the payment provider may deliver the same event more than once.
    """
    moment = resolve_now(now)
    deposit = get_deposit(db, deposit_id)
    if deposit is None:
        logger.info("Deposit confirmation ignored", extra={"deposit_id": deposit_id, "reason": "not_found"})
        return OperationResult.ok(None)

    with locked_user(db, deposit.user_id) as user:
        locked_deposit = db.scalar(
            select(Deposit)
            .where(Deposit.id == deposit_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if user is None or locked_deposit is None or locked_deposit.status == "confirmed":
            logger.info("Deposit confirmation ignored", extra={"deposit_id": deposit_id, "reason": "processed"})
            return OperationResult.ok(None)

        accrue_returns(db, user, moment)
        locked_deposit.status = "confirmed"
        locked_deposit.confirmed_at = moment
        user.balance = round(float(user.balance) + float(locked_deposit.amount), 2)
        user.roulette_spins = int(user.roulette_spins or 0) + 1
        db.add(locked_deposit)
        db.add(user)
        logger.info(
            "Deposit confirmed",
            extra={"user_id": user.id, "deposit_id": deposit_id, "amount": float(locked_deposit.amount)},
        )
    return OperationResult.ok(locked_deposit)
