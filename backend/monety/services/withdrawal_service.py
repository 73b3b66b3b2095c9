from datetime import datetime
import math

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now, to_ledger_time
from monety.core.config import get_settings
from monety.db.models import Withdrawal
from monety.services.accrual_service import accrue_returns
from monety.services.payment_gateway import PaymentGatewayError, gateway_enabled, request_pix_payout
from monety.services.record_store import locked_user
from monety.services.results import OperationResult

PIX_TYPES = {"cpf", "email", "phone"}
WITHDRAWAL_STATUSES = {"pending", "processing", "completed", "rejected"}
WITHDRAWAL_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "completed", "rejected"},
    "processing": {"completed", "rejected"},
    "completed": set(),
    "rejected": set(),
}


def withdrawal_window_status(now: datetime | None = None) -> dict:
    settings = get_settings()
    start_hour = int(settings.withdrawal_window_start_hour)
    end_hour = int(settings.withdrawal_window_end_hour)
    hour = to_ledger_time(resolve_now(now)).hour
    return {
        "open": start_hour <= hour < end_hour,
        "start_hour": start_hour,
        "end_hour": end_hour,
        "message": f"Withdrawals are allowed only from {start_hour:02d}:00 to {end_hour:02d}:00",
    }


def quote_withdrawal(amount: float) -> dict:
    gross = round(float(amount), 2)
    fee = round(gross * float(get_settings().withdrawal_fee_rate), 2)
    return {"amount": gross, "fee": fee, "net_amount": round(gross - fee, 2)}


def list_user_withdrawals(db: Session, user_id: str) -> list[Withdrawal]:
    return db.scalars(
        select(Withdrawal).where(Withdrawal.user_id == user_id).order_by(Withdrawal.created_at.desc())
    ).all()


def _validate_request(amount: float, pix_key: str, pix_type: str, now: datetime) -> OperationResult | None:
    settings = get_settings()
    window = withdrawal_window_status(now)
    if not window["open"]:
        return OperationResult.fail("outside_window", window["message"])
    if not math.isfinite(amount) or amount <= 0:
        return OperationResult.fail("invalid_amount", "Withdrawal amount must be a positive number")
    minimum = float(settings.withdrawal_min_amount)
    if amount < minimum:
        return OperationResult.fail("below_minimum", f"Minimum withdrawal is {minimum:.2f}")
    if not pix_key:
        return OperationResult.fail("missing_field", "PIX key is required")
    if pix_type not in PIX_TYPES:
        return OperationResult.fail("invalid_pix_type", "PIX key type must be cpf, email or phone")
    return None


def request_withdrawal(
    db: Session,
    user_id: str,
    amount: float,
    pix_key: str,
    pix_type: str,
    now: datetime | None = None,
) -> OperationResult:
    moment = resolve_now(now)
    gross = round(float(amount), 2)
    normalized_key = (pix_key or "").strip()
    normalized_type = (pix_type or "").strip().lower()

    rejection = _validate_request(gross, normalized_key, normalized_type, moment)
    if rejection is not None:
        logger.info("Withdrawal rejected", extra={"user_id": user_id, "code": rejection.error_code})
        return rejection

    with locked_user(db, user_id) as user:
        if user is None:
            return OperationResult.fail("user_not_found", "User not found")
        accrue_returns(db, user, moment)
        if gross > float(user.balance):
            logger.info("Withdrawal rejected", extra={"user_id": user.id, "code": "insufficient_balance"})
            return OperationResult.fail(
                "insufficient_balance",
                f"Insufficient balance. Current balance: {float(user.balance):.2f}",
            )

        try:
            request_pix_payout(user.id, gross, normalized_key, normalized_type)
        except PaymentGatewayError as exc:
            logger.warning("Withdrawal gateway call failed", extra={"user_id": user.id, "error": str(exc)})
            return OperationResult.fail("gateway_error", str(exc))

        quote = quote_withdrawal(gross)
        # The fee comes out of the gross amount; the balance loses exactly ``gross``.
        user.balance = round(float(user.balance) - gross, 2)
        withdrawal = Withdrawal(
            user_id=user.id,
            amount=gross,
            fee=quote["fee"],
            net_amount=quote["net_amount"],
            pix_key=normalized_key,
            pix_type=normalized_type,
            status="processing" if gateway_enabled() else "pending",
            created_at=moment,
            updated_at=moment,
        )
        db.add(user)
        db.add(withdrawal)
        db.flush()
        logger.info(
            "Withdrawal requested",
            extra={"user_id": user.id, "amount": gross, "fee": quote["fee"], "status": withdrawal.status},
        )
    return OperationResult.ok(withdrawal)


def update_withdrawal_status(
    db: Session,
    withdrawal_id: str,
    status: str,
    now: datetime | None = None,
) -> OperationResult:
    """Advance a withdrawal on behalf of the payout operator.

    Rejection does not give the amount back to the user.
    """
    normalized = (status or "").strip().lower()
    if normalized not in WITHDRAWAL_STATUSES:
        return OperationResult.fail("invalid_status_transition", f"Unknown withdrawal status: {status}")

    withdrawal = db.scalar(select(Withdrawal).where(Withdrawal.id == withdrawal_id).with_for_update())
    if withdrawal is None:
        db.rollback()
        return OperationResult.fail("withdrawal_not_found", "Withdrawal not found")
    if normalized == withdrawal.status:
        db.commit()
        return OperationResult.ok(withdrawal)
    if normalized not in WITHDRAWAL_TRANSITIONS.get(withdrawal.status, set()):
        db.commit()
        return OperationResult.fail(
            "invalid_status_transition",
            f"Cannot move withdrawal from {withdrawal.status} to {normalized}",
        )

    previous = withdrawal.status
    withdrawal.status = normalized
    withdrawal.updated_at = resolve_now(now)
    db.add(withdrawal)
    db.commit()
    logger.info(
        "Withdrawal status updated",
        extra={"withdrawal_id": withdrawal.id, "from": previous, "to": normalized},
    )
    return OperationResult.ok(withdrawal)
