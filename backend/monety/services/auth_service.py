from datetime import datetime

from loguru import logger
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now
from monety.core.security import hash_password, verify_password
from monety.db.models import User
from monety.services import record_lock_service as locks
from monety.services.accrual_service import load_user
from monety.services.record_store import get_user_by_email, lock_user_row
from monety.services.referral_service import (
    generate_unique_display_id,
    generate_unique_invite_code,
    get_user_by_invite_code,
    link_referral,
    normalize_invite_code,
)
from monety.services.results import OperationResult


def register_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    invite_code: str | None = None,
    now: datetime | None = None,
) -> OperationResult:
    moment = resolve_now(now)
    clean_name = (name or "").strip()
    normalized_email = (email or "").strip().lower()
    if not clean_name:
        return OperationResult.fail("missing_field", "Name is required")
    if not normalized_email:
        return OperationResult.fail("missing_field", "Email is required")
    if get_user_by_email(db, normalized_email):
        return OperationResult.fail("email_in_use", "Email already in use")

    user = User(
        display_id=generate_unique_display_id(db),
        name=clean_name,
        email=normalized_email,
        hashed_password=hash_password(password),
        balance=0.0,
        total_earnings=0.0,
        today_earnings=0.0,
        invite_code=generate_unique_invite_code(db),
        invited_by=None,
        checkin_days_json="[]",
        last_checkin=None,
        roulette_spins=0,
        created_at=moment,
    )
    db.add(user)
    db.flush()

    normalized_code = normalize_invite_code(invite_code)
    inviter = get_user_by_invite_code(db, normalized_code) if normalized_code else None
    if inviter is not None:
        with locks.record_lock_service.hold(inviter.id):
            lock_user_row(db, inviter.id)
            link_referral(db, inviter, user, moment)
            db.commit()
    else:
        if normalized_code:
            logger.info("Unknown invite code ignored at registration", extra={"invite_code": normalized_code})
        db.commit()

    logger.info("User registered", extra={"user_id": user.id, "invited_by": user.invited_by})
    return OperationResult.ok(load_user(db, user.id, moment))


def authenticate_user(
    db: Session,
    email: str,
    password: str,
    now: datetime | None = None,
) -> OperationResult:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        return OperationResult.fail("invalid_credentials", "Invalid credentials")
    return OperationResult.ok(load_user(db, user.id, now))
