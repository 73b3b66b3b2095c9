import secrets
from datetime import datetime

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now
from monety.core.config import get_settings
from monety.db.models import Referral, User

INVITE_CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DISPLAY_ID_DIGITS = 7
MAX_CODE_GENERATION_ATTEMPTS = 40
REFERRAL_LEVELS = (1, 2, 3)
# Shown to users only; no operation computes multi-level commission.
COMMISSION_RATES_PERCENT: dict[int, float] = {1: 20.0, 2: 5.0, 3: 1.0}


def normalize_invite_code(code: str | None) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def get_user_by_invite_code(db: Session, invite_code: str | None) -> User | None:
    normalized = normalize_invite_code(invite_code)
    if not normalized:
        return None
    return db.scalar(select(User).where(User.invite_code == normalized))


def generate_unique_invite_code(db: Session) -> str:
    length = max(6, min(16, int(get_settings().invite_code_length)))
    for _ in range(MAX_CODE_GENERATION_ATTEMPTS):
        candidate = "".join(secrets.choice(INVITE_CODE_CHARS) for _ in range(length))
        exists = db.scalar(select(User.id).where(User.invite_code == candidate))
        if not exists:
            return candidate
    raise ValueError("Unable to generate unique invite code")


def generate_unique_display_id(db: Session) -> str:
    for _ in range(MAX_CODE_GENERATION_ATTEMPTS):
        candidate = "ID" + "".join(secrets.choice("0123456789") for _ in range(DISPLAY_ID_DIGITS))
        exists = db.scalar(select(User.id).where(User.display_id == candidate))
        if not exists:
            return candidate
    raise ValueError("Unable to generate unique display id")


def link_referral(db: Session, inviter: User, invitee: User, now: datetime | None = None) -> Referral:
    if inviter.id == invitee.id:
        raise ValueError("Invalid referral: cannot invite yourself")

    existing = db.scalar(
        select(Referral).where(
            Referral.owner_user_id == inviter.id,
            Referral.referred_user_id == invitee.id,
        )
    )
    if existing:
        return existing

    invitee.invited_by = inviter.id
    referral = Referral(
        owner_user_id=inviter.id,
        referred_user_id=invitee.id,
        display_id=invitee.display_id,
        name=invitee.name,
        email=invitee.email,
        level=1,
        earnings=0.0,
        has_purchased=False,
        joined_at=resolve_now(now),
    )
    db.add(invitee)
    db.add(referral)
    db.flush()
    logger.info("Referral linked", extra={"inviter_id": inviter.id, "referred_user_id": invitee.id})
    return referral


def list_referrals(db: Session, owner_user_id: str) -> list[Referral]:
    return db.scalars(
        select(Referral).where(Referral.owner_user_id == owner_user_id).order_by(Referral.joined_at.asc())
    ).all()


def build_invite_link(invite_code: str) -> str:
    base_url = str(get_settings().invite_base_url or "").strip().rstrip("/")
    return f"{base_url}?code={invite_code}"


def get_team_overview(db: Session, user: User) -> dict:
    referrals = list_referrals(db, user.id)
    by_level = {level: [entry for entry in referrals if entry.level == level] for level in REFERRAL_LEVELS}
    total_earnings = db.scalar(
        select(func.coalesce(func.sum(Referral.earnings), 0.0)).where(Referral.owner_user_id == user.id)
    )
    return {
        "invite_code": user.invite_code,
        "invite_link": build_invite_link(user.invite_code),
        "total_referrals": len(referrals),
        "total_earnings": round(float(total_earnings or 0.0), 2),
        "purchased_referrals": sum(1 for entry in referrals if entry.has_purchased),
        "levels": [
            {
                "level": level,
                "commission_percent": COMMISSION_RATES_PERCENT[level],
                "count": len(by_level[level]),
                "referrals": by_level[level],
            }
            for level in REFERRAL_LEVELS
        ],
    }
