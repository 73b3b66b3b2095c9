from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from monety.core.clock import resolve_now
from monety.db.models import Investment, Referral, User
from monety.services import record_lock_service as locks
from monety.services.accrual_service import accrue_returns
from monety.services.record_store import lock_user_row, locked_user
from monety.services.results import OperationResult


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float
    daily_return: float
    duration: int
    tier: str


PRODUCT_CATALOG: tuple[Product, ...] = (
    Product(1, "Minerador Bronze", 30.0, 6.0, 60, "bronze"),
    Product(2, "Minerador Prata", 50.0, 10.0, 60, "silver"),
    Product(3, "Minerador Ouro", 100.0, 20.0, 60, "gold"),
    Product(4, "Minerador Platina", 250.0, 50.0, 60, "platinum"),
    Product(5, "Minerador Diamante", 500.0, 100.0, 60, "diamond"),
    Product(6, "Minerador Esmeralda", 1000.0, 200.0, 60, "emerald"),
    Product(7, "Minerador Elite", 2500.0, 500.0, 60, "elite"),
)


def list_products() -> list[Product]:
    return list(PRODUCT_CATALOG)


def get_product(product_id: int) -> Product | None:
    for product in PRODUCT_CATALOG:
        if product.id == product_id:
            return product
    return None


def list_user_investments(db: Session, user_id: str) -> list[Investment]:
    return db.scalars(
        select(Investment).where(Investment.user_id == user_id).order_by(Investment.start_date.desc())
    ).all()


def _grant_first_purchase_spin(db: Session, buyer: User) -> bool:
    # Runs inside the buyer's transaction; lock order is always invitee then inviter.
    inviter_id = buyer.invited_by
    if not inviter_id or inviter_id == buyer.id:
        return False

    with locks.record_lock_service.hold(inviter_id):
        inviter = lock_user_row(db, inviter_id)
        if inviter is None:
            return False
        referral = db.scalar(
            select(Referral).where(
                Referral.owner_user_id == inviter.id,
                Referral.referred_user_id == buyer.id,
                Referral.level == 1,
            )
        )
        if referral is None or referral.has_purchased:
            return False

        referral.has_purchased = True
        inviter.roulette_spins = int(inviter.roulette_spins or 0) + 1
        db.add(referral)
        db.add(inviter)
        db.flush()

    logger.info(
        "Referral first purchase granted a spin",
        extra={"inviter_id": inviter_id, "referred_user_id": buyer.id},
    )
    return True


def purchase_product(
    db: Session,
    user_id: str,
    product: Product,
    now: datetime | None = None,
) -> OperationResult:
    moment = resolve_now(now)
    with locked_user(db, user_id) as user:
        if user is None:
            return OperationResult.fail("user_not_found", "User not found")
        accrue_returns(db, user, moment)

        price = round(float(product.price), 2)
        if float(user.balance) < price:
            logger.info("Purchase rejected", extra={"user_id": user.id, "code": "insufficient_balance"})
            return OperationResult.fail("insufficient_balance", "Insufficient balance for this product")

        user.balance = round(float(user.balance) - price, 2)
        investment = Investment(
            user_id=user.id,
            product_id=product.id,
            product_name=product.name,
            amount=price,
            daily_return=round(float(product.daily_return), 2),
            total_days=int(product.duration),
            remaining_days=int(product.duration),
            start_date=moment,
            last_claim_date=moment,
            status="active",
        )
        db.add(user)
        db.add(investment)
        db.flush()

        _grant_first_purchase_spin(db, user)
        logger.info(
            "Product purchased",
            extra={"user_id": user.id, "product_id": product.id, "amount": price},
        )
    return OperationResult.ok(investment)
