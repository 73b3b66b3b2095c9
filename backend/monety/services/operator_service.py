from sqlalchemy import func, select
from sqlalchemy.orm import Session

from monety.db.models import Deposit, User, Withdrawal


def get_operator_summary(db: Session) -> dict:
    total_users = db.scalar(select(func.count(User.id))) or 0
    total_balance = db.scalar(select(func.coalesce(func.sum(User.balance), 0.0))) or 0.0
    pending_withdrawals = (
        db.scalar(select(func.count(Withdrawal.id)).where(Withdrawal.status == "pending")) or 0
    )
    pending_deposits = db.scalar(select(func.count(Deposit.id)).where(Deposit.status == "pending")) or 0
    return {
        "total_users": int(total_users),
        "total_balance": round(float(total_balance), 2),
        "pending_withdrawals": int(pending_withdrawals),
        "pending_deposits": int(pending_deposits),
    }
