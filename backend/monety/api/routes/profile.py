from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monety.api.deps import get_current_user
from monety.db.models import User
from monety.db.session import get_db
from monety.schemas.ledger import LedgerRecordRead, UserRead
from monety.services.accrual_service import load_user
from monety.services.deposit_service import list_user_deposits
from monety.services.investment_service import list_user_investments
from monety.services.referral_service import list_referrals
from monety.services.withdrawal_service import list_user_withdrawals

router = APIRouter()


@router.get("/me", response_model=LedgerRecordRead)
def get_my_record(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> LedgerRecordRead:
    user = load_user(db, current_user.id)
    payload = UserRead.model_validate(user).model_dump()
    payload.update(
        referrals=list_referrals(db, user.id),
        investments=list_user_investments(db, user.id),
        withdrawals=list_user_withdrawals(db, user.id),
        deposits=list_user_deposits(db, user.id),
    )
    return LedgerRecordRead.model_validate(payload)
