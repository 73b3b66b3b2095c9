from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from monety.api.deps import get_current_user, raise_for_failure
from monety.db.models import User
from monety.db.session import get_db
from monety.schemas.ledger import (
    DepositCreateRequest,
    DepositRead,
    WithdrawalCreateRequest,
    WithdrawalQuoteRead,
    WithdrawalRead,
)
from monety.services.deposit_service import create_deposit, list_user_deposits
from monety.services.withdrawal_service import (
    list_user_withdrawals,
    quote_withdrawal,
    request_withdrawal,
    withdrawal_window_status,
)

router = APIRouter()


@router.get("/deposits", response_model=list[DepositRead])
def get_my_deposits(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[DepositRead]:
    return [DepositRead.model_validate(entry) for entry in list_user_deposits(db, current_user.id)]


@router.post("/deposits", response_model=DepositRead, status_code=status.HTTP_201_CREATED)
def create_my_deposit(
    payload: DepositCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DepositRead:
    result = create_deposit(db, current_user.id, payload.amount)
    raise_for_failure(result)
    return DepositRead.model_validate(result.data)


@router.get("/withdrawals", response_model=list[WithdrawalRead])
def get_my_withdrawals(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[WithdrawalRead]:
    return [WithdrawalRead.model_validate(entry) for entry in list_user_withdrawals(db, current_user.id)]


@router.get("/withdrawals/quote", response_model=WithdrawalQuoteRead)
def get_withdrawal_quote(
    amount: float = Query(gt=0, allow_inf_nan=False),
    _: User = Depends(get_current_user),
) -> WithdrawalQuoteRead:
    quote = quote_withdrawal(amount)
    window = withdrawal_window_status()
    return WithdrawalQuoteRead(
        amount=quote["amount"],
        fee=quote["fee"],
        net_amount=quote["net_amount"],
        window_open=window["open"],
        window_message=window["message"],
    )


@router.post("/withdrawals", response_model=WithdrawalRead, status_code=status.HTTP_201_CREATED)
def create_withdrawal_request(
    payload: WithdrawalCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WithdrawalRead:
    result = request_withdrawal(
        db,
        current_user.id,
        payload.amount,
        payload.pix_key,
        payload.pix_type,
    )
    raise_for_failure(result)
    return WithdrawalRead.model_validate(result.data)
