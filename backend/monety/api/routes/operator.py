from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from monety.api.deps import raise_for_failure, require_webhook_secret
from monety.db.session import get_db
from monety.schemas.ledger import (
    DepositRead,
    OperatorSummaryRead,
    WithdrawalRead,
    WithdrawalStatusUpdateRequest,
)
from monety.services.deposit_service import confirm_deposit
from monety.services.operator_service import get_operator_summary
from monety.services.withdrawal_service import update_withdrawal_status

router = APIRouter(dependencies=[Depends(require_webhook_secret)])


@router.post("/deposits/{deposit_id}/confirm", response_model=DepositRead | None)
def confirm_deposit_event(
    deposit_id: str,
    response: Response,
    db: Session = Depends(get_db),
) -> DepositRead | None:
    result = confirm_deposit(db, deposit_id)
    raise_for_failure(result)
    if result.data is None:
        response.status_code = status.HTTP_202_ACCEPTED
        return None
    return DepositRead.model_validate(result.data)


@router.post("/withdrawals/{withdrawal_id}/status", response_model=WithdrawalRead)
def update_withdrawal(
    withdrawal_id: str,
    payload: WithdrawalStatusUpdateRequest,
    db: Session = Depends(get_db),
) -> WithdrawalRead:
    result = update_withdrawal_status(db, withdrawal_id, payload.status)
    raise_for_failure(result)
    return WithdrawalRead.model_validate(result.data)


@router.get("/summary", response_model=OperatorSummaryRead)
def get_summary(db: Session = Depends(get_db)) -> OperatorSummaryRead:
    return OperatorSummaryRead.model_validate(get_operator_summary(db))
