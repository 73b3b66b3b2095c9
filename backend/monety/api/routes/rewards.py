from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monety.api.deps import get_current_user, raise_for_failure
from monety.db.models import User
from monety.db.session import get_db
from monety.schemas.ledger import CheckinResultRead, CheckinStatusRead, SpinResultRead, WheelSegmentRead
from monety.services.accrual_service import load_user
from monety.services.checkin_service import get_checkin_status, perform_daily_checkin
from monety.services.record_store import get_user
from monety.services.wheel_service import spin_wheel, wheel_segments

router = APIRouter()


@router.get("/checkin", response_model=CheckinStatusRead)
def get_my_checkin_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CheckinStatusRead:
    user = load_user(db, current_user.id)
    return CheckinStatusRead.model_validate(get_checkin_status(user))


@router.post("/checkin", response_model=CheckinResultRead)
def do_checkin(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CheckinResultRead:
    result = perform_daily_checkin(db, current_user.id)
    raise_for_failure(result)
    user = get_user(db, current_user.id)
    return CheckinResultRead(
        day=user.checkin_days[-1],
        reward=float(result.data),
        balance=round(float(user.balance), 2),
    )


@router.get("/wheel", response_model=list[WheelSegmentRead])
def get_wheel() -> list[WheelSegmentRead]:
    return [WheelSegmentRead.model_validate(entry) for entry in wheel_segments()]


@router.post("/wheel/spin", response_model=SpinResultRead)
def spin(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SpinResultRead:
    result = spin_wheel(db, current_user.id)
    raise_for_failure(result)
    user = get_user(db, current_user.id)
    return SpinResultRead(
        prize=float(result.data),
        balance=round(float(user.balance), 2),
        roulette_spins=int(user.roulette_spins),
    )
