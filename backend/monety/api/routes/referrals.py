from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monety.api.deps import get_current_user
from monety.db.models import User
from monety.db.session import get_db
from monety.schemas.ledger import TeamOverviewRead
from monety.services.referral_service import get_team_overview

router = APIRouter()


@router.get("/me", response_model=TeamOverviewRead)
def get_my_team(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamOverviewRead:
    return TeamOverviewRead.model_validate(get_team_overview(db, current_user))
