from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from monety.api.deps import raise_for_failure
from monety.core.security import create_access_token
from monety.db.session import get_db
from monety.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from monety.schemas.ledger import UserRead
from monety.services.auth_service import authenticate_user, register_user

router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> UserRead:
    result = register_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        invite_code=payload.invite_code,
    )
    raise_for_failure(result)
    return UserRead.model_validate(result.data)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    result = authenticate_user(db, payload.email, payload.password)
    raise_for_failure(result)
    return TokenResponse(access_token=create_access_token(result.data.id))
