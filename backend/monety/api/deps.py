from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from monety.core.config import get_settings
from monety.core.security import decode_access_token, verify_webhook_secret
from monety.db.models import User
from monety.db.session import get_db
from monety.services.record_store import get_user
from monety.services.results import OperationResult

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{get_settings().api_prefix}/auth/login")

ERROR_STATUS_CODES: dict[str, int] = {
    "user_not_found": status.HTTP_404_NOT_FOUND,
    "product_not_found": status.HTTP_404_NOT_FOUND,
    "withdrawal_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "email_in_use": status.HTTP_409_CONFLICT,
    "outside_window": status.HTTP_409_CONFLICT,
    "already_checked_in": status.HTTP_409_CONFLICT,
    "day_already_claimed": status.HTTP_409_CONFLICT,
    "cycle_complete": status.HTTP_409_CONFLICT,
    "invalid_status_transition": status.HTTP_409_CONFLICT,
    "gateway_error": status.HTTP_502_BAD_GATEWAY,
}


def raise_for_failure(result: OperationResult) -> None:
    if result.success:
        return
    code = result.error_code or "invalid_request"
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(code, status.HTTP_400_BAD_REQUEST),
        detail={"code": code, "message": result.error_message or "Request failed"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    subject = decode_access_token(token)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    user = get_user(db, subject)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_webhook_secret(x_webhook_secret: str | None = Header(default=None)) -> None:
    if not verify_webhook_secret(x_webhook_secret):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook secret",
        )
