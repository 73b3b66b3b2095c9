from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.orm import Session

from monety.db.models import User
from monety.services import record_lock_service as locks


def get_user(db: Session, user_id: str) -> User | None:
    return db.scalar(select(User).where(User.id == user_id))


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == (email or "").strip().lower()))


def lock_user_row(db: Session, user_id: str) -> User | None:
    return db.scalar(
        select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
    )


@contextmanager
def locked_user(db: Session, user_id: str) -> Iterator[User | None]:
    """Hold a user record for one read-modify-write cycle.

    The record lock and the row lock are held until the block exits; the
    transaction commits on normal exit and rolls back if the block raises.
    Yields ``None`` when the record does not exist.
    """
    with locks.record_lock_service.hold(user_id):
        try:
            user = lock_user_row(db, user_id)
            yield user
            db.commit()
        except Exception:
            db.rollback()
            raise
