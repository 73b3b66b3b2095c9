from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monety.api.deps import get_current_user, raise_for_failure
from monety.db.models import User
from monety.db.session import get_db
from monety.schemas.ledger import InvestmentRead, ProductRead, PurchaseRequest, PurchaseResultRead
from monety.services.investment_service import (
    get_product,
    list_products,
    list_user_investments,
    purchase_product,
)
from monety.services.record_store import get_user
from monety.services.results import OperationResult

router = APIRouter()


@router.get("/products", response_model=list[ProductRead])
def get_products() -> list[ProductRead]:
    return [ProductRead.model_validate(product) for product in list_products()]


@router.get("", response_model=list[InvestmentRead])
def get_my_investments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[InvestmentRead]:
    rows = list_user_investments(db, current_user.id)
    return [InvestmentRead.model_validate(entry) for entry in rows]


@router.post("/purchase", response_model=PurchaseResultRead)
def purchase(
    payload: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PurchaseResultRead:
    product = get_product(payload.product_id)
    if product is None:
        raise_for_failure(OperationResult.fail("product_not_found", "Product not found"))

    result = purchase_product(db, current_user.id, product)
    raise_for_failure(result)
    user = get_user(db, current_user.id)
    return PurchaseResultRead.model_validate(
        {"investment": result.data, "balance": round(float(user.balance), 2)}
    )
