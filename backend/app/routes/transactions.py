from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status

from app.dependencies.security import require_user_id_int
from app.dependencies.services import get_transaction_service
from app.models.transaction import TransactionRequest
from app.services.errors import ServiceError
from app.services.transaction_service import TransactionService

router = APIRouter(
    prefix="/api/v1",
    tags=["transactions"]
)


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
def create_transactions(
    request: TransactionRequest,
    user_id: int = Depends(require_user_id_int),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    """
    Record statement transactions.

    Request body:
    {
        "transactions": [
            {
                "card_id": "amex-gold",
                "merchant": "Netflix",
                "category": "streaming",
                "amount_cents": 1549,
                "date": "2025-03-01"
            }
        ]
    }
    """
    try:
        return {"transactions": service.create_transactions(user_id, request.transactions)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/transactions")
def get_transactions(
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort_by_date_desc: Optional[bool] = True,
    user_id: int = Depends(require_user_id_int),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    try:
        return {"transactions": service.get_user_transactions(user_id, start, end, sort_by_date_desc)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/diagnostics")
def get_diagnostics(
    start: Optional[date] = None,
    end: Optional[date] = None,
    user_id: int = Depends(require_user_id_int),
    service: TransactionService = Depends(get_transaction_service),
) -> Dict[str, Any]:
    """
    Statement diagnostics: spend by category, missed rewards, subscriptions,
    unused monthly benefits, BNPL risk and the resulting to-dos.

    Query:
    - start / end: YYYY-MM-DD window, defaults to the last 30 days
    """
    try:
        return service.get_diagnostics(user_id, start, end)
    except ServiceError as exc:
        raise exc.to_http()
