from fastapi import APIRouter, Body, Path
from debit_gate.core import gate
from debit_gate.schemas.records import U64_MAX
from debit_gate.schemas.requests import DebitBody, DebitReceipt, DebitRequest

router = APIRouter()

@router.post("/merchants/{merchant_id}/debits", response_model=DebitReceipt)
async def debit_user(merchant_id: int = Path(..., ge=0, le=U64_MAX), body: DebitBody = Body(...)):
    """
    Moves funds from a user's account to an allowlisted merchant destination,
    within the limits of the user's delegate. Rejections leave no trace.
    """
    request = DebitRequest(merchant_id=merchant_id, **body.model_dump())
    return gate.orchestrator.debit_user(request)
