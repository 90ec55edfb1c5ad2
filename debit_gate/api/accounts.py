from fastapi import APIRouter, Body
from debit_gate.core import gate
from debit_gate.core.errors import Unauthorized
from debit_gate.db.session import db
from debit_gate.schemas.accounts import TokenAccount
from debit_gate.schemas.requests import ApproveRequest, DepositRequest, OpenAccountRequest

# Stand-in value-transfer backend: token accounts the debit flow moves funds between.
router = APIRouter(prefix="/accounts")

@router.post("", response_model=TokenAccount)
async def open_account(request: OpenAccountRequest = Body(...)):
    with db.atomic():
        return db.ledger.open_account(request.asset, request.owner, account_id=request.account_id)

@router.get("/{account_id}", response_model=TokenAccount)
async def get_account(account_id: str):
    return db.ledger.get_account(account_id)

@router.post("/{account_id}/deposit", response_model=TokenAccount)
async def deposit(account_id: str, request: DepositRequest = Body(...)):
    with db.atomic():
        return db.ledger.deposit(account_id, request.amount)

@router.post("/{account_id}/approve", response_model=TokenAccount)
async def approve_delegate(account_id: str, request: ApproveRequest = Body(...)):
    """The owner pre-approves a delegate (typically a delegate record locator) to move funds."""
    with db.atomic():
        fields = {"account_id": account_id, "delegate": request.delegate, "amount": request.amount}
        if not gate.verifier.verify(request.owner, "approve", fields):
            raise Unauthorized(f"Proof from {request.owner.identity} rejected for approve")
        return db.ledger.approve(account_id, request.owner.identity, request.delegate, request.amount)
