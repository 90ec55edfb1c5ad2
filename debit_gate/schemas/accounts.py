from pydantic import BaseModel, Field
from typing import Optional
from debit_gate.schemas.records import U64_MAX


class TokenAccount(BaseModel):
    account_id: str
    asset: str
    owner: str
    balance: int = Field(0, ge=0, le=U64_MAX)
    delegate: Optional[str] = None
    delegated_amount: int = Field(0, ge=0, le=U64_MAX)
