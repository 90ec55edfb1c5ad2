from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Union
from debit_gate.schemas.proofs import Proof, normalize_identity
from debit_gate.schemas.records import RecordType, U32_MAX, U64_MAX

# Proofs sign the operation's own parameters (see core.proofs.signing_payload);
# caller-supplied locators are checked against the derivation, never signed.


class InitializeRequest(BaseModel):
    admin: Proof


class AuthorityTransferRequest(BaseModel):
    """Both the sitting admin and the incoming admin must sign the same handover."""
    current_admin: Optional[Proof] = None
    new_admin: Optional[Proof] = None


class ManagerUpdate(BaseModel):
    admin: Proof
    manager_identity: str
    locator: Optional[str] = None

    @field_validator('manager_identity')
    @classmethod
    def validate_manager(cls, v):
        return normalize_identity(v)


class DebitorUpdate(BaseModel):
    manager: Proof
    asset: str = Field(..., min_length=1)
    debitor_identity: str
    allowed: bool
    locator: Optional[str] = None

    @field_validator('debitor_identity')
    @classmethod
    def validate_debitor(cls, v):
        return normalize_identity(v)


class DestinationUpdate(BaseModel):
    admin: Proof
    asset: str = Field(..., min_length=1)
    destination_account: str = Field(..., min_length=1)
    allowed: bool
    locator: Optional[str] = None


class DelegateUpdate(BaseModel):
    manager: Proof
    asset: str = Field(..., min_length=1)
    user_source_account: str = Field(..., min_length=1)
    per_transfer_limit: int = Field(..., ge=0, le=U64_MAX)
    period_limit: int = Field(..., ge=0, le=U64_MAX)
    period_seconds: int = Field(..., ge=0, le=U32_MAX)
    locator: Optional[str] = None


class CloseRecordRequest(BaseModel):
    admin: Proof
    record_type: RecordType
    scope: List[Union[int, str]] = Field(default_factory=list)
    locator: str


class DebitBody(BaseModel):
    debitor: Proof
    asset: str = Field(..., min_length=1)
    user_source_account: str = Field(..., min_length=1)
    destination_account: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=U64_MAX)


class DebitRequest(DebitBody):
    merchant_id: int = Field(..., ge=0, le=U64_MAX)


class DebitReceipt(BaseModel):
    merchant_id: int
    asset: str
    debitor: str
    user_source_account: str
    destination_account: str
    amount: int
    delegate_locator: str
    timestamp: int
    ordinal: int
    period_accumulated: int


class RecordUpdateResponse(BaseModel):
    locator: str
    previous: Optional[Dict[str, Any]] = None
    current: Optional[Dict[str, Any]] = None


class OpenAccountRequest(BaseModel):
    asset: str = Field(..., min_length=1)
    owner: str
    account_id: Optional[str] = None

    @field_validator('owner')
    @classmethod
    def validate_owner(cls, v):
        return normalize_identity(v)


class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0, le=U64_MAX)


class ApproveRequest(BaseModel):
    owner: Proof
    delegate: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, le=U64_MAX)
