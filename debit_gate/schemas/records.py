from enum import Enum
from typing import Literal
from pydantic import BaseModel, Field

U8_MAX = 2**8 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

# Initial quota sub-state. Host ordinals start at 1 so a fresh delegate never trips the per-ordinal cap.
INITIAL_ACCUMULATED = 0
INITIAL_ANCHOR_TIMESTAMP = 0
INITIAL_TRANSFER_ORDINAL = 0


class RecordType(str, Enum):
    PLATFORM_AUTHORITY = "platform_authority"
    MERCHANT_MANAGER = "merchant_manager"
    MERCHANT_DEBITOR = "merchant_debitor"
    MERCHANT_DESTINATION = "merchant_destination"
    USER_DELEGATE = "user_delegate"


class PermissionRecord(BaseModel):
    bump: int = Field(U8_MAX, ge=0, le=U8_MAX)


class PlatformAuthority(PermissionRecord):
    record_type: Literal[RecordType.PLATFORM_AUTHORITY] = RecordType.PLATFORM_AUTHORITY
    admin_identity: str


class MerchantManagerRecord(PermissionRecord):
    record_type: Literal[RecordType.MERCHANT_MANAGER] = RecordType.MERCHANT_MANAGER
    manager_identity: str


class DebitorRecord(PermissionRecord):
    record_type: Literal[RecordType.MERCHANT_DEBITOR] = RecordType.MERCHANT_DEBITOR
    allowed: bool = False


class DestinationRecord(PermissionRecord):
    record_type: Literal[RecordType.MERCHANT_DESTINATION] = RecordType.MERCHANT_DESTINATION
    allowed: bool = False


class DelegateRecord(PermissionRecord):
    """
    Limits and rolling-period usage for one user source account, scoped to a
    merchant and an asset. Configuration fields are written by the merchant
    manager; the usage fields only move inside admit_debit.
    """
    record_type: Literal[RecordType.USER_DELEGATE] = RecordType.USER_DELEGATE
    per_transfer_limit: int = Field(..., ge=0, le=U64_MAX)
    period_limit: int = Field(..., ge=0, le=U64_MAX)
    period_seconds: int = Field(..., ge=0, le=U32_MAX)
    period_accumulated: int = Field(INITIAL_ACCUMULATED, ge=0, le=U64_MAX)
    period_anchor_timestamp: int = Field(INITIAL_ANCHOR_TIMESTAMP, ge=0, le=U64_MAX)
    last_transfer_ordinal: int = Field(INITIAL_TRANSFER_ORDINAL, ge=0, le=U64_MAX)
