from pydantic import BaseModel, Field, field_validator
import re

HEX_KEY_PATTERN = r"^[0-9a-f]{64}$"
HEX_SIGNATURE_PATTERN = r"^[0-9a-f]{128}$"


def normalize_identity(v: str) -> str:
    v = v.strip().lower()
    if not re.match(HEX_KEY_PATTERN, v):
        raise ValueError("Identity must be a hex-encoded 32 byte Ed25519 key")
    return v


class Proof(BaseModel):
    """A claimed identity plus its signature over the operation payload and issued_at."""
    identity: str
    signature: str
    issued_at: int = Field(..., ge=0)

    @field_validator('identity')
    @classmethod
    def validate_identity(cls, v):
        return normalize_identity(v)

    @field_validator('signature')
    @classmethod
    def validate_signature(cls, v):
        v = v.strip().lower()
        if not re.match(HEX_SIGNATURE_PATTERN, v):
            raise ValueError("Signature must be a hex-encoded 64 byte Ed25519 signature")
        return v
