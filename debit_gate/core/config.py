from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Debit Gate"
    LOG_LEVEL: str = "INFO"

    # Mixed into every record locator so two deployments never share keys
    LOCATOR_NAMESPACE: str = "debit-gate"

    # Length of one host processing step; debits are capped at one per step per delegate
    ORDINAL_STEP_MS: int = 400

    # Proofs older (or further in the future) than this are rejected, and a
    # signature is accepted at most once inside the window
    PROOF_MAX_AGE_SECONDS: int = 300

    # Hex Ed25519 key allowed to initialize the platform. Unset means first caller wins.
    BOOTSTRAP_IDENTITY: Optional[str] = None

    class Config:
        case_sensitive = True

settings = Settings()
