from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import json
import logging
import threading
from nacl.signing import SigningKey, VerifyKey
from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError
from debit_gate.core.clock import HostClock, SystemClock
from debit_gate.core.config import settings
from debit_gate.schemas.proofs import Proof

logger = logging.getLogger(__name__)


def signing_payload(operation: str, fields: Dict[str, Any], issued_at: int) -> bytes:
    """
    Canonical bytes a proof signs: the operation name, every request field except
    the proofs themselves and unset (None) fields, and the proof's issued_at, as
    sorted compact JSON.
    """
    body = {k: v for k, v in fields.items() if v is not None}
    body["operation"] = operation
    body["issued_at"] = issued_at
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


class ProofVerifier(ABC):
    @abstractmethod
    def verify(self, proof: Proof, operation: str, fields: Dict[str, Any]) -> bool:
        pass


class Ed25519ProofVerifier(ProofVerifier):
    """
    Identities are hex Ed25519 verify keys; proofs are detached signatures.

    A proof is only accepted within max_age_seconds of its issued_at, and only
    once inside that window.
    """

    def __init__(self, clock: Optional[HostClock] = None, max_age_seconds: Optional[int] = None):
        self.clock = clock or SystemClock()
        self.max_age_seconds = max_age_seconds or settings.PROOF_MAX_AGE_SECONDS
        self._seen: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _check_signature(self, proof: Proof, payload: bytes) -> bool:
        try:
            key = VerifyKey(proof.identity.encode("ascii"), encoder=HexEncoder)
            key.verify(payload, bytes.fromhex(proof.signature))
            return True
        except BadSignatureError:
            logger.warning(f"Bad signature from {proof.identity}")
            return False
        except (CryptoError, ValueError, TypeError) as e:
            logger.warning(f"Malformed proof from {proof.identity}: {e}")
            return False

    def verify(self, proof: Proof, operation: str, fields: Dict[str, Any]) -> bool:
        now = self.clock.now().timestamp
        if abs(now - proof.issued_at) > self.max_age_seconds:
            logger.warning(f"Stale proof from {proof.identity}: issued_at={proof.issued_at} now={now}")
            return False

        if not self._check_signature(proof, signing_payload(operation, fields, proof.issued_at)):
            return False

        with self._lock:
            self._seen = {s: t for s, t in self._seen.items() if now - t <= self.max_age_seconds}
            if proof.signature in self._seen:
                logger.warning(f"Replayed proof from {proof.identity} for {operation}")
                return False
            self._seen[proof.signature] = proof.issued_at
        return True

    def forget(self):
        with self._lock:
            self._seen.clear()


def identity_of(signing_key: SigningKey) -> str:
    return signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")


def sign_request(signing_key: SigningKey, operation: str, fields: Dict[str, Any], issued_at: int) -> Proof:
    """Client-side helper: builds the proof a caller attaches to a request."""
    signed = signing_key.sign(signing_payload(operation, fields, issued_at))
    return Proof(identity=identity_of(signing_key), signature=signed.signature.hex(), issued_at=issued_at)
