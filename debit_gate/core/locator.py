from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple, Union
import hashlib
import struct
import logging
from nacl.bindings import crypto_core_ed25519_is_valid_point
from debit_gate.core.config import settings
from debit_gate.core.errors import InvalidRecordReference
from debit_gate.schemas.records import RecordType, U8_MAX

logger = logging.getLogger(__name__)

ScopeField = Union[int, str]
Scope = Sequence[ScopeField]

# Number of scope fields each record type is keyed by
SCOPE_ARITY = {
    RecordType.PLATFORM_AUTHORITY: 0,
    RecordType.MERCHANT_MANAGER: 1,
    RecordType.MERCHANT_DEBITOR: 3,
    RecordType.MERCHANT_DESTINATION: 3,
    RecordType.USER_DELEGATE: 3,
}


class RecordLocator(ABC):
    """Maps (record type, scope) to a stable storage key. Injective within a type."""

    @abstractmethod
    def derive(self, record_type: RecordType, scope: Scope) -> Tuple[str, int]:
        """Returns (locator, bump)."""
        pass

    def validate(self, record_type: RecordType, scope: Scope, locator: str) -> int:
        expected, bump = self.derive(record_type, scope)
        if locator != expected:
            logger.warning(f"Locator mismatch for {record_type.value} {list(scope)}: got {locator}")
            raise InvalidRecordReference(f"Locator does not match {record_type.value} scope")
        return bump


def _encode_field(value: ScopeField) -> bytes:
    if isinstance(value, bool):
        raise InvalidRecordReference("Boolean scope fields are not supported")
    if isinstance(value, int):
        if value < 0 or value > 2**64 - 1:
            raise InvalidRecordReference(f"Scope integer out of range: {value}")
        raw = struct.pack("<Q", value)
        tag = b"i"
    else:
        raw = str(value).encode("utf-8")
        tag = b"s"
    return tag + struct.pack("<I", len(raw)) + raw


class HashRecordLocator(RecordLocator):
    """
    SHA-256 over namespace, type tag, length-prefixed scope fields and a bump.

    The bump is searched downward from 255 and the first candidate that is not a
    valid Ed25519 point wins, so no signing key can ever exist for a locator.
    That matters because delegate locators act as the authorizing party on the
    ledger.
    """

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace or settings.LOCATOR_NAMESPACE

    def _seed(self, record_type: RecordType, scope: Scope) -> bytes:
        expected = SCOPE_ARITY[record_type]
        if len(scope) != expected:
            raise InvalidRecordReference(
                f"{record_type.value} is scoped by {expected} fields, got {len(scope)}"
            )
        parts = [_encode_field(self.namespace), _encode_field(record_type.value)]
        parts.extend(_encode_field(v) for v in scope)
        return b"".join(parts)

    def derive(self, record_type: RecordType, scope: Scope) -> Tuple[str, int]:
        seed = self._seed(record_type, scope)
        for bump in range(U8_MAX, -1, -1):
            candidate = hashlib.sha256(seed + bytes([bump]) + b"RecordLocator").digest()
            if not crypto_core_ed25519_is_valid_point(candidate):
                return candidate.hex(), bump
        raise InvalidRecordReference(f"No viable locator for {record_type.value} {list(scope)}")
