# Persisted record layout: an 8 byte type discriminator, the record's fields in
# declaration order (little-endian), then the bump.

from typing import Dict, List, Tuple, Type
import hashlib
import struct
from debit_gate.core.errors import InvalidRecordReference
from debit_gate.schemas.records import (
    DebitorRecord, DelegateRecord, DestinationRecord, MerchantManagerRecord, PermissionRecord, PlatformAuthority,
)

# (field name, struct code); "32s" fields hold hex identities as raw key bytes
LAYOUTS: Dict[Type[PermissionRecord], List[Tuple[str, str]]] = {
    PlatformAuthority: [("admin_identity", "32s")],
    MerchantManagerRecord: [("manager_identity", "32s")],
    DebitorRecord: [("allowed", "?")],
    DestinationRecord: [("allowed", "?")],
    DelegateRecord: [
        ("per_transfer_limit", "Q"),
        ("period_limit", "Q"),
        ("period_accumulated", "Q"),
        ("period_anchor_timestamp", "Q"),
        ("period_seconds", "I"),
        ("last_transfer_ordinal", "Q"),
    ],
}


def discriminator(model: Type[PermissionRecord]) -> bytes:
    return hashlib.sha256(f"account:{model.__name__}".encode("utf-8")).digest()[:8]


DISCRIMINATORS = {discriminator(model): model for model in LAYOUTS}


def _format(model: Type[PermissionRecord]) -> str:
    return "<" + "".join(code for _, code in LAYOUTS[model]) + "B"


def encode_record(record: PermissionRecord) -> bytes:
    model = type(record)
    values = []
    for name, code in LAYOUTS[model]:
        value = getattr(record, name)
        values.append(bytes.fromhex(value) if code == "32s" else value)
    values.append(record.bump)
    return discriminator(model) + struct.pack(_format(model), *values)


def decode_record(data: bytes) -> PermissionRecord:
    model = DISCRIMINATORS.get(bytes(data[:8]))
    if model is None:
        raise InvalidRecordReference("Unknown record discriminator")
    fmt = _format(model)
    body = data[8:]
    if len(body) != struct.calcsize(fmt):
        raise InvalidRecordReference(f"{model.__name__} expects {struct.calcsize(fmt)} bytes, got {len(body)}")

    *values, bump = struct.unpack(fmt, body)
    fields = {}
    for (name, code), value in zip(LAYOUTS[model], values):
        fields[name] = value.hex() if code == "32s" else value
    return model(bump=bump, **fields)
