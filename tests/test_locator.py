import pytest
from nacl.bindings import crypto_core_ed25519_is_valid_point
from debit_gate.core.codec import decode_record, discriminator, encode_record
from debit_gate.core.errors import InvalidRecordReference
from debit_gate.core.locator import HashRecordLocator
from debit_gate.schemas.records import DelegateRecord, MerchantManagerRecord, PlatformAuthority, RecordType, U64_MAX


@pytest.fixture
def locator():
    return HashRecordLocator(namespace="test")


def test_derivation_is_deterministic(locator):
    first = locator.derive(RecordType.USER_DELEGATE, (1, "USDC", "acct-1"))
    second = HashRecordLocator(namespace="test").derive(RecordType.USER_DELEGATE, (1, "USDC", "acct-1"))
    assert first == second
    assert len(first[0]) == 64
    assert 0 <= first[1] <= 255


def test_distinct_scopes_get_distinct_locators(locator):
    scopes = [
        (1, "USDC", "acct-1"),
        (2, "USDC", "acct-1"),
        (1, "USDT", "acct-1"),
        (1, "USDC", "acct-2"),
        # Field boundaries are length-prefixed, so shifting characters between fields changes the key
        (1, "USDCa", "cct-1"),
        (1, "1", "USDC"),
    ]
    locators = {locator.derive(RecordType.USER_DELEGATE, scope)[0] for scope in scopes}
    assert len(locators) == len(scopes)


def test_record_type_and_namespace_are_part_of_the_key(locator):
    scope = (1, "USDC", "acct-1")
    debitor, _ = locator.derive(RecordType.MERCHANT_DEBITOR, scope)
    destination, _ = locator.derive(RecordType.MERCHANT_DESTINATION, scope)
    other, _ = HashRecordLocator(namespace="other").derive(RecordType.MERCHANT_DEBITOR, scope)
    assert len({debitor, destination, other}) == 3


def test_locators_are_off_curve(locator):
    for merchant_id in range(20):
        key, _ = locator.derive(RecordType.MERCHANT_MANAGER, (merchant_id,))
        assert not crypto_core_ed25519_is_valid_point(bytes.fromhex(key))


def test_validate(locator):
    key, bump = locator.derive(RecordType.MERCHANT_MANAGER, (7,))
    assert locator.validate(RecordType.MERCHANT_MANAGER, (7,), key) == bump
    with pytest.raises(InvalidRecordReference):
        locator.validate(RecordType.MERCHANT_MANAGER, (8,), key)


@pytest.mark.parametrize("record_type, scope", [
    (RecordType.PLATFORM_AUTHORITY, (1,)),
    (RecordType.MERCHANT_MANAGER, ()),
    (RecordType.USER_DELEGATE, (1, "USDC")),
    (RecordType.MERCHANT_MANAGER, (-1,)),
    (RecordType.MERCHANT_MANAGER, (U64_MAX + 1,)),
    (RecordType.MERCHANT_MANAGER, (True,)),
])
def test_bad_scopes_are_rejected(locator, record_type, scope):
    with pytest.raises(InvalidRecordReference):
        locator.derive(record_type, scope)


def test_delegate_record_layout():
    record = DelegateRecord(
        per_transfer_limit=1000,
        period_limit=2000,
        period_seconds=3600,
        period_accumulated=500,
        period_anchor_timestamp=100,
        last_transfer_ordinal=3,
        bump=254,
    )
    data = encode_record(record)
    # discriminator + five u64 + one u32 + bump
    assert len(data) == 8 + 5 * 8 + 4 + 1
    assert data[:8] == discriminator(DelegateRecord)
    assert data[-1] == 254
    assert decode_record(data) == record


def test_identity_records_store_raw_key_bytes():
    identity = "ab" * 32
    data = encode_record(MerchantManagerRecord(manager_identity=identity, bump=9))
    assert len(data) == 8 + 32 + 1
    assert data[8:40] == bytes.fromhex(identity)
    assert discriminator(MerchantManagerRecord) != discriminator(PlatformAuthority)


def test_decode_rejects_unknown_or_truncated_data():
    with pytest.raises(InvalidRecordReference):
        decode_record(b"\x00" * 16)

    data = encode_record(DelegateRecord(per_transfer_limit=1, period_limit=1, period_seconds=1, bump=1))
    with pytest.raises(InvalidRecordReference):
        decode_record(data[:-2])
