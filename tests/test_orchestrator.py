import pytest
from conftest import ASSET, MERCHANT_ID, Party
from debit_gate.core.errors import (
    ExceedsMaxPerOrdinal, ExceedsPerTransferLimit, ExceedsPeriodLimit, InsufficientAllowance, InsufficientFunds,
    MintMismatch, RecordNotFound, Unauthorized,
)
from debit_gate.schemas.events import EventType
from debit_gate.schemas.requests import DebitRequest


def delegate_state(harness):
    return harness.hierarchy.get_delegate(MERCHANT_ID, ASSET, "user-usdc").model_dump()


def test_debit_moves_funds_and_records_usage(harness):
    harness.setup_funded_delegate()
    receipt = harness.debit(500)

    assert receipt.amount == 500
    assert receipt.period_accumulated == 500
    assert receipt.ordinal == 1
    assert receipt.delegate_locator == harness.delegate_locator("user-usdc")

    assert harness.ledger.get_account("user-usdc").balance == 4_500
    assert harness.ledger.get_account("merchant-usdc").balance == 500
    assert harness.ledger.get_account("user-usdc").delegated_amount == 10**12 - 500

    record = harness.hierarchy.get_delegate(MERCHANT_ID, ASSET, "user-usdc")
    assert record.period_accumulated == 500
    # 1000 - 0 is inside the first window, so the sentinel anchor stays put
    assert record.period_anchor_timestamp == 0
    assert record.last_transfer_ordinal == 1

    [event] = harness.sink.get_all(EventType.USER_DEBITED)
    assert event.scope["debitor"] == harness.debitor.identity
    assert event.new_state == {"amount": 500, "period_accumulated": 500}


def test_first_debit_after_a_full_period_moves_the_anchor(harness):
    harness.clock.timestamp = 5_000
    harness.setup_funded_delegate()
    harness.debit(500)
    record = harness.hierarchy.get_delegate(MERCHANT_ID, ASSET, "user-usdc")
    # 5000 - 0 > 3600: the sentinel anchor rolls over to the debit's timestamp
    assert record.period_anchor_timestamp == 5_000
    assert record.period_accumulated == 500


def test_unknown_debitor_is_unauthorized(harness):
    harness.setup_funded_delegate()
    with pytest.raises(Unauthorized):
        harness.debit(100, debitor=Party())
    assert harness.ledger.get_account("user-usdc").balance == 5_000


def test_revoked_debitor_is_unauthorized(harness):
    harness.setup_funded_delegate()
    harness.debit(100)

    harness.clock.advance(seconds=1)
    harness.set_debitor(allowed=False)
    with pytest.raises(Unauthorized):
        harness.debit(100)
    assert harness.ledger.get_account("user-usdc").balance == 4_900


def test_debitor_signature_must_cover_the_request(harness):
    harness.setup_funded_delegate()
    fields = {
        "merchant_id": MERCHANT_ID,
        "asset": ASSET,
        "user_source_account": "user-usdc",
        "destination_account": "merchant-usdc",
        "amount": 10,
    }
    proof = harness.sign(harness.debitor, "debit_user", fields)
    with pytest.raises(Unauthorized):
        harness.orchestrator.debit_user(DebitRequest(debitor=proof, **{**fields, "amount": 900}))
    assert delegate_state(harness)["period_accumulated"] == 0


def test_destination_must_be_allowed(harness):
    harness.setup_funded_delegate()
    harness.ledger.open_account(ASSET, harness.manager.identity, account_id="elsewhere")
    with pytest.raises(Unauthorized):
        harness.debit(100, destination="elsewhere")

    harness.clock.advance(seconds=1)
    harness.set_destination("merchant-usdc", allowed=False)
    harness.clock.advance(seconds=1)
    with pytest.raises(Unauthorized):
        harness.debit(100)
    assert harness.ledger.get_account("merchant-usdc").balance == 0


def test_missing_delegate(harness):
    harness.setup_funded_delegate()
    harness.ledger.open_account(ASSET, harness.user.identity, account_id="user-other")
    harness.ledger.deposit("user-other", 1_000)
    with pytest.raises(RecordNotFound):
        harness.debit(100, source="user-other")


def test_accounts_must_hold_the_debited_asset(harness):
    harness.setup_funded_delegate()
    # Delegates are not tied to an account's asset, so one can exist for a SOL account under USDC
    harness.ledger.open_account("SOL", harness.user.identity, account_id="user-sol")
    harness.ledger.deposit("user-sol", 1_000)
    harness.clock.advance(seconds=1)
    harness.set_delegate("user-sol")
    with pytest.raises(MintMismatch):
        harness.debit(100, source="user-sol")
    assert harness.hierarchy.get_delegate(MERCHANT_ID, ASSET, "user-sol").period_accumulated == 0
    assert harness.ledger.get_account("merchant-usdc").balance == 0


def test_quota_failures_surface_unchanged(harness):
    harness.setup_funded_delegate()
    with pytest.raises(ExceedsPerTransferLimit):
        harness.debit(1_500)

    harness.debit(900)
    harness.clock.advance(seconds=100)
    harness.debit(1_000)
    harness.clock.advance(seconds=100)
    with pytest.raises(ExceedsPeriodLimit):
        harness.debit(200)
    assert delegate_state(harness)["period_accumulated"] == 1_900
    assert harness.ledger.get_account("merchant-usdc").balance == 1_900


def test_one_debit_per_ordinal(harness):
    harness.setup_funded_delegate()
    harness.debit(100)

    # New second, same processing step
    harness.clock.advance(seconds=1, steps=0)
    with pytest.raises(ExceedsMaxPerOrdinal):
        harness.debit(100)

    harness.clock.advance(seconds=0, steps=1)
    harness.debit(50)
    assert delegate_state(harness)["period_accumulated"] == 150


def test_replayed_debit_is_rejected(harness):
    harness.setup_funded_delegate()
    fields = {
        "merchant_id": MERCHANT_ID,
        "asset": ASSET,
        "user_source_account": "user-usdc",
        "destination_account": "merchant-usdc",
        "amount": 100,
    }
    request = DebitRequest(debitor=harness.sign(harness.debitor, "debit_user", fields), **fields)
    harness.orchestrator.debit_user(request)

    harness.clock.advance(seconds=1)
    with pytest.raises(Unauthorized):
        harness.orchestrator.debit_user(request)
    assert harness.ledger.get_account("merchant-usdc").balance == 100


def test_ledger_failure_rolls_back_quota(harness):
    harness.setup_funded_delegate(balance=300)
    before = delegate_state(harness)

    with pytest.raises(InsufficientFunds):
        harness.debit(500)
    assert delegate_state(harness) == before
    assert harness.ledger.get_account("user-usdc").balance == 300
    assert harness.sink.get_all(EventType.USER_DEBITED) == []


def test_missing_allowance_rolls_back_quota(harness):
    harness.setup_funded_delegate()
    harness.ledger.approve("user-usdc", harness.user.identity, harness.delegate_locator("user-usdc"), 100)
    before = delegate_state(harness)

    with pytest.raises(InsufficientAllowance):
        harness.debit(500)
    assert delegate_state(harness) == before
    assert harness.ledger.get_account("user-usdc").balance == 5_000


def test_end_to_end_period_window(harness):
    harness.setup_funded_delegate(balance=10_000, per_transfer_limit=1000, period_limit=2000, period_seconds=3600)

    harness.debit(900)
    harness.clock.advance(seconds=100)
    harness.debit(200)
    harness.clock.advance(seconds=100)
    with pytest.raises(ExceedsPeriodLimit):
        harness.debit(1000)
    assert delegate_state(harness)["period_accumulated"] == 1_100

    # Window still anchored at the 0 sentinel, so it expires after 3600
    harness.clock.timestamp = 4_601
    harness.clock.advance(seconds=0)
    receipt = harness.debit(1000)
    assert receipt.period_accumulated == 1_000
    assert delegate_state(harness)["period_anchor_timestamp"] == 4_601
    assert harness.ledger.get_account("merchant-usdc").balance == 2_100
