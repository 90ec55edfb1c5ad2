"""Fresh, clock-controlled gate components for core tests."""

import pytest
from nacl.signing import SigningKey
from debit_gate.core.clock import ManualClock
from debit_gate.core.hierarchy import PermissionHierarchy
from debit_gate.core.locator import HashRecordLocator
from debit_gate.core.notifications import InMemoryNotificationSink
from debit_gate.core.orchestrator import TransferOrchestrator
from debit_gate.core.proofs import Ed25519ProofVerifier, identity_of, sign_request
from debit_gate.db.session import Database
from debit_gate.schemas.records import RecordType
from debit_gate.schemas.requests import DebitRequest

MERCHANT_ID = 1
ASSET = "USDC"


class Party:
    def __init__(self):
        self.key = SigningKey.generate()
        self.identity = identity_of(self.key)


class Harness:
    def __init__(self):
        self.clock = ManualClock(timestamp=1_000, ordinal=1)
        self.database = Database()
        self.ledger = self.database.ledger
        self.locator = HashRecordLocator(namespace="test")
        self.verifier = Ed25519ProofVerifier(clock=self.clock)
        self.sink = InMemoryNotificationSink()
        self.hierarchy = PermissionHierarchy(self.database, self.locator, self.verifier, self.sink)
        self.orchestrator = TransferOrchestrator(self.hierarchy, self.ledger, self.clock, self.sink)
        self.admin = Party()
        self.manager = Party()
        self.debitor = Party()
        self.user = Party()

    def sign(self, party: Party, operation: str, fields: dict):
        return sign_request(party.key, operation, fields, issued_at=self.clock.timestamp)

    def initialize(self):
        return self.hierarchy.initialize(self.sign(self.admin, "initialize", {}))

    def set_manager(self, merchant_id=MERCHANT_ID):
        fields = {"merchant_id": merchant_id, "manager_identity": self.manager.identity}
        return self.hierarchy.set_merchant_manager(
            self.sign(self.admin, "set_merchant_manager", fields), merchant_id, self.manager.identity
        )

    def set_debitor(self, allowed=True, debitor=None):
        debitor = debitor or self.debitor
        fields = {"merchant_id": MERCHANT_ID, "asset": ASSET, "debitor_identity": debitor.identity, "allowed": allowed}
        return self.hierarchy.set_debitor_allowed(
            self.sign(self.manager, "set_debitor_allowed", fields), MERCHANT_ID, ASSET, debitor.identity, allowed
        )

    def set_destination(self, account, allowed=True, asset=ASSET):
        fields = {"merchant_id": MERCHANT_ID, "asset": asset, "destination_account": account, "allowed": allowed}
        return self.hierarchy.set_destination_allowed(
            self.sign(self.admin, "set_destination_allowed", fields), MERCHANT_ID, asset, account, allowed
        )

    def set_delegate(self, account, per_transfer_limit=1000, period_limit=2000, period_seconds=3600):
        fields = {
            "merchant_id": MERCHANT_ID,
            "asset": ASSET,
            "user_source_account": account,
            "per_transfer_limit": per_transfer_limit,
            "period_limit": period_limit,
            "period_seconds": period_seconds,
        }
        return self.hierarchy.set_delegate_limits(
            self.sign(self.manager, "set_delegate_limits", fields),
            MERCHANT_ID, ASSET, account, per_transfer_limit, period_limit, period_seconds,
        )

    def delegate_locator(self, account):
        locator, _ = self.hierarchy.locate(RecordType.USER_DELEGATE, (MERCHANT_ID, ASSET, account))
        return locator

    def debit(self, amount, source="user-usdc", destination="merchant-usdc", debitor=None, asset=ASSET):
        debitor = debitor or self.debitor
        fields = {
            "merchant_id": MERCHANT_ID,
            "asset": asset,
            "user_source_account": source,
            "destination_account": destination,
            "amount": amount,
        }
        request = DebitRequest(debitor=self.sign(debitor, "debit_user", fields), **fields)
        return self.orchestrator.debit_user(request)

    def setup_funded_delegate(self, balance=5_000, **limits):
        """Platform, manager, debitor, destination, funded user account with an approved delegate."""
        self.initialize()
        self.set_manager()
        self.set_debitor()
        self.ledger.open_account(ASSET, self.user.identity, account_id="user-usdc")
        self.ledger.open_account(ASSET, self.manager.identity, account_id="merchant-usdc")
        self.ledger.deposit("user-usdc", balance)
        self.set_destination("merchant-usdc")
        self.set_delegate("user-usdc", **limits)
        self.ledger.approve("user-usdc", self.user.identity, self.delegate_locator("user-usdc"), 10**12)


@pytest.fixture
def harness():
    return Harness()
