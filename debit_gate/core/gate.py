# Process-wide instances the API routers share.

from debit_gate.core.clock import SystemClock
from debit_gate.core.config import settings
from debit_gate.core.hierarchy import PermissionHierarchy
from debit_gate.core.locator import HashRecordLocator
from debit_gate.core.notifications import InMemoryNotificationSink
from debit_gate.core.orchestrator import TransferOrchestrator
from debit_gate.core.proofs import Ed25519ProofVerifier
from debit_gate.db.session import db

clock = SystemClock()
locator = HashRecordLocator()
verifier = Ed25519ProofVerifier(clock=clock)
notification_sink = InMemoryNotificationSink()

hierarchy = PermissionHierarchy(
    database=db,
    locator=locator,
    verifier=verifier,
    sink=notification_sink,
    bootstrap_identity=settings.BOOTSTRAP_IDENTITY,
)
orchestrator = TransferOrchestrator(hierarchy=hierarchy, ledger=db.ledger, clock=clock, sink=notification_sink)


def reset():
    """Drops every record, account, notification and remembered proof."""
    db.reset()
    verifier.forget()
    notification_sink.clear()
