from typing import Any, Dict
import logging
from debit_gate.core.clock import HostClock
from debit_gate.core.errors import MintMismatch, RecordNotFound, Unauthorized
from debit_gate.core.hierarchy import PermissionHierarchy
from debit_gate.core.ledger import ValueTransfer
from debit_gate.core.notifications import NotificationSink
from debit_gate.core.quota import admit_debit
from debit_gate.schemas.events import EventType, Notification
from debit_gate.schemas.records import RecordType
from debit_gate.schemas.requests import DebitReceipt, DebitRequest

logger = logging.getLogger(__name__)


def debit_signing_fields(request: DebitRequest) -> Dict[str, Any]:
    return {
        "merchant_id": request.merchant_id,
        "asset": request.asset,
        "user_source_account": request.user_source_account,
        "destination_account": request.destination_account,
        "amount": request.amount,
    }


class TransferOrchestrator:
    """
    Ties the authority chain and quota admission to one value movement.

    The whole debit runs inside the database's atomic block: if the ledger
    refuses the move after the quota was admitted, the delegate record goes
    back to what it was along with everything else.
    """

    def __init__(self, hierarchy: PermissionHierarchy, ledger: ValueTransfer, clock: HostClock, sink: NotificationSink):
        self.hierarchy = hierarchy
        self.ledger = ledger
        self.clock = clock
        self.sink = sink

    @property
    def database(self):
        return self.hierarchy.database

    def debit_user(self, request: DebitRequest) -> DebitReceipt:
        merchant_id, asset = request.merchant_id, request.asset
        with self.database.atomic():
            # 1. Debitor must prove itself and be on the merchant's allowlist
            debitor = request.debitor.identity
            debitor_record = self.hierarchy.get_debitor(merchant_id, asset, debitor)
            if debitor_record is None or not debitor_record.allowed:
                logger.warning(f"Debitor {debitor} not allowed for merchant {merchant_id} on {asset}")
                raise Unauthorized(f"Debitor is not allowed for merchant {merchant_id}")
            self.hierarchy.authenticate(request.debitor, "debit_user", debit_signing_fields(request))

            # 2. Destination must be allowlisted by the platform admin
            destination_record = self.hierarchy.get_destination(merchant_id, asset, request.destination_account)
            if destination_record is None or not destination_record.allowed:
                logger.warning(f"Destination {request.destination_account} not allowed for merchant {merchant_id}")
                raise Unauthorized(f"Destination is not allowed for merchant {merchant_id}")

            # 3. Delegate carrying the user's limits
            delegate_key, _ = self.hierarchy.locate(
                RecordType.USER_DELEGATE, (merchant_id, asset, request.user_source_account)
            )
            delegate = self.database.store.get(delegate_key)
            if delegate is None:
                raise RecordNotFound(f"No delegate for {request.user_source_account} at merchant {merchant_id}")

            # 4. Both accounts must hold the asset being debited
            source_asset = self.ledger.asset_of(request.user_source_account)
            destination_asset = self.ledger.asset_of(request.destination_account)
            if source_asset != destination_asset or source_asset != asset:
                raise MintMismatch(
                    f"Source holds {source_asset}, destination holds {destination_asset}, debit is in {asset}"
                )

            # 5. Quota admission
            now = self.clock.now()
            admit_debit(delegate, request.amount, now.timestamp, now.ordinal)
            self.database.store.upsert(delegate_key, delegate)

            # 6. Move the funds with the delegate as authority
            self.ledger.move(
                asset, request.amount, request.user_source_account, request.destination_account,
                authorized_by=delegate_key,
            )

            receipt = DebitReceipt(
                merchant_id=merchant_id,
                asset=asset,
                debitor=debitor,
                user_source_account=request.user_source_account,
                destination_account=request.destination_account,
                amount=request.amount,
                delegate_locator=delegate_key,
                timestamp=now.timestamp,
                ordinal=now.ordinal,
                period_accumulated=delegate.period_accumulated,
            )

            # 7. Completed notification
            self.sink.emit(Notification(
                event_type=EventType.USER_DEBITED,
                scope={
                    "merchant_id": merchant_id,
                    "asset": asset,
                    "debitor": debitor,
                    "user_delegate": delegate_key,
                    "user_source_account": request.user_source_account,
                    "destination_account": request.destination_account,
                },
                new_state={"amount": request.amount, "period_accumulated": delegate.period_accumulated},
            ))
            logger.info(
                f"Debited {request.amount} {asset} from {request.user_source_account} "
                f"to {request.destination_account} for merchant {merchant_id}"
            )
            return receipt
