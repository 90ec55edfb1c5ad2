"""
Permission hierarchy: platform admin -> merchant manager -> debitor and
destination allowlists -> per-user delegate limits.

Every mutation runs the same sequence: derive (and optionally check) the
record locator, walk the authority chain for the caller's proof, read the
current record or its default, write the new one back, and emit a
notification carrying the before and after state.
"""

from typing import Any, Dict, Optional, Sequence, Tuple
import logging
from debit_gate.core.errors import AlreadyInitialized, InvalidRecordReference, MintMismatch, RecordNotFound, Unauthorized
from debit_gate.core.locator import RecordLocator, ScopeField
from debit_gate.core.notifications import NotificationSink
from debit_gate.core.proofs import ProofVerifier
from debit_gate.core.quota import reset_quota_state
from debit_gate.db.session import Database
from debit_gate.schemas.events import EventType, Notification
from debit_gate.schemas.proofs import Proof, normalize_identity
from debit_gate.schemas.records import (
    DebitorRecord, DelegateRecord, DestinationRecord, MerchantManagerRecord, PermissionRecord,
    PlatformAuthority, RecordType,
)
from debit_gate.schemas.requests import AuthorityTransferRequest

logger = logging.getLogger(__name__)


def _state(record: Optional[PermissionRecord]) -> Optional[Dict[str, Any]]:
    return record.model_dump(mode="json") if record is not None else None


class PermissionHierarchy:
    def __init__(
        self,
        database: Database,
        locator: RecordLocator,
        verifier: ProofVerifier,
        sink: NotificationSink,
        bootstrap_identity: Optional[str] = None,
    ):
        self.database = database
        self.locator = locator
        self.verifier = verifier
        self.sink = sink
        self.bootstrap_identity = normalize_identity(bootstrap_identity) if bootstrap_identity else None

    @property
    def store(self):
        return self.database.store

    # Locators

    def locate(self, record_type: RecordType, scope: Sequence[ScopeField], supplied: Optional[str] = None) -> Tuple[str, int]:
        if supplied is not None:
            return supplied, self.locator.validate(record_type, scope, supplied)
        return self.locator.derive(record_type, scope)

    def _read(self, record_type: RecordType, scope: Sequence[ScopeField]) -> Optional[PermissionRecord]:
        locator, _ = self.locator.derive(record_type, scope)
        return self.store.get(locator)

    # Authority lookups, composed in sequence by each operation

    def authenticate(self, proof: Optional[Proof], operation: str, fields: Dict[str, Any]) -> str:
        if proof is None:
            raise Unauthorized(f"{operation} requires a proof")
        if not self.verifier.verify(proof, operation, fields):
            raise Unauthorized(f"Proof from {proof.identity} rejected for {operation}")
        return proof.identity

    def require_platform_admin(self, proof: Optional[Proof], operation: str, fields: Dict[str, Any]) -> PlatformAuthority:
        authority = self.get_platform_authority()
        if authority is None:
            raise Unauthorized("Platform is not initialized")
        if proof is None or proof.identity != authority.admin_identity:
            raise Unauthorized(f"{operation} requires the platform admin")
        self.authenticate(proof, operation, fields)
        return authority

    def require_merchant_manager(
        self, proof: Optional[Proof], merchant_id: int, operation: str, fields: Dict[str, Any]
    ) -> MerchantManagerRecord:
        manager = self.get_merchant_manager(merchant_id)
        if manager is None:
            raise Unauthorized(f"Merchant {merchant_id} has no manager")
        if proof is None or proof.identity != manager.manager_identity:
            raise Unauthorized(f"{operation} requires the manager of merchant {merchant_id}")
        self.authenticate(proof, operation, fields)
        return manager

    # Reads

    def get_platform_authority(self) -> Optional[PlatformAuthority]:
        return self._read(RecordType.PLATFORM_AUTHORITY, ())

    def get_merchant_manager(self, merchant_id: int) -> Optional[MerchantManagerRecord]:
        return self._read(RecordType.MERCHANT_MANAGER, (merchant_id,))

    def get_debitor(self, merchant_id: int, asset: str, debitor_identity: str) -> Optional[DebitorRecord]:
        return self._read(RecordType.MERCHANT_DEBITOR, (merchant_id, asset, debitor_identity))

    def get_destination(self, merchant_id: int, asset: str, destination_account: str) -> Optional[DestinationRecord]:
        return self._read(RecordType.MERCHANT_DESTINATION, (merchant_id, asset, destination_account))

    def get_delegate(self, merchant_id: int, asset: str, user_source_account: str) -> Optional[DelegateRecord]:
        return self._read(RecordType.USER_DELEGATE, (merchant_id, asset, user_source_account))

    # Mutations

    def _notify(self, event_type: EventType, scope: Dict[str, Any], previous, current):
        self.sink.emit(Notification(
            event_type=event_type,
            scope=scope,
            previous_state=_state(previous),
            new_state=_state(current),
        ))

    def initialize(self, admin_proof: Optional[Proof]) -> PlatformAuthority:
        """Creates the platform authority singleton with the proving identity as admin."""
        with self.database.atomic():
            locator, bump = self.locate(RecordType.PLATFORM_AUTHORITY, ())
            if self.store.get(locator) is not None:
                raise AlreadyInitialized("Platform authority already exists")
            if self.bootstrap_identity and (admin_proof is None or admin_proof.identity != self.bootstrap_identity):
                raise Unauthorized("Only the bootstrap identity may initialize the platform")
            admin = self.authenticate(admin_proof, "initialize", {})

            authority = PlatformAuthority(admin_identity=admin, bump=bump)
            self.store.upsert(locator, authority)
            self._notify(EventType.PLATFORM_INITIALIZED, {"locator": locator}, None, authority)
            logger.info(f"Platform initialized with admin {admin}")
            return authority

    def transfer_platform_authority(self, request: AuthorityTransferRequest) -> str:
        """Hands the admin role over. Returns the previous admin identity."""
        with self.database.atomic():
            if request.current_admin is None or request.new_admin is None:
                raise Unauthorized("Admin transfer requires proofs from both the current and the new admin")
            fields = {
                "current_admin_identity": request.current_admin.identity,
                "new_admin_identity": request.new_admin.identity,
            }
            authority = self.require_platform_admin(request.current_admin, "transfer_platform_authority", fields)
            self.authenticate(request.new_admin, "transfer_platform_authority", fields)

            locator, bump = self.locate(RecordType.PLATFORM_AUTHORITY, ())
            previous = authority.model_copy()
            authority.admin_identity = request.new_admin.identity
            authority.bump = bump
            self.store.upsert(locator, authority)
            self._notify(EventType.ADMIN_UPDATED, {"locator": locator}, previous, authority)
            logger.info(f"Platform admin changed from {previous.admin_identity} to {authority.admin_identity}")
            return previous.admin_identity

    def set_merchant_manager(
        self, admin_proof: Optional[Proof], merchant_id: int, manager_identity: str, locator: Optional[str] = None
    ) -> Optional[str]:
        """Upserts the merchant's manager. Returns the previous manager identity, if any."""
        manager_identity = normalize_identity(manager_identity)
        with self.database.atomic():
            key, bump = self.locate(RecordType.MERCHANT_MANAGER, (merchant_id,), locator)
            self.require_platform_admin(
                admin_proof, "set_merchant_manager",
                {"merchant_id": merchant_id, "manager_identity": manager_identity},
            )

            previous = self.store.get(key)
            record = MerchantManagerRecord(manager_identity=manager_identity, bump=bump)
            self.store.upsert(key, record)
            self._notify(
                EventType.MERCHANT_MANAGER_ADDED_OR_UPDATED,
                {"merchant_id": merchant_id, "locator": key}, previous, record,
            )
            logger.info(f"Merchant {merchant_id} manager set to {manager_identity}")
            return previous.manager_identity if previous is not None else None

    def set_debitor_allowed(
        self,
        manager_proof: Optional[Proof],
        merchant_id: int,
        asset: str,
        debitor_identity: str,
        allowed: bool,
        locator: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Allows or revokes a debitor. The debitor itself signs nothing, so a
        manager can revoke one that has gone rogue.
        """
        debitor_identity = normalize_identity(debitor_identity)
        with self.database.atomic():
            key, bump = self.locate(RecordType.MERCHANT_DEBITOR, (merchant_id, asset, debitor_identity), locator)
            self.require_merchant_manager(
                manager_proof, merchant_id, "set_debitor_allowed",
                {"merchant_id": merchant_id, "asset": asset, "debitor_identity": debitor_identity, "allowed": allowed},
            )

            previous = self.store.get(key)
            record = previous.model_copy() if previous is not None else DebitorRecord()
            record.allowed = allowed
            record.bump = bump
            self.store.upsert(key, record)
            self._notify(
                EventType.MERCHANT_DEBITOR_ADDED_OR_UPDATED,
                {"merchant_id": merchant_id, "asset": asset, "debitor": debitor_identity, "locator": key},
                previous, record,
            )
            logger.info(f"Merchant {merchant_id} debitor {debitor_identity} on {asset} allowed={allowed}")
            return previous.allowed if previous is not None else None

    def set_destination_allowed(
        self,
        admin_proof: Optional[Proof],
        merchant_id: int,
        asset: str,
        destination_account: str,
        allowed: bool,
        locator: Optional[str] = None,
    ) -> Optional[bool]:
        with self.database.atomic():
            key, bump = self.locate(
                RecordType.MERCHANT_DESTINATION, (merchant_id, asset, destination_account), locator
            )
            self.require_platform_admin(
                admin_proof, "set_destination_allowed",
                {"merchant_id": merchant_id, "asset": asset, "destination_account": destination_account, "allowed": allowed},
            )

            # The account must exist and hold the asset it is allowlisted for
            held = self.database.ledger.asset_of(destination_account)
            if held != asset:
                raise MintMismatch(f"Destination {destination_account} holds {held}, not {asset}")

            previous = self.store.get(key)
            record = previous.model_copy() if previous is not None else DestinationRecord()
            record.allowed = allowed
            record.bump = bump
            self.store.upsert(key, record)
            self._notify(
                EventType.MERCHANT_DESTINATION_ADDED_OR_UPDATED,
                {"merchant_id": merchant_id, "asset": asset, "destination": destination_account, "locator": key},
                previous, record,
            )
            logger.info(f"Merchant {merchant_id} destination {destination_account} on {asset} allowed={allowed}")
            return previous.allowed if previous is not None else None

    def set_delegate_limits(
        self,
        manager_proof: Optional[Proof],
        merchant_id: int,
        asset: str,
        user_source_account: str,
        per_transfer_limit: int,
        period_limit: int,
        period_seconds: int,
        locator: Optional[str] = None,
    ) -> Optional[DelegateRecord]:
        """
        Configures a delegate's limits. Any reconfiguration also restarts the
        quota sub-state, so usage never carries over across limit changes.
        Returns the record as it was before, if it existed.
        """
        with self.database.atomic():
            key, bump = self.locate(RecordType.USER_DELEGATE, (merchant_id, asset, user_source_account), locator)
            self.require_merchant_manager(
                manager_proof, merchant_id, "set_delegate_limits",
                {
                    "merchant_id": merchant_id,
                    "asset": asset,
                    "user_source_account": user_source_account,
                    "per_transfer_limit": per_transfer_limit,
                    "period_limit": period_limit,
                    "period_seconds": period_seconds,
                },
            )

            previous = self.store.get(key)
            record = DelegateRecord(
                per_transfer_limit=per_transfer_limit,
                period_limit=period_limit,
                period_seconds=period_seconds,
                bump=bump,
            )
            reset_quota_state(record)
            self.store.upsert(key, record)
            self._notify(
                EventType.USER_DELEGATE_ADDED_OR_UPDATED,
                {"merchant_id": merchant_id, "asset": asset, "user_source_account": user_source_account, "locator": key},
                previous, record,
            )
            logger.info(
                f"Merchant {merchant_id} delegate for {user_source_account} on {asset}: "
                f"per_transfer={per_transfer_limit} period={period_limit}/{period_seconds}s"
            )
            return previous

    def close_record(
        self, admin_proof: Optional[Proof], record_type: RecordType, scope: Sequence[ScopeField], locator: str
    ) -> PermissionRecord:
        """Removes a record outright. The platform authority can never be closed."""
        with self.database.atomic():
            if record_type == RecordType.PLATFORM_AUTHORITY:
                raise InvalidRecordReference("The platform authority record cannot be closed")
            key, _ = self.locate(record_type, scope, locator)
            authority_key, _ = self.locate(RecordType.PLATFORM_AUTHORITY, ())
            if key == authority_key:
                raise InvalidRecordReference("The platform authority record cannot be closed")
            self.require_platform_admin(
                admin_proof, "close_record",
                {"record_type": record_type.value, "scope": list(scope), "locator": locator},
            )

            previous = self.store.get(key)
            if previous is None:
                raise RecordNotFound(f"No {record_type.value} record at {key}")
            self.store.delete(key)
            self._notify(
                EventType.RECORD_CLOSED,
                {"record_type": record_type.value, "scope": list(scope), "locator": key},
                previous, None,
            )
            logger.info(f"Closed {record_type.value} record {key}")
            return previous
