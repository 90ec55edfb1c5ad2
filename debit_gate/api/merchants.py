from fastapi import APIRouter, Body, Path, Query
from typing import Annotated, Optional
import logging
from debit_gate.core import gate
from debit_gate.core.errors import RecordNotFound
from debit_gate.core.quota import remaining_headroom
from debit_gate.schemas.records import PermissionRecord, RecordType, U64_MAX
from debit_gate.schemas.requests import DebitorUpdate, DelegateUpdate, DestinationUpdate, ManagerUpdate, RecordUpdateResponse

router = APIRouter(prefix="/merchants/{merchant_id}")
logger = logging.getLogger(__name__)

MerchantId = Annotated[int, Path(ge=0, le=U64_MAX)]


def _updated(locator: str, previous, current: Optional[PermissionRecord]) -> RecordUpdateResponse:
    if isinstance(previous, PermissionRecord):
        previous = previous.model_dump(mode="json")
    elif previous is not None:
        previous = {"value": previous}
    return RecordUpdateResponse(
        locator=locator,
        previous=previous,
        current=current.model_dump(mode="json") if current is not None else None,
    )


def _found(record_type: RecordType, scope, record: Optional[PermissionRecord]) -> dict:
    locator, _ = gate.hierarchy.locate(record_type, scope)
    if record is None:
        raise RecordNotFound(f"No {record_type.value} record for {list(scope)}")
    return {"locator": locator, "record": record.model_dump(mode="json")}


@router.put("/manager", response_model=RecordUpdateResponse)
async def set_merchant_manager(merchant_id: MerchantId, request: ManagerUpdate = Body(...)):
    previous = gate.hierarchy.set_merchant_manager(
        request.admin, merchant_id, request.manager_identity, locator=request.locator
    )
    locator, _ = gate.hierarchy.locate(RecordType.MERCHANT_MANAGER, (merchant_id,))
    return _updated(locator, previous, gate.hierarchy.get_merchant_manager(merchant_id))


@router.get("/manager")
async def get_merchant_manager(merchant_id: MerchantId):
    return _found(RecordType.MERCHANT_MANAGER, (merchant_id,), gate.hierarchy.get_merchant_manager(merchant_id))


@router.put("/debitors", response_model=RecordUpdateResponse)
async def set_debitor_allowed(merchant_id: MerchantId, request: DebitorUpdate = Body(...)):
    previous = gate.hierarchy.set_debitor_allowed(
        request.manager, merchant_id, request.asset, request.debitor_identity, request.allowed,
        locator=request.locator,
    )
    scope = (merchant_id, request.asset, request.debitor_identity)
    locator, _ = gate.hierarchy.locate(RecordType.MERCHANT_DEBITOR, scope)
    return _updated(locator, previous, gate.hierarchy.get_debitor(*scope))


@router.get("/debitors")
async def get_debitor(merchant_id: MerchantId, asset: str = Query(...), debitor_identity: str = Query(...)):
    scope = (merchant_id, asset, debitor_identity.lower())
    return _found(RecordType.MERCHANT_DEBITOR, scope, gate.hierarchy.get_debitor(*scope))


@router.put("/destinations", response_model=RecordUpdateResponse)
async def set_destination_allowed(merchant_id: MerchantId, request: DestinationUpdate = Body(...)):
    previous = gate.hierarchy.set_destination_allowed(
        request.admin, merchant_id, request.asset, request.destination_account, request.allowed,
        locator=request.locator,
    )
    scope = (merchant_id, request.asset, request.destination_account)
    locator, _ = gate.hierarchy.locate(RecordType.MERCHANT_DESTINATION, scope)
    return _updated(locator, previous, gate.hierarchy.get_destination(*scope))


@router.get("/destinations")
async def get_destination(merchant_id: MerchantId, asset: str = Query(...), destination_account: str = Query(...)):
    scope = (merchant_id, asset, destination_account)
    return _found(RecordType.MERCHANT_DESTINATION, scope, gate.hierarchy.get_destination(*scope))


@router.put("/delegates", response_model=RecordUpdateResponse)
async def set_delegate_limits(merchant_id: MerchantId, request: DelegateUpdate = Body(...)):
    previous = gate.hierarchy.set_delegate_limits(
        request.manager, merchant_id, request.asset, request.user_source_account,
        request.per_transfer_limit, request.period_limit, request.period_seconds,
        locator=request.locator,
    )
    scope = (merchant_id, request.asset, request.user_source_account)
    locator, _ = gate.hierarchy.locate(RecordType.USER_DELEGATE, scope)
    return _updated(locator, previous, gate.hierarchy.get_delegate(*scope))


@router.get("/delegates")
async def get_delegate(merchant_id: MerchantId, asset: str = Query(...), user_source_account: str = Query(...)):
    scope = (merchant_id, asset, user_source_account)
    record = gate.hierarchy.get_delegate(*scope)
    found = _found(RecordType.USER_DELEGATE, scope, record)
    found["remaining_headroom"] = remaining_headroom(record, gate.clock.now().timestamp)
    return found
