from fastapi import APIRouter, Body
from debit_gate.core import gate
from debit_gate.core.errors import RecordNotFound
from debit_gate.schemas.records import RecordType
from debit_gate.schemas.requests import AuthorityTransferRequest, InitializeRequest

router = APIRouter(prefix="/platform")

@router.post("/initialize")
async def initialize_platform(request: InitializeRequest = Body(...)):
    authority = gate.hierarchy.initialize(request.admin)
    locator, _ = gate.hierarchy.locate(RecordType.PLATFORM_AUTHORITY, ())
    return {"status": "success", "locator": locator, "admin_identity": authority.admin_identity}

@router.post("/admin")
async def transfer_platform_authority(request: AuthorityTransferRequest = Body(...)):
    """Both the current and the incoming admin sign the same handover payload."""
    previous_admin = gate.hierarchy.transfer_platform_authority(request)
    return {
        "status": "success",
        "previous_admin": previous_admin,
        "admin_identity": request.new_admin.identity,
    }

@router.get("")
async def get_platform_authority():
    authority = gate.hierarchy.get_platform_authority()
    if authority is None:
        raise RecordNotFound("Platform is not initialized")
    locator, _ = gate.hierarchy.locate(RecordType.PLATFORM_AUTHORITY, ())
    return {"locator": locator, "record": authority.model_dump(mode="json")}
