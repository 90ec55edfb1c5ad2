from fastapi import APIRouter, Body
from debit_gate.core import gate
from debit_gate.schemas.requests import CloseRecordRequest

router = APIRouter()

@router.post("/records/close")
async def close_record(request: CloseRecordRequest = Body(...)):
    previous = gate.hierarchy.close_record(request.admin, request.record_type, request.scope, request.locator)
    return {"status": "success", "locator": request.locator, "previous": previous.model_dump(mode="json")}
