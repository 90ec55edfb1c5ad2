from fastapi import APIRouter, Query
from typing import List, Optional
from debit_gate.core import gate
from debit_gate.schemas.events import EventType, Notification

router = APIRouter()

@router.get("/notifications", response_model=List[Notification])
async def list_notifications(event_type: Optional[EventType] = Query(None)):
    return gate.notification_sink.get_all(event_type)
