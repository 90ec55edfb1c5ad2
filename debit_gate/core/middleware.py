from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import hashlib
from debit_gate.core.audit import audit_repo
from debit_gate.schemas.audit import AuditLogEntry, AuditStatus
import logging
from typing import Callable

logger = logging.getLogger(__name__)

# First matching path fragment wins
ACTION_TYPES = [
    ("/platform/initialize", "INITIALIZE"),
    ("/platform/admin", "TRANSFER_AUTHORITY"),
    ("/manager", "SET_MANAGER"),
    ("/debitors", "SET_DEBITOR"),
    ("/destinations", "SET_DESTINATION"),
    ("/delegates", "SET_DELEGATE"),
    ("/debits", "DEBIT"),
    ("/records/close", "CLOSE_RECORD"),
    ("/accounts", "ACCOUNT"),
    ("/health", "HEALTH_CHECK"),
]


def action_type_for(method: str, endpoint: str) -> str:
    if method == "GET":
        return "HEALTH_CHECK" if endpoint.startswith("/health") else "READ"
    for fragment, action in ACTION_TYPES:
        if fragment in endpoint:
            return action
    return "UNKNOWN"


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        # 1. Capture Request Details
        endpoint = request.url.path
        method = request.method
        action_type = action_type_for(method, endpoint)
        actor = request.headers.get("X-Actor") or "ANONYMOUS"

        # 2. Capture & Hash Input (the body stays readable downstream)
        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()

        # 3. Process Request
        response = None
        status = AuditStatus.FAILURE
        status_code = None
        output_hash = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            # 4. Capture & Hash Output
            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            # Reconstruct response
            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            # 5. Log Event
            try:
                entry = AuditLogEntry(
                    endpoint=endpoint,
                    method=method,
                    action_type=action_type,
                    actor=actor,
                    status_code=status_code,
                    input_hash=input_hash,
                    output_hash=output_hash,
                    status=status
                )
                audit_repo.save(entry)
            except Exception as log_error:
                logger.error(f"Audit Logging Failed: {log_error}")

        return response
