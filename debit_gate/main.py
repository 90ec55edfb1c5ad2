import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from debit_gate.core.config import settings
from debit_gate.core.errors import DebitGateError
from debit_gate.core.middleware import AuditMiddleware
from debit_gate.api import health

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(health.router)

from debit_gate.api import authority, merchants, debits, records, accounts, notifications
app.include_router(authority.router)
app.include_router(merchants.router)
app.include_router(debits.router)
app.include_router(records.router)
app.include_router(accounts.router)
app.include_router(notifications.router)

@app.exception_handler(DebitGateError)
async def debit_gate_error_handler(request: Request, exc: DebitGateError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "error": exc.code})

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
