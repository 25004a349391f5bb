# portfolio_ledger/api/main.py

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
import uvicorn
import logging
from decimal import getcontext

from portfolio_ledger.api.v1.router import router as v1_router
from portfolio_ledger.core.config.settings import settings
from portfolio_ledger.core.exceptions import (
    ConsumedLotError,
    LedgerError,
    LotConflictError,
    LotNotFoundError,
    LotValidationError,
    ReconciliationError,
    StorageError,
)
from portfolio_ledger.core.models.response import ErrorResponse

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(settings.APP_NAME)

# Set global Decimal precision at application startup
getcontext().prec = settings.DECIMAL_PRECISION

ERROR_STATUS_CODES = {
    LotValidationError: 400,
    LotNotFoundError: 404,
    ConsumedLotError: 409,
    LotConflictError: 409,
    ReconciliationError: 422,
    StorageError: 503,
}

# Create FastAPI app instance
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG_MODE,
    description="API for a crypto portfolio cost-basis ledger (LOFO) and portfolio snapshots."
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Translates rejected ledger operations into {error, message, details} bodies."""
    status_code = 400
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    logger.warning(f"{request.method} {request.url.path} rejected ({exc.error_code}): {exc.message}")
    body = ErrorResponse(error=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Include API routers
app.include_router(v1_router, prefix=settings.API_V1_STR)

@app.get("/", include_in_schema=False)
async def root():
    """Redirects to the API documentation."""
    return RedirectResponse(url="/docs")

# Entry point for running with Uvicorn directly (for development)
if __name__ == "__main__":
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} in {'DEBUG' if settings.DEBUG_MODE else 'PRODUCTION'} mode...")
    uvicorn.run(
        "portfolio_ledger.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG_MODE,
        log_level=settings.LOG_LEVEL.lower()
    )
