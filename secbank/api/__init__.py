"""
SecBank API Application Factory

Thin FastAPI adapter over the posting engine and registries. Every response
is shaped ``{"success": bool, "data": ..., "error": {"code", "message"}}``.
"""

from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .customers import router as customers_router
from .branches import router as branches_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .instapay import router as instapay_router
from .. import __version__
from ..config import get_config
from ..exceptions import BankingError
from ..logging_config import get_logger, log_action, setup_logging
from ..system import BankingSystem


logger = get_logger("secbank.api")

STATUS_CODES = {
    "VALIDATION_ERROR": 400,
    "INSUFFICIENT_BALANCE": 400,
    "ACCOUNT_CLOSED": 400,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "GENERATION_EXHAUSTED": 503,
    "STORAGE_ERROR": 503,
}


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="SecBank Core API",
        description="Deposit accounts, postings and Instapay transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.system = system or BankingSystem()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        status_code = STATUS_CODES.get(exc.code, 400)
        if status_code >= 500:
            log_action(logger, "error", exc.message, action="http_error",
                       resource=request.url.path, extra={"code": exc.code})
        return JSONResponse(status_code=status_code, content={"success": False, "error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": {"code": "VALIDATION_ERROR", "message": message}}
        )

    app.include_router(customers_router, prefix="/customers", tags=["Customers"])
    app.include_router(branches_router, prefix="/branches", tags=["Branches"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    app.include_router(instapay_router, prefix="/instapay", tags=["Instapay"])

    @app.get("/health")
    def health_check(request: Request):
        """Health check endpoint"""
        storage_ok = request.app.state.system.storage.health_check()
        return JSONResponse(
            status_code=200 if storage_ok else 503,
            content={
                "status": "healthy" if storage_ok else "unhealthy",
                "service": "secbank_core",
                "version": __version__,
                "storage": storage_ok,
            }
        )

    @app.get("/")
    def get_api_info():
        """Get API information"""
        return {
            "name": "SecBank Core API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "customers": "/customers",
                "branches": "/branches",
                "accounts": "/accounts",
                "transactions": "/transactions",
                "instapay": "/instapay",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the API server with configuration from the environment"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    system = BankingSystem(config)

    uvicorn.run(
        create_app(system),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level="debug" if debug else "info"
    )
