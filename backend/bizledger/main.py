import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bizledger.core.config import settings
from bizledger.core.database import Database, SessionLocal, init_db
from bizledger.core.errors import AuthenticationFailure, LedgerError
from bizledger.core.logging_config import configure_logging
from bizledger.routes.auth import router as auth_router
from bizledger.routes.customers import router as customers_router
from bizledger.routes.health import router as health_router
from bizledger.routes.invoices import router as invoices_router
from bizledger.routes.notifications import router as notifications_router
from bizledger.routes.reports import router as reports_router
from bizledger.services.seed import ensure_bootstrap_admin


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    with SessionLocal() as session:
        ensure_bootstrap_admin(Database(session), settings.bootstrap_admin_username, settings.bootstrap_admin_password)
    logger.info("bizledger started (env=%s)", settings.env)
    yield


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationFailure) else None
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


def create_app() -> FastAPI:
    app = FastAPI(title="bizledger API", version="0.1.0", lifespan=lifespan)

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(customers_router, prefix="/customers", tags=["customers"])
    app.include_router(invoices_router, prefix="/invoices", tags=["invoices"])
    app.include_router(reports_router, prefix="/reports", tags=["reports"])
    app.include_router(notifications_router, prefix="/notifications", tags=["notifications"])

    return app


app = create_app()
