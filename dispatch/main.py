import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .context import DispatchContext
from .database import Base, SessionLocal
from .domain.availability.router import router as availability_router
from .domain.billing.router import router as billing_router
from .domain.missions.router import router as missions_router
from .domain.technicians.router import router as users_router
from .domain.vehicles.router import router as vehicles_router
from .routes.email import router as email_router
from .routes.geocoding import router as geocoding_router
from .routes.validation import router as validation_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(context: Optional[DispatchContext] = None, create_tables: bool = True) -> FastAPI:
    """
    Build the API around a dispatch context.

    When no context is given one is built from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        ctx = context or DispatchContext.from_config(SessionLocal)
        app.state.context = ctx

        if create_tables:
            try:
                Base.metadata.create_all(bind=ctx.session_factory.kw["bind"], checkfirst=True)
                logger.info("Database tables created successfully")
            except Exception as e:
                # Ignore "already exists" errors from race conditions between workers
                if "already exists" in str(e):
                    logger.info("Database tables already exist (created by another worker)")
                else:
                    logger.error(f"Failed to create database tables: {e}")
                    raise

        await ctx.start()
        yield
        logger.info("Application shutting down...")
        ctx.stop()
        await ctx.invalidator.drain()

    app = FastAPI(title="Esil-events Dispatch API", version="1.0.0", lifespan=lifespan)
    if context is not None:
        app.state.context = context

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={"detail": [_flatten_error(error) for error in exc.errors()]},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(missions_router)
    app.include_router(availability_router)
    app.include_router(users_router)
    app.include_router(billing_router)
    app.include_router(vehicles_router)
    app.include_router(email_router)
    app.include_router(geocoding_router)
    app.include_router(validation_router)

    @app.get("/health")
    async def health(request: Request):
        ctx: DispatchContext = request.app.state.context
        missions = ctx.missions_store.get_snapshot()
        admin = ctx.admin_store.get_snapshot()
        return {
            "status": "ok",
            "realtime": {
                "backend": type(ctx.feed).__name__,
                "subscribed": ctx.invalidator.is_subscribed,
            },
            "missions_store": {
                "count": len(missions.missions),
                "loading": missions.loading,
                "error": missions.error,
                "last_sync": missions.last_sync.isoformat() if missions.last_sync else None,
            },
            "admin_store": {
                "missions": len(admin.missions),
                "technicians": len(admin.technicians),
                "billings": len(admin.billings),
                "last_sync": admin.last_sync.isoformat() if admin.last_sync else None,
            },
        }

    return app


def _flatten_error(error: dict) -> dict:
    """Keep only the JSON-safe parts of a pydantic error"""
    return {
        "loc": [str(part) for part in error.get("loc", ())],
        "msg": str(error.get("msg", "")),
        "type": error.get("type"),
    }


app = create_app()
