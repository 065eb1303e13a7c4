import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cia_api.config import settings
from cia_api.core.deps import close_facade
from cia_api.core.errors import (
    CascadeFailed,
    CiaError,
    ConcurrentUpdateExceeded,
    NotFound,
    StoreUnavailable,
    ValidationFailed,
)
from cia_api.routers import brands, campaigns, clients, consumers, dashboard, rewards, surveys

logger = logging.getLogger(__name__)

app = FastAPI(
    title="CIA Insights API",
    description="Entity graph API for the Consumer Insights admin platform",
    version="1.0.0",
)

# Startup info
_db_host = settings.database_url.split("@")[1].split("/")[0] if "@" in settings.database_url else "default"
logger.info(f"Environment: {settings.env}")
logger.info(f"Store backend: {settings.store_backend} (database host: {_db_host})")
logger.info(f"CORS allowed origins: {settings.cors_origins}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])
app.include_router(brands.router, prefix="/api/brands", tags=["brands"])
app.include_router(campaigns.router, prefix="/api/campaigns", tags=["campaigns"])
app.include_router(surveys.router, prefix="/api/surveys", tags=["surveys"])
app.include_router(rewards.router, prefix="/api/rewards", tags=["rewards"])
app.include_router(consumers.router, prefix="/api/consumers", tags=["consumers"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])


# Domain error -> HTTP status. Checked in order; first match wins.
_ERROR_STATUS: list[tuple[type[CiaError], int]] = [
    (NotFound, 404),
    (ValidationFailed, 422),
    (ConcurrentUpdateExceeded, 409),
    (CascadeFailed, 503),
    (StoreUnavailable, 503),
]


def status_for(exc: CiaError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


@app.exception_handler(CiaError)
async def cia_error_handler(request: Request, exc: CiaError):
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} -> {status}: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Body validation failures share the ValidationFailed shape."""
    issues = [
        {
            "loc": ".".join(str(p) for p in err["loc"] if p != "body"),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    parts = request.url.path.strip("/").split("/")
    collection = parts[1] if len(parts) > 1 and parts[0] == "api" else None
    first = issues[0] if issues else {"loc": "", "msg": "invalid payload"}
    where = f"{first['loc']}: " if first["loc"] else ""
    error = ValidationFailed(
        f"Invalid {collection or 'request'} payload ({where}{first['msg']})",
        collection,
        None,
        issues,
    )
    return JSONResponse(status_code=422, content=error.to_dict())


@app.on_event("shutdown")
async def shutdown_event():
    """Release the store's connections on server shutdown."""
    await close_facade()


@app.get("/health")
async def health():
    return {"status": "ok", "service": "cia-insights-api"}
