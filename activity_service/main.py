# activity_service/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from activity_service.api import deps
from activity_service.api.v1.api import api_router
from activity_service.core.config import settings
from activity_service.core.exceptions import ActivityServiceError
from activity_service.core.limiter import limiter
from activity_service.db.session import SessionLocal

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if settings.SEED_CATEGORIES_ON_STARTUP:
        db = SessionLocal()
        try:
            deps.get_lifecycle_service().initialize_categories(db)
        finally:
            db.close()
    yield
    logger.info("Application shutting down...")


app = FastAPI(
    title="Activity Lifecycle Service",
    version="1.0.0",
    description="""
        Activity publishing and capacity-limited enrollment.

        ## Features

        * **Activities**: Create, update, cancel and change the status of activities
        * **Automatic status**: Statuses follow the registration deadline, start and end times
        * **Enrollment**: Join and leave activities under a hard participant limit
        * **Administration**: Admin overrides and hard delete

        ## Authentication

        Mutating endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ActivityServiceError)
async def activity_service_error_handler(request: Request, exc: ActivityServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Activity Lifecycle Service is running"}
