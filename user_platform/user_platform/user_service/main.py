"""
User Service - account registration, verification, sessions and password reset
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from .config import settings
from .db import init_db
from .errors import AccountError
from .routes import general, user
from .utils.log_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Initialize database on startup"""
    init_db()
    yield


app = FastAPI(
    title="User Service",
    description="User account REST API",
    version="2.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(general.router)
app.include_router(user.router)


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError):
    logger.info(
        "%s %s -> %s %s",
        request.method, request.url.path, exc.status_code, exc.code
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())
