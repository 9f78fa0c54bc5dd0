from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from app.core.config import settings
from app.core.cache import close_redis
from app.middleware.request_logging import RequestLoggingMiddleware
from app.modules.notifications.api.router import router as notifications_router
from app.modules.notifications.exceptions import NotificationContractError
from app.modules.news_feed.api.router import router as news_feed_router
from app.modules.linked_issues.api.router import router as linked_issues_router
from app.db.init_db import create_all_tables

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("app")

# Initialize the FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    exception_handlers={
        RequestValidationError: request_validation_exception_handler,
        HTTPException: http_exception_handler,
    },
    debug=settings.DEBUG,
    description="Notifications, activity history and news feed for Kanban boards",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting server in {settings.ENVIRONMENT} mode")
    if settings.ENVIRONMENT != "production":
        create_all_tables()

@app.on_event("shutdown")
async def shutdown_event():
    close_redis()

@app.exception_handler(NotificationContractError)
async def notification_contract_handler(request: Request, exc: NotificationContractError):
    # A caller handed notify() something it cannot parse
    logger.error(f"Notification contract violation on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(notifications_router, prefix=f"{settings.API_V1_STR}/notifications", tags=["notifications"])
app.include_router(news_feed_router, prefix=f"{settings.API_V1_STR}/feed", tags=["news feed"])
app.include_router(linked_issues_router, prefix=f"{settings.API_V1_STR}/linked-issues", tags=["linked issues"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Kanban Board API",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "documentation": "/docs" if settings.DEBUG else None,
    }
