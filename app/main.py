from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.config import settings
from app.database import init_db, close_db, init_redis, close_redis, async_session_maker
from app.services.auth_service import UserService
from app.services.exceptions import NotFoundError, ConflictError, ValidationError, StatusTransitionError
from app.api.v1 import (
    auth, users, vehicles, customers, drivers, reservations, maintenance, spares,
    expenses, documents, notifications, dashboard, backups, websocket,
)
from app.api.v1 import settings as settings_routes
import logging

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

async def ensure_default_admin():
    if not (settings.DEFAULT_ADMIN_USERNAME and settings.DEFAULT_ADMIN_PASSWORD):
        return
    async with async_session_maker() as session:
        admin = await UserService(session).ensure_admin(
            settings.DEFAULT_ADMIN_USERNAME, settings.DEFAULT_ADMIN_PASSWORD
        )
        if admin:
            logger.info(f"Created default administrator {admin.username}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    # Startup
    logger.info("Starting up...")
    await init_db()
    try:
        await init_redis()
    except Exception as e:
        logger.error(f"Redis unavailable, backup status will not be shared: {e}")
    await ensure_default_admin()
    yield
    # Shutdown
    logger.info("Shutting down...")
    await close_redis()
    await close_db()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})

@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    logger.info(f"Conflict on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=409,
        content={"detail": exc.message, "conflicts": exc.conflicts}
    )

@app.exception_handler(ValidationError)
@app.exception_handler(StatusTransitionError)
async def bad_request_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

# Health check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }

# Include routers
for module in (
    auth, users, vehicles, customers, drivers, reservations, maintenance, spares,
    expenses, documents, notifications, settings_routes, dashboard, backups,
):
    app.include_router(module.router, prefix=settings.API_V1_PREFIX)
app.include_router(websocket.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
