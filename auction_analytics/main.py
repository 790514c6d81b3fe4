# main.py
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auction_analytics.api import bid_history
from auction_analytics.core.config import settings
from auction_analytics.core.database import close_db
from auction_analytics.core.redis import redis_client

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown events for FastAPI application.
    """
    # Redis only backs the profile cache; run without it if it is down
    try:
        await redis_client.connect()
        if await redis_client.ping():
            logger.info("✓ Redis connected")
        else:
            logger.warning("⚠ Redis not reachable, user profile cache disabled")
            await redis_client.disconnect()
    except Exception as e:
        logger.warning(f"⚠ Redis connection failed: {e}")

    logger.info("✓ Application started")
    yield

    try:
        await redis_client.disconnect()
        logger.info("✓ Redis disconnected")
    except Exception as e:
        logger.warning(f"⚠ Redis disconnect failed: {e}")

    await close_db()
    logger.info("✓ Application shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    description="Auction bid history, statistics and trend analysis",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(bid_history.router, prefix="/api", tags=["Bid History"])


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to log and return detailed errors"""
    logger.error(f"Unhandled exception: {exc}")
    logger.error(f"Request: {request.method} {request.url}")
    logger.error(f"Traceback: {traceback.format_exc()}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "traceback": traceback.format_exc().split("\n") if app.debug else None,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with detailed info"""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception objects that JSONResponse cannot serialize
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    redis_status = await redis_client.ping()

    return {
        "status": "healthy",
        "redis": "connected" if redis_status else "disconnected",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("auction_analytics.main:app", host="0.0.0.0", port=8000, reload=True)
