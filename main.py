import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.database import init_db
from app.core.logging_config import setup_logging
from app.middleware.logging import LoggingMiddleware
from app.api.v1.api import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.AUTO_CREATE_TABLES:
        await init_db()
        logger.info("Database tables ensured")
    yield


# Create FastAPI app
app_config = {
    "title": "Procurement Backend",
    "description": "Staff requisitions split into per-supplier orders",
    "version": "1.0.0",
    "debug": settings.DEBUG,
}

app = FastAPI(lifespan=lifespan, **app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "message": "Procurement backend",
        "status": "active",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
    }


def run_http(host: str = "0.0.0.0", port: int = 9106):
    """Run HTTP server"""
    import uvicorn
    uvicorn.run(
        "main:app",  # Use string import
        host=host,
        port=port,
        reload=False
    )


if __name__ == "__main__":
    run_http()
