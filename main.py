import logging

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from contextlib import asynccontextmanager

from app.core.cache import ResponseCache
from app.core.config import settings
from app.core.database import create_engine, create_session_factory
from app.core.errors import register_error_handlers
from app.core.redis_client import init_redis, close_redis
from app.api.v1.api import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("noter")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    # Note: Database tables are managed by Alembic migrations
    engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    redis_client = await init_redis(settings.REDIS_URL)

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.redis = redis_client
    app.state.cache = ResponseCache(
        redis_client,
        timeout=settings.CACHE_TIMEOUT_SECONDS,
        note_ttl=settings.NOTE_CACHE_TTL_SECONDS,
        explore_ttl=settings.EXPLORE_CACHE_TTL_SECONDS,
    )
    logger.info("Noter API started")
    yield
    # Shutdown
    await close_redis(redis_client)
    await engine.dispose()


app = FastAPI(
    title="Noter API",
    description="Notes, folders and bookmarks with public and private visibility",
    version="1.0.0",
    lifespan=lifespan
)

register_error_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware for production
if not settings.DEBUG:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts or ["*"]
    )

# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Noter API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        proxy_headers=True,  # Enable proxy headers support
        forwarded_allow_ips="*"  # Allow forwarded headers from any IP
    )
