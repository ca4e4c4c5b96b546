import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.cache.layer import CacheLayer, get_cache
from app.core.config import get_settings
from app.core.errors import CacheError, StoreError, TaskValidationError
from app.core.logging import setup_logging
from app.database import create_db_and_tables, dispose_engine
from app.models import HealthResponse, get_utc_now
from app.routers import tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)

    if settings.create_tables_on_startup:
        await create_db_and_tables()

    # One cache client per process, injected into request handlers
    app.state.cache = CacheLayer(settings)
    await app.state.cache.init_cache()
    yield
    await app.state.cache.close()
    await dispose_engine()


app = FastAPI(
    title="Task Tracker API",
    description="Task list API with PostgreSQL storage and a Redis read-through cache",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tasks.router)


@app.exception_handler(TaskValidationError)
async def validation_error_handler(request: Request, exc: TaskValidationError):
    return JSONResponse(status_code=422, content={"error": str(exc)})


@app.exception_handler(StoreError)
@app.exception_handler(CacheError)
async def backend_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(exc)}
    )


@app.get("/")
async def root():
    return {
        "message": "Welcome to Task Tracker API",
        "docs": "/docs",
        "version": "1.0.0",
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(cache: CacheLayer = Depends(get_cache)):
    # status stays "healthy" while the cache is down; reads fall back to the store
    return HealthResponse(
        timestamp=get_utc_now(),
        cache="ok" if await cache.ping() else "unavailable",
    )


def run():
    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
