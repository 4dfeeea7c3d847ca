"""FastAPI application factory for PairPlus."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from pairplus.common.config import get_settings
from pairplus.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from pairplus.deps import get_db, get_store
        db = None
        if settings.store_backend == "sql":
            db = get_db()
            await db.init()
            await db.create_all()
        get_store()
        yield
        # Shutdown
        if db is not None:
            await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from pairplus.verification.router import router as verification_router
    from pairplus.pairs.router import router as trigger_router

    prefix = settings.api_prefix
    app.include_router(verification_router, prefix=prefix, tags=["verification"])
    app.include_router(trigger_router, prefix=prefix, tags=["triggers"])

    return app
