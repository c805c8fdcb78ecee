"""
FastAPI application factory.
Creates the app with CORS and router registration for the sync trigger.
Swagger UI available at /docs, ReDoc at /redoc.
"""
import sys
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Ensure src/ is on the path
_src_dir = str(Path(__file__).parent.parent)
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic for the FastAPI app."""
    import config
    from api import helpers

    print(f"[API] Initializing sync trigger API on port {config.API_PORT}")
    if not config.SYNC_SECRET:
        print("[API] WARNING: SYNC_SECRET is not set; sync endpoints will answer 503")
    print(f"[API] Swagger UI: http://localhost:{config.API_PORT}/docs")

    yield

    helpers.reset()
    print("[API] Shutting down API server")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Sheet Order Sync API",
        description=(
            "Trigger endpoints for the spreadsheet order sync engine.\n\n"
            "**Authentication**: pass the shared secret as "
            "`Authorization: Bearer <SYNC_SECRET>` on the /sync endpoints."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Register routers
    from api.routes.sync_routes import router as sync_router
    from api.routes.health_routes import router as health_router

    app.include_router(sync_router, prefix="/sync", tags=["Sync"])
    app.include_router(health_router, prefix="/health", tags=["Health"])

    @app.get("/", tags=["Root"])
    async def root():
        """API root - redirect to docs."""
        return {
            "service": "Sheet Order Sync API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
        }

    return app
