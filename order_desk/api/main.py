"""
FastAPI application factory.
Creates the app with CORS, the order desk on app state, and router registration.
Swagger UI available at /docs, ReDoc at /redoc.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from order_desk import __version__, config
from order_desk.desk import OrderDesk

SERVICE_NAME = "COD Order Desk API"


def build_desk() -> OrderDesk:
    """Wire the desk from configuration: file-backed history and the Gemini gateway."""
    from order_desk.extraction import ExtractionGateway
    from order_desk.history_store import HistoryStore
    from order_desk.local_store import LocalStore

    history = HistoryStore(LocalStore(config.LOCAL_STORE_FILE))
    return OrderDesk(history, ExtractionGateway(), agent_name=config.DELIVERY_AGENT_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic for the FastAPI app."""
    print(f"[API] Initializing order desk REST API on port {config.API_PORT}")

    if getattr(app.state, "desk", None) is None:
        app.state.desk = build_desk()
        print(f"[API] History loaded: {len(app.state.desk.history)} batch(es)")

    print(f"[API] Swagger UI: http://localhost:{config.API_PORT}/docs")
    print(f"[API] ReDoc: http://localhost:{config.API_PORT}/redoc")

    yield

    print("[API] Shutting down API server")


def create_app(desk: Optional[OrderDesk] = None, export_dir: Optional[str] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        desk: Pre-built desk (tests). Built from config at startup when omitted.
        export_dir: Where PDF downloads are written. Defaults to config.EXPORT_FOLDER.
    """
    app = FastAPI(
        title=SERVICE_NAME,
        description=(
            "REST API for the COD order desk - order extraction from text or "
            "screenshots, delivery tracking, daily analytics, and label/report "
            "exports.\n\n"
            "The `role` query parameter (`admin` or `agent`) only selects which "
            "orders are listed; it grants nothing."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.desk = desk
    app.state.export_dir = export_dir or config.EXPORT_FOLDER

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.API_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # Register routers
    from order_desk.api.routes.export_routes import router as export_router
    from order_desk.api.routes.extraction_routes import router as extraction_router
    from order_desk.api.routes.health_routes import router as health_router
    from order_desk.api.routes.history_routes import router as history_router
    from order_desk.api.routes.order_routes import router as order_router

    app.include_router(extraction_router, prefix="/extractions", tags=["Extraction"])
    app.include_router(order_router, prefix="/orders", tags=["Orders"])
    app.include_router(history_router, prefix="/history", tags=["History"])
    app.include_router(export_router, prefix="/exports", tags=["Exports"])
    app.include_router(health_router, prefix="/health", tags=["Health"])

    @app.get("/", tags=["Root"])
    async def root():
        """API root - service banner."""
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "docs": "/docs",
            "redoc": "/redoc",
            "health": "/health",
        }

    return app
