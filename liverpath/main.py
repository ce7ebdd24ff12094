import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .dependencies import Services, build_default_services
from .exceptions import LiverPathError, domain_exception_handler, http_exception_handler
from .routers import analysis_router, auth_router, history_router
from .schemas.common.common import HealthResponse

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME}...")
    if app.state.create_tables:
        from .database import create_db_and_tables
        try:
            create_db_and_tables()
            logger.info("Database initialized successfully")
        except Exception:
            # Reported through StorageUnavailableError on first use
            logger.exception("Database initialization failed")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
    )
    app.state.create_tables = services is None and settings.STORE_BACKEND != "memory"
    app.state.services = services or build_default_services()

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(LiverPathError, domain_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)
    app.include_router(analysis_router.router)
    app.include_router(history_router.router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(
            status="ok",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            store_backend=type(app.state.services.store).__name__,
        )

    return app


app = create_app()
