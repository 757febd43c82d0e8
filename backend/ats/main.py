import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import API_PREFIX, Settings
from .db import build_engine, build_session_factory, init_db
from .handlers import register_exception_handlers
from .logger import get_logger
from .routers import candidates, documents, health
from .services import EmailService
from .storage import ObjectStorage, build_minio_client

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[ObjectStorage] = None,
    email_service: Optional[EmailService] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.engine, settings.default_recruiter_id)
        logger.info(f"ATS backend started ({settings.environment})")
        yield
        app.state.engine.dispose()

    app = FastAPI(title="ats-backend", version="1.0.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.storage = storage or ObjectStorage(
        build_minio_client(settings), settings.minio_bucket_name, settings.minio_region
    )
    app.state.email_service = email_service or EmailService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f}ms)")
        return response

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(health.router, prefix=API_PREFIX, tags=["health"])
    app.include_router(candidates.router, prefix=f"{API_PREFIX}/candidates", tags=["candidates"])
    app.include_router(documents.router, prefix=API_PREFIX, tags=["documents"])

    @app.get("/")
    def root():
        return {"ok": True, "service": "ats-backend"}

    return app


app = create_app()
