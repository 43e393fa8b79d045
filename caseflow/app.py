import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from caseflow.application import get_engine
from caseflow.core.settings import Settings, load_settings
from caseflow.core.validation import CaseflowError
from caseflow.routes import cases, documents, sla, workflows
from caseflow.workers.sla_sweeper import SLASweeper

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper: SLASweeper | None = None
        if settings.sla_sweep_enabled:
            sweeper = SLASweeper(
                lambda: get_engine().sweeper.sweep(),
                interval_seconds=settings.sla_sweep_interval_seconds,
            )
            sweeper.start()
        app.state.sla_sweeper = sweeper
        try:
            yield
        finally:
            if sweeper is not None:
                await sweeper.stop()
            await get_engine().aclose()

    app = FastAPI(title="Caseflow Case Lifecycle API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CaseflowError)
    async def handle_caseflow_error(request: Request, exc: CaseflowError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    app.include_router(cases.router, prefix="/api")
    app.include_router(documents.router, prefix="/api")
    app.include_router(workflows.router, prefix="/api")
    app.include_router(sla.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Caseflow Case Lifecycle API",
                "docs": "/docs",
            }
        )

    return app


app = create_app()
