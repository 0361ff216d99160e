"""FastAPI application for book generation."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agents.provider import AgentGenerationProvider
from api import routes
from api.schemas import GenerationResponse
from config.logging_config import setup_logging
from config.settings import Settings, get_settings
from models.database import Database
from models.enums import Phase
from workflow.graph import GenerationOrchestrator

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def build_orchestrator(settings: Settings) -> GenerationOrchestrator:
    db = Database(settings.sqlite_db_path)
    return GenerationOrchestrator(db, AgentGenerationProvider(settings), settings)


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[GenerationOrchestrator] = None,
    configure_logging: bool = False,
) -> FastAPI:
    """Build the app; collaborators not injected are created at startup."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(log_dir=settings.log_dir)
        if getattr(app.state, "orchestrator", None) is None:
            app.state.orchestrator = build_orchestrator(settings)
        logger.info("Book generation API ready (db=%s)", settings.sqlite_db_path)
        yield
        pending = [t for t in app.state.background_tasks if not t.done()]
        if pending:
            logger.info("Waiting for %d background run(s) to finish", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Shutting down book generation API")

    app = FastAPI(title="bookgen", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.background_tasks = set()

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        resp = GenerationResponse(
            success=False,
            phase=Phase.CREATING.value,
            error="Invalid request body",
            details=str(exc.errors()),
            message="Invalid request body",
        )
        return JSONResponse(status_code=400, content=resp.dump())

    app.include_router(routes.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "bookgen", "version": VERSION}

    return app
