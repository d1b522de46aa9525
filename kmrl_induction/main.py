# kmrl_induction/main.py
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from kmrl_induction.api import scoring_config, trainsets
from kmrl_induction.config import settings
from kmrl_induction.services.induction_service import InductionService
from kmrl_induction.utils.database import TrainsetRepository, create_repository, seed_demo_fleet

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def create_app(repository: Optional[TrainsetRepository] = None) -> FastAPI:
    """Build the API around a repository (defaults to the one selected in settings)"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repo = repository or create_repository()
        if settings.seed_demo_fleet:
            try:
                await seed_demo_fleet(repo)
            except Exception as e:
                logger.error(f"Seeding demo fleet failed: {e}", exc_info=True)
                raise
        app.state.induction_service = InductionService(repo)
        logger.info("KMRL induction engine started")
        yield
        logger.info("KMRL induction engine stopped")

    app = FastAPI(
        title="KMRL Induction Decision Engine",
        description="Rule-based induction decisions, conflict diagnostics, weighted ranking and what-if simulation",
        version="1.0.0",
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(trainsets.router, prefix="/api/trainsets", tags=["Trainsets"])
    app.include_router(scoring_config.router, prefix="/api/config", tags=["Configuration"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
