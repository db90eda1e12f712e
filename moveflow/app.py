"""
FastAPI application for the MoveFlow web UI.

Serves vault metrics, strategies, positions and unsigned transaction
payloads under /api, plus GET /health.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from moveflow.agents.vault_refresh_job import VAULT, VaultRefreshJob
from moveflow.api.vault_router import router as vault_router
from moveflow.data_sources.movement import MovementChainReader
from moveflow.infrastructure.config import MoveFlowConfig, get_config, reload_config
from moveflow.infrastructure.errors import ErrorHandlingMiddleware, error_tracker, register_exception_handlers
from moveflow.sentry_config import init_sentry

logger = logging.getLogger("MoveFlowAPI")


def create_app(
    settings: Optional[MoveFlowConfig] = None,
    refresh_job: Optional[VaultRefreshJob] = None,
    start_refresh: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API app. Tests pass their own refresh job and keep the
    scheduler off with start_refresh=False.
    """
    settings = settings or get_config()
    job = refresh_job or VaultRefreshJob(MovementChainReader())
    if start_refresh is None:
        start_refresh = settings.features.enable_auto_refresh

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_refresh:
            job.start()
        logger.info(f"MoveFlow API started ({settings.environment.value})")
        yield
        job.stop()
        await job.reader.rpc.close()
        logger.info("MoveFlow API stopped")

    app = FastAPI(
        title="MoveFlow API",
        description="Yield aggregator vault on Movement Network",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.refresh_job = job

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(vault_router)

    @app.get("/health")
    async def health():
        state = job.state
        return {
            "status": "ok",
            "environment": settings.environment.value,
            "network": settings.chain.network,
            "vault_available": state.vault is not None,
            "vault_stale": state.is_stale(VAULT),
            "error_counts": error_tracker.get_stats()["error_counts"],
        }

    return app


def main():
    import uvicorn

    load_dotenv()
    settings = reload_config()
    logging.basicConfig(
        level=settings.monitoring.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_sentry()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
