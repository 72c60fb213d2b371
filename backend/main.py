"""
Foyer Board Display FastAPI Backend

Main entry point for the API server that feeds the foyer display with
Nextcloud Deck boards.

Architecture:
- FastAPI handles HTTP routing and response validation
- Pydantic schemas describe every response body
- DisplayService owns the cached boards, the rotation and the
  background refresh job
- DeckAggregator / DeckClient talk to Nextcloud Deck

Run with:
    uvicorn backend.main:app --port 8000

Or:
    python -m backend.main
"""

import logging
import sys
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add project root to path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from backend.routers import tasks_router, display_router
from backend.dependencies import get_config, get_display_service
from backend.schemas import HealthResponse
from foyer import __version__
from foyer.core.config import configure_logging
from foyer.dashboard.service import DisplayService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: configure logging, schedule the first refresh and the
      periodic background refresh
    - Shutdown: stop the refresh job and all rotation timers
    """
    config = get_config()
    configure_logging(config)
    logger.info(f"Config loaded from: {config.config_dir}")

    service = app.dependency_overrides.get(get_display_service, get_display_service)()
    service.start_background_refresh(run_now=True)

    yield

    logger.info("Shutting down display service")
    service.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Foyer Board Display API",
    description="""
    Nextcloud Deck task boards for a foyer display.

    ## Features

    - **Tasks**: Aggregated boards with stacks and cards, plus raw Deck passthroughs
    - **Display**: Board rotation state and the prioritized tasks of the board on screen
    - **Selection**: Per-display board selection that survives restarts
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().get("cors_origins", default=[]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tasks_router)
app.include_router(display_router)


@app.get("/")
async def root():
    """API root - returns basic info and available endpoints."""
    return {
        "name": "Foyer Board Display API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "tasks": "/tasks",
            "boards": "/tasks/boards",
            "deck_health": "/tasks/health",
            "rotation": "/display/rotation",
            "display_tasks": "/display/tasks",
            "selection": "/display/selection",
        }
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(service: DisplayService = Depends(get_display_service)):
    """Health check endpoint for monitoring; does not contact Deck."""
    status = service.get_status()
    return HealthResponse(
        status="degraded" if status.error else "healthy",
        has_data=status.has_data,
        last_updated=status.last_updated.isoformat() if status.last_updated else None,
        error=status.error,
    )


# Allow running directly with: python -m backend.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
    )
