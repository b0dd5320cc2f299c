"""
Dona Tutti - FastAPI Application

Main entry point for the donation platform backend.

Architecture (campaign closure):
- CampaignStatusMachine → precondition (active/paused only)
- ClosureMetricsAggregator → ClosureMetrics
- Transparency scoring → TransparencyBreakdown
- ClosureService → ClosureReport + campaign completed + document job (one commit)
- DocumentJobRunner → audit document rendered, hashed, uploaded, back-filled
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import closure_router, scheduler_router
from .database import init_db


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Dona Tutti",
    description="""
    Dona Tutti - Donation Campaign Backend

    Closes fundraising campaigns and publishes their transparency audit.

    ## Closure
    1. **Validation**: campaign must be active or paused, manual closures need a reason
    2. **Aggregation**: donations, receipts, activities, alerts, contract
    3. **Scoring**: six-component transparency score, clamped to 0-100
    4. **Persistence**: closure report + status change + document job, one transaction
    5. **Audit document**: generated in the background, SHA-256 hash stored with its URL

    ## Key Principles
    - At most one closure report per campaign, never deleted or recomputed
    - Document URL and hash are written once
    - Scoring is deterministic (same metrics, same score)
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(closure_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Dona Tutti",
        "version": "1.0.0",
        "description": "Donation Campaign Backend",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
