import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app import config
from app.routers import scans, sprawl
from app.services.lifecycle import ScanLifecycleController
from app.services.scanner_client import ScannerClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One controller per server process; it goes away with the server.
    client = ScannerClient(config.SCANNER_API_URL, config.SCANNER_API_TOKEN)
    app.state.controller = ScanLifecycleController(
        client,
        poll_interval=config.POLL_INTERVAL_SECONDS,
        tree_limit=config.DEFAULT_TREE_LIMIT,
    )
    logger.info(f"Using scanner at {config.SCANNER_API_URL}")
    try:
        yield
    finally:
        await app.state.controller.aclose()
        await client.aclose()


app = FastAPI(
    title="Sprawl Scan Server",
    description="Tracks repository scans and serves sprawl summaries and trees.",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for local development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(scans.router)
app.include_router(sprawl.router)


@app.get("/api-status")
async def root():
    return {"message": "Sprawl Scan Server is running. Visit /docs for API documentation."}
