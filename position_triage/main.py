"""
Position Triage - FastAPI Application
Health assessment, management rules and portfolio triage for leveraged
positions, served to the prompt builder and the operator dashboard.
"""

import logging
import os

from fastapi import FastAPI

from .api.positions import router as positions_router

LOG_LEVEL = os.getenv("POSITION_TRIAGE_LOG_LEVEL", "INFO").upper()
SERVICE_NAME = os.getenv("POSITION_TRIAGE_SERVICE_NAME", "Position Triage")
VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{SERVICE_NAME} API",
    description="Position health and portfolio triage",
    version=VERSION,
)

app.include_router(positions_router, prefix="/api/v1/positions", tags=["positions"])


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "online",
        "service": SERVICE_NAME,
        "version": VERSION
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
