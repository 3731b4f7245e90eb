"""
Main FastAPI application.
Thin orchestration over the Hudson services.

Endpoints:
- /properties/* - Properties, insights, reminders
- /subscriptions/{property_id}/* - Subscription and visits
- /blueprints/{property_id}/* - Blueprint, plan, projects, notifications
- /inspections/* - Snapshot inspections and scoring
"""

import logging
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from .. import __version__
from ..errors import GENERIC_NOTICE, PersistenceError, PreconditionError, VersionConflictError

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Hudson API",
    description="Home maintenance subscriptions, blueprints and inspections",
    version=__version__,
    docs_url="/docs" if os.environ.get("APP_ENV") == "development" else None,
    redoc_url=None,
)

# CORS - configure for your frontend domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8081",  # Expo dev
        "https://app.hudsonhome.com",  # Production (update this)
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


@app.exception_handler(PreconditionError)
async def precondition_error_handler(request: Request, exc: PreconditionError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(VersionConflictError)
async def version_conflict_handler(request: Request, exc: VersionConflictError):
    return JSONResponse(status_code=409, content={"detail": GENERIC_NOTICE})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return JSONResponse(status_code=503, content={"detail": GENERIC_NOTICE})


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "version": __version__}


# Import and include routers
from .routes import blueprints, inspections, properties, subscriptions

app.include_router(properties.router, prefix="/properties", tags=["properties"])
app.include_router(subscriptions.router, prefix="/subscriptions/{property_id}", tags=["subscriptions"])
app.include_router(blueprints.router, prefix="/blueprints/{property_id}", tags=["blueprints"])
app.include_router(inspections.router, prefix="/inspections", tags=["inspections"])
