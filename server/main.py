"""
GitBack Timeline API

FastAPI application serving commit timelines, range brushing and recap
statistics for GitHub repositories analyzed by the upstream analysis API.

Run locally:
    cd server && uvicorn main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import ALLOWED_ORIGINS
from logging_config import setup_logging
from routers import analysis, timeline
from services.analysis_client import AnalysisAPIError, RepositoryNotFoundError
from services.datasets import SessionNotFoundError

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="GitBack API",
    description="Commit timelines and repository recaps for any GitHub repository",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type"],
)

app.include_router(timeline.router)
app.include_router(analysis.router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RepositoryNotFoundError)
async def repository_not_found_handler(request: Request, exc: RepositoryNotFoundError):
    logger.info(f"Repository not found: {exc.owner}/{exc.repo}")
    return JSONResponse(status_code=404, content={"detail": "Repository not found"})


@app.exception_handler(AnalysisAPIError)
async def analysis_api_error_handler(request: Request, exc: AnalysisAPIError):
    logger.error(f"Analysis API error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Analysis service unavailable. Please try again later."})


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Brush session not found"})


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.get("/")
def read_root():
    """Health check endpoint."""
    return {"status": "ok", "version": VERSION, "message": "GitBack API"}
