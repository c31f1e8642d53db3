"""
Ping-Pong Ladder API Server

FastAPI server that records matches, maintains ELO ratings and serves
leaderboards and monthly awards.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
import logging
import os
import uvicorn
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from ladder.api.routes import router, limiter as routes_limiter
from ladder.database import db
from ladder.services.award_job import run_award_snapshot_safely

load_dotenv()

# Set up logging
# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    logger.info("Starting up Ping-Pong Ladder API...")

    # Fallback for databases that have not been migrated yet
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    # Catch up on last month's awards if nobody has loaded them yet today
    async with db.AsyncSessionLocal() as session:
        saved = await run_award_snapshot_safely(session)
        if saved:
            logger.info(f"Saved {len(saved)} monthly award rows at startup")

    yield  # App is running

    logger.info("Shutting down Ping-Pong Ladder API...")
    await db.engine.dispose()


app = FastAPI(
    title="Ping-Pong Ladder API",
    description="API for recording ping-pong matches, ELO ratings and monthly awards",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware - origins configured via ALLOWED_ORIGINS env var
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


@app.get("/", response_class=HTMLResponse)
async def root():
    """API root endpoint - frontend is served separately."""
    return HTMLResponse(
        content="""
        <!DOCTYPE html>
        <html>
            <head>
                <title>Ping-Pong Ladder API</title>
            </head>
            <body>
                <h1>Ping-Pong Ladder API</h1>
                <p>API is running successfully!</p>
                <ul>
                    <li><a href="/docs">API Documentation</a></li>
                    <li><a href="/api/health">Health Check</a></li>
                </ul>
            </body>
        </html>
    """
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
