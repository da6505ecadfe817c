"""
FastAPI application entry point.
"""

from fastapi import FastAPI

from pr_publisher import __version__
from pr_publisher.config import settings
from pr_publisher.api import pull_requests
from pr_publisher.utils.logging import setup_logging, get_logger

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Bitbucket Server PR Publisher",
    description="Publishes local changes as Bitbucket Server pull requests",
    version=__version__
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Bitbucket Server PR Publisher API",
        "version": __version__,
        "docs": "/docs"
    }


# Include API routers
app.include_router(pull_requests.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
