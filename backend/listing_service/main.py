"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .config import get_settings
from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    # Startup
    logger.info("Starting Listing Extraction API...")
    settings = get_settings()

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - /analyze will return 503")
    if not settings.google_vision_api_key:
        logger.warning("GOOGLE_VISION_API_KEY not set - images will not be annotated")

    logger.info(f"API ready - Version {__version__} (model={settings.openai_model})")

    yield

    # Shutdown
    logger.info("Shutting down Listing Extraction API...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
## Listing Attribute Extraction API

Turns photos of secondhand items into complete marketplace listings.

### Features
- **Evidence scoring**: brand, size, color, category and condition from OCR text and vision labels
- **Generative pass**: category- and quality-aware prompt to a vision model
- **Validation**: malformed model output is repaired into a valid listing
- **Enhancement**: canonical brands, standard sizes, titles, item specifics and price

### Quick Start
1. Use `/health` to check API status
2. Use `/candidates` to score OCR/vision evidence without a model call
3. Use `/analyze` or `/analyze/upload` to build a full listing
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api/v1")

    # Root redirect to docs
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Listing Extraction API",
            "version": __version__,
            "docs": "/docs"
        }

    return app


# Create app instance
app = create_app()
