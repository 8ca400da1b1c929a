"""
FastAPI main application for ProdSpark
"""
import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from prodspark import __version__
from prodspark.core.config import settings
from prodspark.core.logging import setup_logging
from prodspark.middleware.logging_middleware import RequestLoggingMiddleware
from prodspark.routers import products

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name}...")

    logger.info("=" * 60)
    logger.info("CONFIGURATION CHECK")
    logger.info("=" * 60)

    sanitized = re.sub(r":\/\/[^:]*:[^@]*@", "://***:***@", settings.database_url)
    logger.info(f"Database: {sanitized}")

    if settings.cloudinary_cloud_name and settings.cloudinary_upload_preset:
        logger.info(f"✅ Cloudinary configured: cloud={settings.cloudinary_cloud_name}")
    else:
        logger.error("❌ Cloudinary is NOT configured - product submission will not work!")

    if settings.environment == "production" and settings.auth_algorithm.upper().startswith("HS"):
        logger.warning("⚠️ Using a shared-secret JWT algorithm in production")
    logger.info(f"Auth: algorithm={settings.auth_algorithm}, issuer={settings.auth_issuer or 'any'}")

    logger.info("=" * 60)
    logger.info("Application started")

    yield

    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="Product directory API: browse, search, submit, like and review products",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": __version__,
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "products": "/api/products",
            "featured": "/api/products/featured",
        },
    }


app.include_router(products.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prodspark.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )
