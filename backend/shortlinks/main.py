from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api import analytics, links, redirect
from .api.redirect import redirect_to_url
from .config import settings
from .core.errors import ShortLinkError, StorageUnavailable
from .core.observability import RequestIDMiddleware, configure_logging
from .core.rate_limit import limiter
from .database import Base, engine
from .utils.geo import close_geo_lookup, get_geo_lookup

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Short links service started",
        database=engine.url.render_as_string(hide_password=True),
        geoip_enabled=get_geo_lookup().enabled,
    )
    yield
    close_geo_lookup()
    logger.info("Short links service stopped")


# Initialize FastAPI app
app = FastAPI(
    title="Short Links",
    description="URL shortening service with click analytics",
    version="1.0.0",
    lifespan=lifespan
)

# Setup rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    headers = {"Retry-After": "5"} if isinstance(exc, StorageUnavailable) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers
    )


app.add_middleware(RequestIDMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(links.router, prefix="/api", tags=["links"])
app.include_router(analytics.router, prefix="/api", tags=["analytics"])
app.include_router(redirect.router, prefix="/api", tags=["redirect"])


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Short Links"}


# Redirect endpoint (must be last to not conflict with other routes)
app.get("/{short_code}", tags=["redirect"])(redirect_to_url)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
