"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.errors import RoastersChoiceError
from app.routers import health, roasters_choice

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOG = logging.getLogger("roasters-choice")

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shopify Flow webhook that picks Roaster's Choice coffees for subscription orders"
)


@app.exception_handler(RoastersChoiceError)
async def roasters_choice_error_handler(request: Request, exc: RoastersChoiceError):
    """Turn a RoastersChoiceError into a JSON error body with one log line."""
    if exc.status_code >= 500:
        LOG.error("Roasters Choice handler error: %s %s", exc.kind.value, exc.message)
    else:
        LOG.warning("Roasters Choice request rejected (%s): %s", exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


# Include routers
app.include_router(roasters_choice.router, prefix="/api", tags=["Roaster's Choice"])
app.include_router(health.router, prefix="/api/v1", tags=["Health"])


@app.get("/api")
async def api_root():
    """API information endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }
