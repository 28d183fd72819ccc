import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from launchbio.core.config import settings
from launchbio.core.database import engine, Base
from launchbio.core.dependencies import apply_pending_cookies
from launchbio.core.errors import LaunchBioError
from launchbio.models import user, session, page  # enregistre les tables
from launchbio.routers import health, auth, pages, api

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Init DB
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="LaunchBio API",
    version="0.1.0"
)


@app.exception_handler(LaunchBioError)
async def launchbio_error_handler(request: Request, exc: LaunchBioError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    return apply_pending_cookies(request, response)


# Routes
app.include_router(health.router, prefix="/health")
app.include_router(auth.router)
app.include_router(pages.router)
app.include_router(api.router)
