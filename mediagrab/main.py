import os
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mediagrab.api import download, formats, health
from mediagrab.config.settings import CONFIG_PATH, config
from mediagrab.core.errors import InvalidInput, MediaGrabError
from mediagrab.core.logging import log_error, log_warning, setup_logging
from mediagrab.infra.redis import close_redis, init_redis
from mediagrab.models.response import ErrorResponse
from mediagrab.services.ytdlp import detect_ytdlp_version
from mediagrab.utils.locale import get_locale
from mediagrab.i18n import i18n

setup_logging()

app = FastAPI(
    title=config.api.title,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


@app.exception_handler(MediaGrabError)
async def mediagrab_error_handler(request: Request, exc: MediaGrabError):
    locale = get_locale(request.headers.get("accept-language"))
    if isinstance(exc, InvalidInput):
        log_warning(request, f"Rejected input: {str(exc)}")
    else:
        log_error(request, f"{exc.code}: {str(exc)}")

    body = ErrorResponse(
        error=i18n.get(exc.message_key, locale=locale),
        code=exc.code,
        detail=str(exc) if config.api.debug else None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    locale = get_locale(request.headers.get("accept-language"))
    log_error(request, f"Unhandled error: {str(exc)}")
    body = ErrorResponse(error=i18n.get("error.internal", locale=locale), code="internal")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(formats.router, tags=["Formats"])
app.include_router(download.router, tags=["Download"])


@app.on_event("startup")
async def startup_event():
    # Write the effective configuration out if there is no config file yet
    config_dir = os.path.dirname(CONFIG_PATH)
    if config_dir and not os.path.exists(config_dir):
        os.makedirs(config_dir, exist_ok=True)
    if not os.path.exists(CONFIG_PATH):
        config.save_to_file(CONFIG_PATH)

    os.makedirs(config.download.output_dir, exist_ok=True)
    await detect_ytdlp_version()
    await init_redis()


@app.on_event("shutdown")
async def shutdown_event():
    await close_redis()
