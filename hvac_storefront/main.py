import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - register tables with Base
from .config import ALLOWED_ORIGINS, LOG_LEVEL
from .database import Base, engine
from .domain.billing import router as billing_router
from .domain.memberships import router as memberships_router
from .errors import GENERIC_FAILURE_MESSAGE, StorefrontError

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="HVAC Storefront API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError):
    """Structured {error} / {error, details} body for checkout failures"""
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.message} "
            f"({exc.details})"
        )
    else:
        logger.warning(f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first invalid field as a 400 {error}"""
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return JSONResponse(
        status_code=400, content={"error": f"{field}: {message}" if field else message}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.exception(f"{request.method} {request.url.path} - Error: {str(e)}")
        return JSONResponse(
            status_code=500, content={"error": GENERIC_FAILURE_MESSAGE, "details": str(e)}
        )


# CORS Configuration - added last so it wraps every response, errors included
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# Routes
app.include_router(billing_router)
app.include_router(memberships_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
