# main.py
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from salesdesk.routers import (
    catalog_router,
    quotation_router,
    invoice_router,
    cart_router,
)

from salesdesk.core.db import dispose_engine, init_models
from salesdesk.core.scheduler import scheduler
from salesdesk.core.exceptions import AppException
from salesdesk.core.logging import setup_logging
from salesdesk.middleware.request_logging import request_logging_middleware
from salesdesk.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

# ------------------------------------------------------------------------------
# ENV CONFIG
# ------------------------------------------------------------------------------
ENV = os.getenv("APP_ENV", "development")
APP_NAME = "Salesdesk – Quotations & Orders API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ALLOWED_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",")

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    if ENV == "development":
        await init_models()
        logger.info("Database models initialized (development)")
    else:
        logger.info("Production mode: init_models() skipped")

    if ENV == "production" and os.getenv("ENABLE_SCHEDULER", "false").lower() != "true":
        logger.info("Scheduler disabled (production)")
    else:
        scheduler.start()
        logger.info("Scheduler started: idle cart sessions are swept every 5 minutes")

    yield

    logger.info("Shutting down application")
    if scheduler.running:
        scheduler.shutdown()
    await dispose_engine()

# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Quotation workflow and cart pricing API",
    version=APP_VERSION,
    docs_url="/docs" if ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

origins = [o.strip() for o in ALLOWED_ORIGINS if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def health_check():
    return {
        "status": "ok",
        "service": "salesdesk-api",
        "environment": ENV,
        "version": APP_VERSION,
    }

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(catalog_router)
app.include_router(quotation_router)
app.include_router(invoice_router)
app.include_router(cart_router)
