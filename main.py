"""
Main FastAPI application with all endpoints.
"""

from typing import List, Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import services
import store
from config import settings, validate_settings
from database import get_db, init_db
from errors import CountryAPIError, InternalError, NotFound
from image_generator import generate_summary_image
from logging_config import configure_logging, get_logger
from models import (
    CountryResponse,
    ErrorResponse,
    MessageResponse,
    RefreshResponse,
    StatusResponse,
    ValidationErrorResponse,
)

configure_logging()
logger = get_logger(__name__)

NOT_REFRESHED = "Not refreshed yet"

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="RESTful API for country data, currencies, and exchange rates"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for upstream calls; None means the real network."""
    return None


# ============= Error Handlers =============

@app.exception_handler(CountryAPIError)
async def country_api_error_handler(request: Request, exc: CountryAPIError):
    if isinstance(exc, NotFound):
        logger.info("%s %s -> 404 (%s)", request.method, request.url.path, exc.details)
    elif isinstance(exc, InternalError):
        logger.error("%s %s -> 500: %s", request.method, request.url.path, exc.details)
    else:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # field -> message, keyed by the last location token
    details = {}
    for err in exc.errors():
        loc = err.get("loc", [])
        field = loc[-1] if loc else "body"
        details[str(field)] = err.get("msg")
    return JSONResponse(status_code=400, content=ValidationErrorResponse(details=details).model_dump())


@app.exception_handler(Exception)
async def internal_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)}
    )


# ============= Endpoints =============
# Fixed /countries/* paths are declared before /countries/{name}

@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness check."""
    return "Country API is running"


@app.post(
    "/countries/refresh",
    response_model=RefreshResponse,
    responses={503: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def refresh_countries(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
):
    """
    Fetch all countries and exchange rates, then replace the cached rows.

    The summary image is rebuilt after the response has been sent.
    """
    result = await services.refresh_countries(db, transport=transport)
    background_tasks.add_task(services.regenerate_summary_image)

    return RefreshResponse(
        message="Countries refreshed successfully",
        total=result.total,
        last_refreshed_at=result.refreshed_at
    )


@app.get("/countries/status", response_model=StatusResponse)
@app.get("/status", response_model=StatusResponse, include_in_schema=False)
def get_status(db: Session = Depends(get_db)):
    """Total number of countries and the last refresh timestamp."""
    try:
        total = store.count_countries(db)
        last_refresh = store.get_last_refreshed_at(db)
    except SQLAlchemyError as e:
        raise InternalError(f"Failed to read status: {e}")

    return StatusResponse(
        total_countries=total,
        last_refreshed_at=last_refresh or NOT_REFRESHED
    )


@app.get(
    "/countries/image",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
def get_summary_image(db: Session = Depends(get_db)):
    """
    Render the summary image from the current rows and serve it.

    Returns 404 when no countries are stored.
    """
    try:
        image_path = generate_summary_image(store.find_all_countries(db))
    except (OSError, ValueError, SQLAlchemyError) as e:
        raise InternalError(f"get_summary_image: {e}", error="Failed to generate summary image")

    if not image_path:
        raise NotFound("Run /countries/refresh first.", error="No countries found")

    return FileResponse(
        image_path,
        media_type="image/png",
        filename=settings.IMAGE_FILE_NAME
    )


@app.get("/countries", response_model=List[CountryResponse])
def get_countries(
    region: Optional[str] = Query(None, description="Filter by region (exact match, e.g. Africa)"),
    currency: Optional[str] = Query(None, description="Filter by currency code (exact match, e.g. NGN)"),
    sort: Optional[str] = Query(None, description="gdp_desc, or <field>_<asc|desc> such as population_desc"),
    db: Session = Depends(get_db)
):
    """
    List countries with optional filtering and sorting.

    Defaults to name ascending. Missing values sort last.
    """
    try:
        countries = store.find_countries(db, region=region, currency=currency, sort=sort)
    except SQLAlchemyError as e:
        raise InternalError(f"Failed to list countries: {e}")

    return [CountryResponse.model_validate(country) for country in countries]


@app.get("/countries/{name}", response_model=CountryResponse, responses={404: {"model": ErrorResponse}})
def get_country(name: str, db: Session = Depends(get_db)):
    """Get a specific country by name (case-insensitive)."""
    country = store.find_country_by_name(db, name)

    if not country:
        raise NotFound(name)

    return CountryResponse.model_validate(country)


@app.delete("/countries/{name}", response_model=MessageResponse, responses={404: {"model": ErrorResponse}})
def delete_country(name: str, db: Session = Depends(get_db)):
    """Delete a country by name (case-insensitive)."""
    deleted = store.delete_countries_by_name(db, name)

    if not deleted:
        raise NotFound(name)

    return MessageResponse(message="Country deleted successfully")


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    validate_settings()
    init_db()
    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    logger.info("%s shutting down", settings.APP_NAME)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
