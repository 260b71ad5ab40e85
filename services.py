"""
Business logic for fetching, processing, and storing country data.
"""

import asyncio
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

import database
import store
from config import settings
from errors import InternalError, UpstreamUnavailable
from image_generator import generate_summary_image
from logging_config import get_logger

logger = get_logger(__name__)

GDP_MULTIPLIER_RANGE = (1000, 2000)

# Signed 32-bit INTEGER column
MAX_POPULATION = 2**31 - 1


@dataclass(frozen=True)
class RefreshResult:
    total: int
    refreshed_at: datetime


def utcnow() -> datetime:
    """Naive UTC now, truncated to whole seconds so every backend stores it exactly."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


# ============= External API Functions =============

async def _get_json(client: httpx.AsyncClient, url: str, source: str) -> Any:
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException:
        logger.warning("%s timed out: %s", source, url)
        raise UpstreamUnavailable(f"Could not fetch data from {source} - timeout")
    except httpx.HTTPError as e:
        logger.warning("%s request failed: %s", source, e)
        raise UpstreamUnavailable(f"Could not fetch data from {source}: {e}")
    except ValueError as e:
        logger.warning("%s returned invalid JSON: %s", source, e)
        raise UpstreamUnavailable(f"{source} returned an invalid payload")


async def fetch_countries_data(client: httpx.AsyncClient) -> List[Dict]:
    """Fetch country data from REST Countries API."""
    data = await _get_json(client, settings.COUNTRIES_API_URL, "REST Countries API")
    if not isinstance(data, list) or not data:
        raise UpstreamUnavailable("REST Countries API returned no countries")
    if not all(isinstance(country, dict) for country in data):
        raise UpstreamUnavailable("REST Countries API returned malformed entries")
    return data


async def fetch_exchange_rates(client: httpx.AsyncClient) -> Dict[str, float]:
    """Fetch USD-based exchange rates from Exchange Rate API."""
    data = await _get_json(client, settings.EXCHANGE_RATE_API_URL, "Exchange Rate API")
    if not isinstance(data, dict) or data.get("result") == "error":
        raise UpstreamUnavailable("Exchange Rate API returned an error response")

    rates = data.get("rates")
    if not isinstance(rates, dict) or not rates:
        raise UpstreamUnavailable("Exchange Rate API returned no rates")
    return rates


async def fetch_upstream_data(
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Tuple[List[Dict], Dict[str, float]]:
    """Fetch countries and exchange rates concurrently."""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT, transport=transport) as client:
        countries, rates = await asyncio.gather(
            fetch_countries_data(client),
            fetch_exchange_rates(client),
            return_exceptions=True,
        )

    for result in (countries, rates):
        if isinstance(result, BaseException):
            raise result
    return countries, rates


# ============= Data Processing Functions =============

def _text(value: Any, default: Optional[str], max_length: int) -> Optional[str]:
    """Stripped string value, or the default for anything that is not usable text."""
    if not isinstance(value, str) or not value.strip():
        return default
    return value.strip()[:max_length]


def extract_currency_code(currencies: Any) -> Optional[str]:
    """
    Extract first currency code from currencies array.

    Args:
        currencies: List of currency dictionaries

    Returns:
        First currency code or None if empty
    """
    if not isinstance(currencies, list) or not currencies:
        return None

    first_currency = currencies[0]
    if not isinstance(first_currency, dict):
        return None

    code = first_currency.get("code")
    if not isinstance(code, str) or not code.strip() or len(code.strip()) > 10:
        return None
    return code.strip()


def resolve_exchange_rate(currency_code: Optional[str], exchange_rates: Dict[str, Any]) -> Optional[float]:
    """Rate for the code, or None when the code is missing or has no positive finite rate."""
    if not currency_code:
        return None

    rate = exchange_rates.get(currency_code)
    if isinstance(rate, bool):
        return None
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return None
    return rate if math.isfinite(rate) and rate > 0 else None


def calculate_estimated_gdp(population: int, exchange_rate: Optional[float]) -> Optional[float]:
    """
    Calculate estimated GDP using formula:
    population × random(1000-2000) ÷ exchange_rate

    The multiplier is an integer drawn fresh on every call.

    Args:
        population: Country population
        exchange_rate: Currency exchange rate

    Returns:
        Estimated GDP, 0 for an empty population, None without a rate
    """
    if exchange_rate is None:
        return None
    if population <= 0:
        return 0.0

    multiplier = random.randint(*GDP_MULTIPLIER_RANGE)
    return population * multiplier / exchange_rate


def _population(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        population = int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(max(population, 0), MAX_POPULATION)


def process_country_data(
    country: Dict,
    exchange_rates: Dict[str, float],
    refreshed_at: datetime
) -> Dict:
    """
    Process raw country data and combine with exchange rate.

    Text fields that are missing or not strings fall back to their defaults,
    and population is clamped to what the column can hold.

    Args:
        country: Raw country data from API
        exchange_rates: Dictionary of currency rates
        refreshed_at: Batch timestamp stamped on the record

    Returns:
        Processed country data ready for database
    """
    population = _population(country.get("population"))
    currency_code = extract_currency_code(country.get("currencies"))
    exchange_rate = resolve_exchange_rate(currency_code, exchange_rates)

    return {
        "name": _text(country.get("name"), "N/A", 255),
        "capital": _text(country.get("capital"), "N/A", 255),
        "region": _text(country.get("region"), "Unknown", 100),
        "population": population,
        "currency_code": currency_code,
        "exchange_rate": exchange_rate,
        "estimated_gdp": calculate_estimated_gdp(population, exchange_rate),
        "flag_url": _text(country.get("flag"), None, 500),
        "last_refreshed_at": refreshed_at,
    }


# ============= Refresh =============

def replace_countries(db: Session, records: List[Dict]) -> int:
    """
    Clear the table and insert the prepared records.

    Blocking; called through the threadpool. Any failure rolls back the
    open transaction and surfaces as InternalError. Rows committed before
    the failure stay.
    """
    try:
        removed = store.delete_all_countries(db)
        for record in records:
            store.insert_country(db, record)
    except Exception as e:
        db.rollback()
        logger.exception("refresh_countries: database write failed")
        raise InternalError(f"Failed to store countries: {e}")
    return removed


async def refresh_countries(
    db: Session,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> RefreshResult:
    """
    Replace the stored countries with a fresh upstream snapshot.

    Both sources are fetched and every record is built before anything is
    written, so an upstream failure leaves the table untouched. The table is
    then cleared and every upstream entry inserted with one shared timestamp.

    Raises:
        UpstreamUnavailable: either source failed or returned nothing usable
        InternalError: a database write failed part way through
    """
    logger.info("Refreshing countries from upstream sources")
    countries_data, exchange_rates = await fetch_upstream_data(transport)

    refreshed_at = utcnow()
    records = [process_country_data(c, exchange_rates, refreshed_at) for c in countries_data]

    removed = await run_in_threadpool(replace_countries, db, records)

    total = len(records)
    logger.info(
        "Refresh complete: removed=%d inserted=%d rates=%d at=%s",
        removed, total, len(exchange_rates), refreshed_at.isoformat()
    )
    return RefreshResult(total=total, refreshed_at=refreshed_at)


def regenerate_summary_image() -> Optional[str]:
    """
    Rebuild the summary image from the stored countries.

    Runs as a background task after a refresh, outside the request's session.
    Failures are logged and never re-raised.
    """
    db = database.SessionLocal()
    try:
        return generate_summary_image(store.find_all_countries(db))
    except Exception:
        logger.exception("Background summary image generation failed")
        return None
    finally:
        db.close()
