"""Shared fixtures data and helpers for tests.

Upstream payloads mirror the shapes returned by restcountries v2 and
open.er-api so the refresh path is exercised end to end without network.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import httpx
from sqlalchemy.orm import Session

import store
from models import CountryDB

__all__ = [
    "COUNTRIES_PAYLOAD",
    "RATES_PAYLOAD",
    "FakeUpstream",
    "make_country",
    "seed_countries",
]

COUNTRIES_PAYLOAD: list[dict[str, Any]] = [
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139589,
        "flag": "https://flagcdn.com/ng.svg",
        "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
    },
    {
        "name": "Japan",
        "capital": "Tokyo",
        "region": "Asia",
        "population": 125836021,
        "flag": "https://flagcdn.com/jp.svg",
        "currencies": [{"code": "JPY", "name": "Japanese yen", "symbol": "¥"}],
    },
    {
        "name": "Germany",
        "capital": "Berlin",
        "region": "Europe",
        "population": 83240525,
        "flag": "https://flagcdn.com/de.svg",
        "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
    },
    {
        "name": "France",
        "capital": "Paris",
        "region": "Europe",
        "population": 67391582,
        "flag": "https://flagcdn.com/fr.svg",
        "currencies": [{"code": "EUR", "name": "Euro", "symbol": "€"}],
    },
    {
        "name": "United Kingdom of Great Britain and Northern Ireland",
        "capital": "London",
        "region": "Europe",
        "population": 67215293,
        "flag": "https://flagcdn.com/gb.svg",
        "currencies": [{"code": "GBP", "name": "British pound", "symbol": "£"}],
    },
    {
        "name": "United States of America",
        "capital": "Washington, D.C.",
        "region": "Americas",
        "population": 329484123,
        "flag": "https://flagcdn.com/us.svg",
        "currencies": [{"code": "USD", "name": "United States dollar", "symbol": "$"}],
    },
    # No currency at all
    {
        "name": "Antarctica",
        "region": "Polar",
        "population": 1000,
        "flag": "https://flagcdn.com/aq.svg",
    },
    # Currency without a published rate
    {
        "name": "Sint Maarten (Dutch part)",
        "capital": "Philipsburg",
        "region": "Americas",
        "population": 40812,
        "currencies": [{"code": "ANG", "name": "Netherlands Antillean guilder"}],
    },
    # Empty population with a resolvable rate
    {
        "name": "Bouvet Island",
        "region": "Antarctic Ocean",
        "population": 0,
        "currencies": [{"code": "NOK", "name": "Norwegian krone"}],
    },
]

RATES_PAYLOAD: dict[str, Any] = {
    "result": "success",
    "base_code": "USD",
    "rates": {
        "USD": 1,
        "NGN": 1600.5,
        "JPY": 150.2,
        "EUR": 0.92,
        "GBP": 0.79,
        "NOK": 10.6,
    },
}


class FakeUpstream:
    """Both upstream providers behind one ``httpx.MockTransport``.

    Tests tweak the payloads or status codes before triggering a refresh.
    """

    def __init__(self) -> None:
        self.countries: Any = [dict(c) for c in COUNTRIES_PAYLOAD]
        self.rates: Any = dict(RATES_PAYLOAD)
        self.countries_status = 200
        self.rates_status = 200
        self.fail_countries_with: Exception | None = None
        self.fail_rates_with: Exception | None = None
        self.requests: list[str] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.host)
        if request.url.host == "restcountries.com":
            if self.fail_countries_with is not None:
                raise self.fail_countries_with
            return httpx.Response(self.countries_status, json=self.countries)
        if request.url.host == "open.er-api.com":
            if self.fail_rates_with is not None:
                raise self.fail_rates_with
            return httpx.Response(self.rates_status, json=self.rates)
        return httpx.Response(404, json={"error": "unknown host"})


def make_country(**overrides: Any) -> dict[str, Any]:
    """Row data for ``CountryDB`` with sensible defaults."""

    row = {
        "name": "Ghana",
        "capital": "Accra",
        "region": "Africa",
        "population": 31072940,
        "currency_code": "GHS",
        "exchange_rate": 15.5,
        "estimated_gdp": 3007058709.68,
        "flag_url": "https://flagcdn.com/gh.svg",
        "last_refreshed_at": datetime(2025, 1, 1, 12, 0, 0),
    }
    row.update(overrides)
    return row


def seed_countries(session: Session, rows: Iterable[dict[str, Any]]) -> list[CountryDB]:
    """Insert rows through the record store, returning the stored objects."""

    return [store.insert_country(session, row) for row in rows]
