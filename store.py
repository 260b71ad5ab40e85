"""
Record store: queries against the countries table.

Every function takes the caller's session and commits its own writes; there
is no transaction spanning several calls.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import CountryDB


SORTABLE_FIELDS = {
    "id": CountryDB.id,
    "name": CountryDB.name,
    "capital": CountryDB.capital,
    "region": CountryDB.region,
    "population": CountryDB.population,
    "currency_code": CountryDB.currency_code,
    "exchange_rate": CountryDB.exchange_rate,
    "estimated_gdp": CountryDB.estimated_gdp,
    "last_refreshed_at": CountryDB.last_refreshed_at,
}

SORT_DIRECTIONS = ("asc", "desc")


def _name_matches(name: str):
    return func.lower(CountryDB.name) == func.lower(name)


def parse_sort(sort: Optional[str]) -> Tuple[str, str]:
    """
    Turn a ``sort`` query value into ``(field, direction)``.

    - missing: ``("name", "asc")``
    - anything starting with ``gdp``: ``("estimated_gdp", "desc")``
    - ``<field>_<direction>``: that field, ascending when the direction is
      missing or unknown. Unknown fields fall back to name ascending.
    """
    if not sort:
        return "name", "asc"

    value = sort.strip().lower()
    if value.startswith("gdp"):
        return "estimated_gdp", "desc"

    field, sep, direction = value.rpartition("_")
    if not sep or direction not in SORT_DIRECTIONS:
        field, direction = (value if value in SORTABLE_FIELDS else field), "asc"

    if field not in SORTABLE_FIELDS:
        return "name", "asc"
    return field, direction


# ============= Writes =============

def insert_country(db: Session, country_data: Dict) -> CountryDB:
    """Insert one country and return it with its assigned id."""
    country = CountryDB(**country_data)
    db.add(country)
    db.commit()
    db.refresh(country)
    return country


def delete_all_countries(db: Session) -> int:
    """Remove every country. Returns the number of rows deleted."""
    deleted = db.query(CountryDB).delete(synchronize_session=False)
    db.commit()
    return deleted


def delete_countries_by_name(db: Session, name: str) -> int:
    """
    Delete countries whose name matches case-insensitively.

    Returns the number of rows deleted, normally 0 or 1.
    """
    deleted = db.query(CountryDB).filter(_name_matches(name)).delete(
        synchronize_session=False
    )
    db.commit()
    return deleted


# ============= Reads =============

def find_countries(
    db: Session,
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None
) -> List[CountryDB]:
    """Get countries with optional exact-match filters and sorting."""
    query = db.query(CountryDB)

    if region:
        query = query.filter(CountryDB.region == region)

    if currency:
        query = query.filter(CountryDB.currency_code == currency)

    field, direction = parse_sort(sort)
    column = SORTABLE_FIELDS[field]
    ordering = column.desc() if direction == "desc" else column.asc()

    # NULLS LAST without relying on dialect support for the keyword
    query = query.order_by(column.is_(None), ordering, CountryDB.id)

    return query.all()


def find_all_countries(db: Session) -> List[CountryDB]:
    return db.query(CountryDB).order_by(CountryDB.id).all()


def find_country_by_name(db: Session, name: str) -> Optional[CountryDB]:
    """
    Get country by name (case-insensitive).

    When names repeat, the row with the lowest id wins.
    """
    return db.query(CountryDB).filter(_name_matches(name)).order_by(CountryDB.id).first()


def count_countries(db: Session) -> int:
    return db.query(func.count(CountryDB.id)).scalar() or 0


def get_last_refreshed_at(db: Session) -> Optional[datetime]:
    """Latest refresh timestamp across all rows, or None for an empty table."""
    return db.query(func.max(CountryDB.last_refreshed_at)).scalar()
