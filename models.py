"""
Data models for both SQLAlchemy (database) and Pydantic (API validation).
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, func
from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any, Union
from datetime import datetime
from database import Base


# ============= SQLAlchemy Models (Database Tables) =============

class CountryDB(Base):
    """
    SQLAlchemy model representing the countries table.

    `name` is the lookup key but carries no unique constraint: upstream data
    may repeat a name and lookups return the first row by id.
    """
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    capital = Column(String(255), nullable=True)
    region = Column(String(100), nullable=True, index=True)
    population = Column(Integer, nullable=False, default=0)
    currency_code = Column(String(10), nullable=True, index=True)
    exchange_rate = Column(Float, nullable=True)
    estimated_gdp = Column(Float, nullable=True)
    flag_url = Column(String(500), nullable=True)
    last_refreshed_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<CountryDB id={self.id} name={self.name!r}>"


# ============= Pydantic Models (API Validation) =============

class CountryResponse(BaseModel):
    """Response model for country data."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int
    currency_code: Optional[str] = None
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None
    flag_url: Optional[str] = None
    last_refreshed_at: datetime


class StatusResponse(BaseModel):
    """Response model for status endpoint."""
    status: str = "ok"
    total_countries: int
    last_refreshed_at: Union[datetime, str]


class RefreshResponse(BaseModel):
    """Response model for refresh endpoint."""
    message: str
    total: int
    last_refreshed_at: datetime


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    details: Optional[Any] = None


class ValidationErrorResponse(BaseModel):
    """Validation error response."""
    error: str = "Validation failed"
    details: Dict[str, str]
