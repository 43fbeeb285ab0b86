# ==============================================================================
# Clickfunnel Domain Models
# ==============================================================================
"""
Pydantic models for events, sessions and the pipeline's derived tables.

These models are used for:
- Validating rows delivered by the event store
- Carrying immutable facts between pipeline stages
- Serializing rows for the storage adapters

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Event types after normalization by the loader."""

    VIEWED = "viewed"
    CART = "cart"
    REMOVED = "removed"
    PURCHASED = "purchased"


class AnomalyReason(str, Enum):
    """Why a session was quarantined."""

    IDENTITY_VIOLATION = "identity-violation"
    DURATION_VIOLATION = "duration-violation"


class Event(BaseModel):
    """
    A single cleaned clickstream event.

    Attributes:
        event_id: Unique, monotonic identifier assigned at ingestion
        event_time: When the event occurred (None if the source row had no time)
        event_type: Normalized event type; unrecognized values are kept as-is
        user_id: User identifier
        session_id: Session identifier
        product_id: Product identifier
        price: Product price at the time of the event
        category_id: Category identifier
        brand: Brand name
        placeholder_session: True when session_id was substituted by the loader
    """

    event_id: int = Field(..., description="Monotonic event identifier")
    event_time: datetime | None = Field(None, description="Event timestamp")
    event_type: str | None = Field(None, description="viewed, cart, removed, purchased")
    user_id: int | None = Field(None, description="User identifier")
    session_id: str | None = Field(None, description="Session identifier")
    product_id: int | None = Field(None, description="Product identifier")
    price: Decimal | None = Field(None, description="Price with two decimals")
    category_id: int | None = Field(None, description="Category identifier")
    brand: str | None = Field(None, description="Brand name")
    placeholder_session: bool = Field(
        False, description="Session id was substituted for a missing value"
    )

    model_config = {"frozen": True}

    @property
    def known_type(self) -> EventType | None:
        """The event type as an EventType, or None if unrecognized."""
        try:
            return EventType(self.event_type)
        except ValueError:
            return None

    def to_db_record(self) -> dict:
        """Convert event to database record format."""
        return self.model_dump()


class Session(BaseModel):
    """
    Events from one user under one session identifier.

    Keyed by (session_id, user_id). Calendar fields are derived from the
    session start.
    """

    session_id: str = Field(..., description="Session identifier")
    user_id: int = Field(..., description="User identifier")
    session_start: datetime = Field(..., description="Earliest event time")
    session_end: datetime = Field(..., description="Latest event time")
    event_count: int = Field(0, description="Raw events in this (session, user) group")

    model_config = {"frozen": True}

    @property
    def duration_minutes(self) -> int:
        """Whole minutes between start and end (truncated)."""
        return int((self.session_end - self.session_start).total_seconds() // 60)

    @property
    def weekday(self) -> int:
        """Day of week of the start, Monday = 0."""
        return self.session_start.weekday()

    @property
    def month(self) -> int:
        return self.session_start.month

    @property
    def hour(self) -> int:
        return self.session_start.hour

    @property
    def week(self) -> int:
        """Week of year with Sunday as first day; days before the first Sunday are week 0."""
        return int(self.session_start.strftime("%U"))

    def to_db_record(self) -> dict:
        """Convert session to database record format."""
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "session_start": self.session_start,
            "session_end": self.session_end,
            "duration_minutes": self.duration_minutes,
            "weekday": self.weekday,
            "month": self.month,
            "session_hour": self.hour,
            "week": self.week,
        }


class AnomalousSession(BaseModel):
    """A session id flagged by the anomaly classifier."""

    session_id: str
    reason: AnomalyReason
    user_count: int = Field(1, description="Distinct users seen under this session id")
    event_count: int = Field(0, description="Raw events moved to quarantine")

    model_config = {"frozen": True}


class SessionSummary(BaseModel):
    """Funnel counts for one clean session."""

    session_id: str
    viewed: int = 0
    carted: int = 0
    purchased: int = 0
    removed: int = 0

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        return self.viewed + self.carted + self.purchased + self.removed

    def to_db_record(self) -> dict:
        return self.model_dump()


class PriceObservation(BaseModel):
    """A distinct (product, price, category, brand) tuple seen in the events."""

    product_id: int
    price: Decimal
    category_id: int | None = None
    brand: str | None = None

    model_config = {"frozen": True}


class PriceVariation(BaseModel):
    """Spread between the lowest and highest observed price of a product."""

    product_id: int
    min_price: Decimal
    max_price: Decimal
    variation_pct: Decimal

    model_config = {"frozen": True}

    def to_db_record(self) -> dict:
        return self.model_dump()


class DataQualityReport(BaseModel):
    """
    Counts of records skipped because required fields were missing.

    Surfaced in the run report rather than raised.
    """

    missing_session_id: int = 0
    missing_user_id: int = 0
    missing_timestamp: int = 0
    unresolved_sessions: int = 0

    @property
    def has_issues(self) -> bool:
        return any(
            (
                self.missing_session_id,
                self.missing_user_id,
                self.missing_timestamp,
                self.unresolved_sessions,
            )
        )
