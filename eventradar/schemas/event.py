"""
Normalized event model shared by every source.

Provider payloads, host-submitted records and session rows are all expressed
through the models in this module. Events are created fresh for every
aggregation request, enriched in place (coordinates, canonical category,
distance) and discarded once the result has been materialized.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from eventradar.aggregation.errors import InvalidCriteriaError


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _coerce_decimal(v):
    if v is None or v == "":
        return None
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


# ============================================================================
# ENUMS
# ============================================================================


class EventSource(str, Enum):
    """Where an event came from. ``HOST`` marks host-submitted events."""

    TICKETMASTER = "Ticketmaster"
    YELP = "Yelp"
    AMADEUS = "Amadeus"
    HOST = "Host"


# ============================================================================
# LOCATION & GEOGRAPHIC DATA
# ============================================================================


class Coordinates(BaseModel):
    """
    Geographic coordinates.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @field_validator("latitude")
    def validate_latitude(cls, v):
        if not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    def validate_longitude(cls, v):
        if not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v

    def as_text(self) -> str:
        """Render as the ``"lat,lon"`` string providers use for locations."""
        return f"{self.latitude},{self.longitude}"


# ============================================================================
# NORMALIZED EVENT
# ============================================================================


class NormalizedEvent(BaseModel):
    """
    Unified representation of an event from any source.

    ``location`` is opaque input: either a free-text address or a
    ``"lat,lon"`` string. ``coordinates`` and ``distance_km`` are filled in by
    the enrichment step; ``category`` becomes canonical at the same time.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "title": "Jazz Night",
                "description": "Live quartet",
                "location": "42.37,-71.05",
                "start": "2026-03-15T20:00:00Z",
                "source": "Ticketmaster",
                "category": "Music",
                "currency_code": "USD",
                "amount": 25.0,
                "url": "https://www.ticketmaster.com/event/1",
                "distance_km": 1.39,
            }
        },
    )

    title: str = Field(min_length=1)
    description: str | None = None
    location: str
    coordinates: Coordinates | None = None
    address: str | None = None
    start: datetime | None = None
    source: EventSource
    category: str = "Other"
    currency_code: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    url: str | None = None
    distance_km: float | None = Field(default=None, ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("location", mode="before")
    @classmethod
    def coerce_location(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v):
        if v is None or not str(v).strip():
            return "Other"
        return str(v).strip()

    @field_validator("start", mode="after")
    @classmethod
    def normalize_start(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_to_decimal(cls, v):
        """Coerce float/int/str to Decimal for the price field."""
        return _coerce_decimal(v)

    @field_validator("currency_code")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_serializer("amount")
    def serialize_decimal(self, v: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON compatibility."""
        if v is None:
            return None
        return float(v)

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        """Exact-match identity within one aggregation run."""
        return (self.title, self.location, str(self.source))

    @property
    def is_host_event(self) -> bool:
        return self.source == EventSource.HOST.value


# ============================================================================
# SEARCH CRITERIA
# ============================================================================


class SearchCriteria(BaseModel):
    """
    Filters for one aggregation request.

    Either ``origin`` or ``origin_text`` identifies where the user is. An
    inverted time window raises InvalidCriteriaError at construction and on
    assignment.
    """

    model_config = ConfigDict(validate_assignment=True)

    origin: Coordinates | None = None
    origin_text: str | None = None
    max_distance_km: float = Field(default=100.0, ge=0)
    category: str | None = None
    max_price: Decimal | None = Field(default=None, ge=0)
    start_after: datetime | None = None
    start_before: datetime | None = None
    resolve_addresses: bool = False

    @field_validator("max_price", mode="before")
    @classmethod
    def coerce_to_decimal(cls, v):
        return _coerce_decimal(v)

    @field_validator("start_after", "start_before", mode="after")
    @classmethod
    def normalize_bounds(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @field_validator("category", "origin_text")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def validate_time_window(self):
        self.ensure_valid()
        return self

    def ensure_valid(self) -> "SearchCriteria":
        """Raise InvalidCriteriaError when the criteria cannot be applied."""
        if (
            self.start_after is not None
            and self.start_before is not None
            and self.start_before < self.start_after
        ):
            raise InvalidCriteriaError(
                f"start_before ({self.start_before.isoformat()}) is earlier than "
                f"start_after ({self.start_after.isoformat()})"
            )
        if self.max_distance_km < 0:
            raise InvalidCriteriaError("max_distance_km must be non-negative")
        if self.max_price is not None and self.max_price < 0:
            raise InvalidCriteriaError("max_price must be non-negative")
        return self


# ============================================================================
# HOST EVENTS
# ============================================================================


class HostEventRecord(BaseModel):
    """A host-submitted event as stored in the host event table."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    title: str = Field(min_length=1)
    description: str | None = None
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    start: datetime | None = None
    category: str | None = None
    currency_code: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    url: str | None = None
    host_user_id: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_to_decimal(cls, v):
        return _coerce_decimal(v)

    @field_validator("location", mode="before")
    @classmethod
    def coerce_location(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @property
    def stored_coordinates(self) -> Coordinates | None:
        """Coordinates saved with the record, if both parts are present and valid."""
        if self.latitude is None or self.longitude is None:
            return None
        try:
            return Coordinates(latitude=self.latitude, longitude=self.longitude)
        except ValueError:
            return None


# ============================================================================
# SESSION MATERIALIZATION
# ============================================================================


SESSION_COLUMNS = [
    "content_id",
    "title",
    "description",
    "location",
    "start",
    "source",
    "category",
    "currency_code",
    "amount",
    "url",
    "distance_km",
]


class SessionRow(BaseModel):
    """Tabular projection of one event in a user's materialized result."""

    model_config = ConfigDict(use_enum_values=True)

    content_id: int = Field(ge=1)
    title: str
    description: str | None = None
    location: str
    start: datetime | None = None
    source: EventSource
    category: str
    currency_code: str | None = None
    amount: Decimal | None = None
    url: str | None = None
    distance_km: float | None = None

    @classmethod
    def from_event(cls, content_id: int, event: NormalizedEvent) -> "SessionRow":
        return cls(
            content_id=content_id,
            title=event.title,
            description=event.description,
            location=event.address or event.location,
            start=event.start,
            source=event.source,
            category=event.category,
            currency_code=event.currency_code,
            amount=event.amount,
            url=event.url,
            distance_km=event.distance_km,
        )

    @field_serializer("amount")
    def serialize_decimal(self, v: Decimal | None) -> float | None:
        if v is None:
            return None
        return float(v)


class SessionHandle(BaseModel):
    """Reference to a materialized session result."""

    user_id: str
    row_count: int = Field(ge=0)
    uri: str
    generation: int = 0
    created_at: datetime = Field(default_factory=_utc_now)
