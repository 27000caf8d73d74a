"""Common types and enums shared across all models."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

# Wire formats the oracle must emit
LocalDateStr = Annotated[str, StringConstraints(pattern=r"^\d{4}-\d{2}-\d{2}$")]
LocalTimeStr = Annotated[str, StringConstraints(pattern=r"^\d{2}:\d{2}$")]
TimezoneStr = Annotated[str, StringConstraints(min_length=1)]
IsoStr = Annotated[str, StringConstraints(min_length=1, max_length=40)]
Confidence = Annotated[float, Field(ge=0, le=1)]


class WireModel(BaseModel):
    """Base for oracle-facing JSON documents (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=False)


class StrictWireModel(WireModel):
    """Wire model that rejects unknown keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class TripItemKind(str, Enum):
    """Kind of itinerary entry."""

    FLIGHT = "FLIGHT"
    LODGING = "LODGING"
    MEETING = "MEETING"
    MEAL = "MEAL"
    TRANSPORT = "TRANSPORT"
    ACTIVITY = "ACTIVITY"
    NOTE = "NOTE"
    OTHER = "OTHER"


class TripItemState(str, Enum):
    """Lifecycle state of a trip item."""

    PROPOSED = "PROPOSED"
    CONFIRMED = "CONFIRMED"
    DISMISSED = "DISMISSED"
    CANCELLED = "CANCELLED"


class TripItemSource(str, Enum):
    """Where a trip item came from."""

    AI = "AI"
    USER = "USER"
    CALENDAR = "CALENDAR"
    EMAIL = "EMAIL"


class TripStatus(str, Enum):
    """Trip lifecycle."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class RunStatus(str, Enum):
    """Outcome of one oracle-backed run."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PendingIntentType(str, Enum):
    """Coarse intent of a deferred operation, shown to the user."""

    UPDATE = "UPDATE"
    CANCEL = "CANCEL"
    REPLACE = "REPLACE"
    UNKNOWN = "UNKNOWN"


class RiskSeverity(str, Enum):
    """Risk flag severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ClientContext(BaseModel):
    """Caller's clock context used to anchor relative dates."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timezone: str = Field(..., min_length=1, description="IANA timezone, e.g., 'America/New_York'")
    now_iso: str | None = Field(default=None, min_length=1)
