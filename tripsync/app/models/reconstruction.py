"""Trip reconstruction models - full-dump oracle output."""

from typing import Annotated, Literal

from pydantic import Field

from tripsync.app.models.common import (
    Confidence,
    IsoStr,
    LocalDateStr,
    LocalTimeStr,
    RiskSeverity,
    TimezoneStr,
    TripItemKind,
    WireModel,
)


class DateTimeField(WireModel):
    """Local wall-clock point; every key required, values nullable."""

    local_date: LocalDateStr | None
    local_time: LocalTimeStr | None
    timezone: TimezoneStr | None
    iso: IsoStr | None


class FlightDetails(WireModel):
    """Flight-specific extras."""

    airline_name: Annotated[str, Field(max_length=80)] | None = None
    airline_code: Annotated[str, Field(max_length=10)] | None = None
    flight_number: Annotated[str, Field(max_length=12)] | None = None
    origin: Annotated[str, Field(max_length=12)] | None = None
    destination: Annotated[str, Field(max_length=12)] | None = None
    pnr: Annotated[str, Field(max_length=20)] | None = None


class LodgingDetails(WireModel):
    """Lodging-specific extras."""

    name: Annotated[str, Field(max_length=120)] | None = None
    address: Annotated[str, Field(max_length=180)] | None = None
    check_in: DateTimeField | None = None
    check_out: DateTimeField | None = None
    confirmation_number: Annotated[str, Field(max_length=40)] | None = None


class MeetingDetails(WireModel):
    """Meeting-specific extras."""

    organizer: Annotated[str, Field(max_length=120)] | None = None
    attendees: Annotated[list[Annotated[str, Field(max_length=120)]], Field(max_length=20)] | None = (
        None
    )
    video_link: Annotated[str, Field(max_length=260)] | None = None
    location_name: Annotated[str, Field(max_length=140)] | None = None


class MealDetails(WireModel):
    """Meal-specific extras."""

    venue: Annotated[str, Field(max_length=140)] | None = None
    meal_type: Literal["BREAKFAST", "LUNCH", "DINNER", "DRINKS", "OTHER"] | None = None
    reservation_name: Annotated[str, Field(max_length=120)] | None = None
    confirmation_number: Annotated[str, Field(max_length=40)] | None = None


class ItineraryItem(WireModel):
    """One reconstructed itinerary entry."""

    id: str = Field(..., min_length=5, max_length=40)
    kind: TripItemKind
    title: str = Field(..., min_length=1, max_length=140)
    start: DateTimeField
    end: DateTimeField
    location_text: Annotated[str, Field(max_length=300)] | None
    is_inferred: bool
    confidence: Confidence
    source_snippet: Annotated[str, Field(max_length=180)] | None
    flight: FlightDetails | None = None
    lodging: LodgingDetails | None = None
    meeting: MeetingDetails | None = None
    meal: MealDetails | None = None


class TripDay(WireModel):
    """Ordered group of items for one day."""

    day_index: int = Field(..., ge=1, le=30)
    label: str = Field(..., min_length=1, max_length=40)
    local_date: LocalDateStr | None
    items: list[ItineraryItem]


class RiskFlag(WireModel):
    """Schedule risk surfaced to the traveler."""

    severity: RiskSeverity
    title: str = Field(..., min_length=1, max_length=80)
    message: str = Field(..., min_length=1, max_length=260)
    item_ids: list[str]


class Assumption(WireModel):
    """Something the oracle inferred rather than read."""

    message: str = Field(..., min_length=1, max_length=500)
    related_item_ids: list[str]


class MissingInfo(WireModel):
    """Question the traveler should answer."""

    prompt: str = Field(..., min_length=1, max_length=300)
    related_item_ids: list[str]


class DateRange(WireModel):
    """Trip-level date span."""

    start_local_date: LocalDateStr | None
    end_local_date: LocalDateStr | None
    timezone: TimezoneStr


class SourceStats(WireModel):
    """Counters describing the input and what was recognized."""

    input_char_count: int = Field(..., ge=0)
    recognized_item_count: int = Field(..., ge=0)
    inferred_item_count: int = Field(..., ge=0)


class TripReconstruction(WireModel):
    """Complete structured reconstruction of a trip from raw text."""

    trip_title: str = Field(..., min_length=1, max_length=80)
    executive_summary: str = Field(..., min_length=1, max_length=300)
    destination_summary: str = Field(..., min_length=1, max_length=120)
    date_range: DateRange
    days: list[TripDay] = Field(..., min_length=1)
    risks: list[RiskFlag]
    assumptions: list[Assumption]
    missing_info: list[MissingInfo]
    source_stats: SourceStats

    def iter_items(self) -> list[ItineraryItem]:
        """All items across days, in day then item order."""
        return [item for day in self.days for item in day.items]
