"""Diagnostics refresh model - narrative fields recomputed after a patch."""

from pydantic import Field

from tripsync.app.models.common import StrictWireModel
from tripsync.app.models.reconstruction import Assumption, MissingInfo, RiskFlag


class DiagnosticsRefresh(StrictWireModel):
    """Refreshed narrative/diagnostic fields; items are never re-derived here."""

    executive_summary: str = Field(..., min_length=1, max_length=200)
    destination_summary: str = Field(..., min_length=1, max_length=120)
    risks: list[RiskFlag]
    assumptions: list[Assumption]
    missing_info: list[MissingInfo]
