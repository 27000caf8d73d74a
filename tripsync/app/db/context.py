"""Request context for ownership checks."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


class Owned(Protocol):
    org_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class RequestContext:
    """Caller identity (org and user).

    Trips are visible only to the user that created them.
    """

    org_id: UUID
    user_id: UUID

    def owns(self, record: Owned) -> bool:
        """True when the record belongs to this caller."""
        return record.org_id == self.org_id and record.user_id == self.user_id
