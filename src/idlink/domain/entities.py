"""Domain entities: Contact, LinkPrecedence, and the ConsolidatedContact view."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkPrecedence(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class Contact:
    """
    One stored fragment of a person's identity: an email, a phone number, or both.
    A primary is the canonical (oldest) contact of its cluster; a secondary links to it.
    """

    id: int
    email: str | None = None
    phone_number: str | None = None
    linked_id: int | None = None
    link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    def __post_init__(self):
        if not self.email and not self.phone_number:
            raise ValueError("Contact must have an email or a phone number.")

        precedence = LinkPrecedence(self.link_precedence)
        object.__setattr__(self, "link_precedence", precedence)
        if precedence is LinkPrecedence.PRIMARY and self.linked_id is not None:
            raise ValueError("Primary contact cannot be linked to another contact.")
        if precedence is LinkPrecedence.SECONDARY:
            if self.linked_id is None:
                raise ValueError("Secondary contact must be linked to a primary.")
            if self.linked_id == self.id:
                raise ValueError("Secondary contact cannot be linked to itself.")

    @property
    def is_primary(self) -> bool:
        return self.link_precedence is LinkPrecedence.PRIMARY

    @property
    def age_key(self) -> tuple[datetime, int]:
        """Sort key for seniority: oldest first, lowest id on ties."""
        return (self.created_at, self.id)


@dataclass(frozen=True)
class ConsolidatedContact:
    """Deduplicated view of everything known about one person (one cluster)."""

    primary_contact_id: int
    emails: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    secondary_contact_ids: tuple[int, ...] = ()
