"""View Formatter: deduplicated public view of one cluster."""

from collections.abc import Iterable

from idlink.domain import ConsolidatedContact, Contact


def _unique(values: Iterable[str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


def format_view(primary: Contact, secondaries: Iterable[Contact]) -> ConsolidatedContact:
    """Primary's values first, then secondaries by ascending id; first seen wins."""
    ordered = sorted(
        (c for c in secondaries if c.id != primary.id),
        key=lambda c: c.id,
    )
    members = [primary, *ordered]
    return ConsolidatedContact(
        primary_contact_id=primary.id,
        emails=_unique(c.email for c in members),
        phone_numbers=_unique(c.phone_number for c in members),
        secondary_contact_ids=tuple(c.id for c in ordered),
    )
