"""Application ports (interfaces). Implemented by infrastructure adapters."""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Protocol

from idlink.domain import Contact, LinkPrecedence


@dataclass(frozen=True)
class ContactFilter:
    """Predicate over live (non-deleted) contacts.

    email and phone_number form one OR-ed identifier clause; ids, linked_ids and
    link_precedence are AND-ed onto it. Unset fields do not constrain.
    """

    email: str | None = None
    phone_number: str | None = None
    ids: frozenset[int] | None = None
    linked_ids: frozenset[int] | None = None
    link_precedence: LinkPrecedence | None = None

    def matches(self, contact: Contact) -> bool:
        if contact.deleted_at is not None:
            return False
        if self.email is not None or self.phone_number is not None:
            hit_email = self.email is not None and contact.email == self.email
            hit_phone = (
                self.phone_number is not None
                and contact.phone_number == self.phone_number
            )
            if not (hit_email or hit_phone):
                return False
        if self.ids is not None and contact.id not in self.ids:
            return False
        if self.linked_ids is not None and contact.linked_id not in self.linked_ids:
            return False
        if (
            self.link_precedence is not None
            and contact.link_precedence is not self.link_precedence
        ):
            return False
        return True


class ContactStore(Protocol):
    """Persists and queries Contact records. Soft-deleted rows are never returned."""

    def find(self, contact_filter: ContactFilter) -> list[Contact]:
        """Return live contacts matching the filter, ordered by id."""
        ...

    def get_by_id(self, contact_id: int) -> Contact | None:
        """Return the live contact with the given id, or None."""
        ...

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        """Store a new contact. The store assigns id, created_at and updated_at."""
        ...

    def update(
        self,
        contact_id: int,
        *,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> bool:
        """Relink a contact. Returns True if updated, False if no live contact matched."""
        ...

    def soft_delete(self, contact_id: int) -> bool:
        """Mark a contact deleted. Returns True if marked, False if not found."""
        ...

    def transaction(self) -> AbstractContextManager["ContactStore"]:
        """Atomic, serialized unit of work. Yields a store bound to it."""
        ...
