"""In-memory implementation of ContactStore (no DB)."""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from idlink.application.ports import ContactFilter
from idlink.domain import Contact, LinkPrecedence
from idlink.domain.entities import utcnow


class InMemoryContactStore:
    """Stores contacts in a dict keyed by id. Ids are assigned from 1 upward and never reused.
    transaction() serializes callers on one re-entrant lock and restores the
    previous state if the block raises.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._by_id: dict[int, Contact] = {}
        self._last_id = 0
        self._lock = threading.RLock()

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def find(self, contact_filter: ContactFilter) -> list[Contact]:
        with self._lock:
            return [
                self._by_id[cid]
                for cid in sorted(self._by_id)
                if contact_filter.matches(self._by_id[cid])
            ]

    def get_by_id(self, contact_id: int) -> Contact | None:
        contact = self._by_id.get(contact_id)
        if contact is None or contact.deleted_at is not None:
            return None
        return contact

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        with self._lock:
            now = self._clock()
            contact = Contact(
                id=self._next_id(),
                email=email,
                phone_number=phone_number,
                linked_id=linked_id,
                link_precedence=link_precedence,
                created_at=now,
                updated_at=now,
            )
            self._by_id[contact.id] = contact
            return contact

    def update(
        self,
        contact_id: int,
        *,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> bool:
        with self._lock:
            contact = self.get_by_id(contact_id)
            if contact is None:
                return False
            self._by_id[contact_id] = replace(
                contact,
                link_precedence=link_precedence,
                linked_id=linked_id,
                updated_at=self._clock(),
            )
            return True

    def soft_delete(self, contact_id: int) -> bool:
        with self._lock:
            contact = self.get_by_id(contact_id)
            if contact is None:
                return False
            now = self._clock()
            self._by_id[contact_id] = replace(contact, deleted_at=now, updated_at=now)
            return True

    @contextmanager
    def transaction(self) -> Iterator["InMemoryContactStore"]:
        with self._lock:
            snapshot = dict(self._by_id)
            try:
                yield self
            except BaseException:
                self._by_id = snapshot
                raise
