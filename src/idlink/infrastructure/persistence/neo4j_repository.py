"""Neo4j implementation of ContactStore.
Graph: one (:Contact) node per fragment; the cluster link is the linked_id property, not a relationship,
so relinking during a merge is a property update. Integer ids come from a (:ContactSequence) counter node.
Identify transactions write the (:IdentifyLock) node first, so they serialize on its write lock.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from neo4j.exceptions import ServiceUnavailable, SessionExpired, TransientError

from idlink.application.errors import StoreUnavailable
from idlink.application.ports import ContactFilter
from idlink.domain import Contact, LinkPrecedence
from idlink.domain.entities import utcnow

_SCHEMA_QUERIES = (
    "CREATE CONSTRAINT contact_id_unique IF NOT EXISTS FOR (c:Contact) REQUIRE c.id IS UNIQUE",
    "CREATE CONSTRAINT contact_sequence_unique IF NOT EXISTS "
    "FOR (s:ContactSequence) REQUIRE s.name IS UNIQUE",
    "CREATE CONSTRAINT identify_lock_unique IF NOT EXISTS "
    "FOR (l:IdentifyLock) REQUIRE l.name IS UNIQUE",
    "CREATE INDEX contact_email IF NOT EXISTS FOR (c:Contact) ON (c.email)",
    "CREATE INDEX contact_phone_number IF NOT EXISTS FOR (c:Contact) ON (c.phone_number)",
    "CREATE INDEX contact_linked_id IF NOT EXISTS FOR (c:Contact) ON (c.linked_id)",
)

_LOCK_QUERY = """
MERGE (l:IdentifyLock {name: 'contacts'})
SET l.acquired_at = $now
"""

_CREATE_QUERY = """
MERGE (s:ContactSequence {name: 'contact'})
ON CREATE SET s.value = 0
SET s.value = s.value + 1
WITH s.value AS next_id
CREATE (c:Contact {
    id: next_id,
    email: $email,
    phone_number: $phone_number,
    linked_id: $linked_id,
    link_precedence: $link_precedence,
    created_at: $now,
    updated_at: $now
})
RETURN c
"""

_GET_BY_ID_QUERY = """
MATCH (c:Contact {id: $id})
WHERE c.deleted_at IS NULL
RETURN c
"""

_UPDATE_QUERY = """
MATCH (c:Contact {id: $id})
WHERE c.deleted_at IS NULL
SET c.link_precedence = $link_precedence,
    c.linked_id = $linked_id,
    c.updated_at = $now
RETURN c.id AS id
"""

_SOFT_DELETE_QUERY = """
MATCH (c:Contact {id: $id})
WHERE c.deleted_at IS NULL
SET c.deleted_at = $now, c.updated_at = $now
RETURN c.id AS id
"""


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def _iso_to_datetime(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except (ServiceUnavailable, SessionExpired, TransientError) as e:
        raise StoreUnavailable(str(e)) from e


def ensure_contact_schema(driver) -> None:
    """Create constraints and indexes used by the identify flow if missing."""
    with _store_errors(), driver.session() as session:
        for query in _SCHEMA_QUERIES:
            session.run(query)


def _build_find_query(contact_filter: ContactFilter) -> tuple[str, dict]:
    conditions = ["c.deleted_at IS NULL"]
    params: dict = {}
    identifier = []
    if contact_filter.email is not None:
        identifier.append("c.email = $email")
        params["email"] = contact_filter.email
    if contact_filter.phone_number is not None:
        identifier.append("c.phone_number = $phone_number")
        params["phone_number"] = contact_filter.phone_number
    if identifier:
        conditions.append("(" + " OR ".join(identifier) + ")")
    if contact_filter.ids is not None:
        conditions.append("c.id IN $ids")
        params["ids"] = sorted(contact_filter.ids)
    if contact_filter.linked_ids is not None:
        conditions.append("c.linked_id IN $linked_ids")
        params["linked_ids"] = sorted(contact_filter.linked_ids)
    if contact_filter.link_precedence is not None:
        conditions.append("c.link_precedence = $link_precedence")
        params["link_precedence"] = contact_filter.link_precedence.value
    query = "MATCH (c:Contact)\nWHERE " + "\n  AND ".join(conditions) + "\nRETURN c\nORDER BY c.id"
    return query, params


class _CypherContactStore(ABC):
    """Contact queries over anything with run(): a session or an open transaction."""

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self._clock = clock

    @abstractmethod
    def _run(self, query: str, **params) -> list:
        """Run query with params and return its records."""

    def _now(self) -> str:
        return _datetime_to_iso(self._clock())

    def find(self, contact_filter: ContactFilter) -> list[Contact]:
        query, params = _build_find_query(contact_filter)
        return [_record_to_contact(rec) for rec in self._run(query, **params)]

    def get_by_id(self, contact_id: int) -> Contact | None:
        records = self._run(_GET_BY_ID_QUERY, id=contact_id)
        if not records:
            return None
        return _record_to_contact(records[0])

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        if not email and not phone_number:
            raise ValueError("Contact must have an email or a phone number.")
        records = self._run(
            _CREATE_QUERY,
            email=email,
            phone_number=phone_number,
            linked_id=linked_id,
            link_precedence=LinkPrecedence(link_precedence).value,
            now=self._now(),
        )
        return _record_to_contact(records[0])

    def update(
        self,
        contact_id: int,
        *,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> bool:
        records = self._run(
            _UPDATE_QUERY,
            id=contact_id,
            link_precedence=LinkPrecedence(link_precedence).value,
            linked_id=linked_id,
            now=self._now(),
        )
        return bool(records)

    def soft_delete(self, contact_id: int) -> bool:
        records = self._run(_SOFT_DELETE_QUERY, id=contact_id, now=self._now())
        return bool(records)


class _TransactionContactStore(_CypherContactStore):
    def __init__(self, tx, clock: Callable[[], datetime]) -> None:
        super().__init__(clock)
        self._tx = tx

    def _run(self, query: str, **params) -> list:
        with _store_errors():
            return list(self._tx.run(query, **params))

    @contextmanager
    def transaction(self) -> Iterator["_TransactionContactStore"]:
        yield self


class Neo4jContactStore(_CypherContactStore):
    """Stores contacts in Neo4j. Each call outside transaction() runs in its own session."""

    def __init__(
        self,
        driver: object,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(clock)
        self._driver = driver

    def _run(self, query: str, **params) -> list:
        with _store_errors(), self._driver.session() as session:
            return list(session.run(query, **params))

    @contextmanager
    def transaction(self) -> Iterator[_TransactionContactStore]:
        """One explicit Neo4j transaction, committed on success and rolled back on error."""
        with _store_errors(), self._driver.session() as session:
            with session.begin_transaction() as tx:
                tx.run(_LOCK_QUERY, now=self._now())
                yield _TransactionContactStore(tx, self._clock)
                tx.commit()


def _record_to_contact(record) -> Contact:
    c = record["c"]
    deleted_at = c.get("deleted_at")
    return Contact(
        id=c["id"],
        email=c.get("email") or None,
        phone_number=c.get("phone_number") or None,
        linked_id=c.get("linked_id"),
        link_precedence=LinkPrecedence(c["link_precedence"]),
        created_at=_iso_to_datetime(c["created_at"]),
        updated_at=_iso_to_datetime(c["updated_at"]),
        deleted_at=_iso_to_datetime(deleted_at) if deleted_at else None,
    )
