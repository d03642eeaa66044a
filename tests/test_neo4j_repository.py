"""Integration tests for Neo4jContactStore. Require Docker
(testcontainers); skipped when no container can be started."""

import itertools
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest
from neo4j.exceptions import ServiceUnavailable

from idlink.application import (
    ContactFilter,
    IdentifyRequest,
    IdentityService,
    MergeFailure,
    StoreUnavailable,
)
from idlink.domain import LinkPrecedence
from idlink.infrastructure import Neo4jContactStore, ensure_contact_schema
from idlink.infrastructure.persistence.neo4j_repository import (
    _build_find_query,
    _CypherContactStore,
)

PRIMARY = LinkPrecedence.PRIMARY
SECONDARY = LinkPrecedence.SECONDARY


@pytest.fixture(scope="session")
def neo4j_driver():
    neo4j_containers = pytest.importorskip("testcontainers.neo4j")
    container = neo4j_containers.Neo4jContainer()
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Neo4j container unavailable: {e}")
    driver = container.get_driver()
    try:
        ensure_contact_schema(driver)
        yield driver
    finally:
        driver.close()
        container.stop()


@pytest.fixture
def clean_neo4j(neo4j_driver):
    """Clear the graph before each test so tests are independent."""
    with neo4j_driver.session() as session:
        session.run("MATCH (n) DETACH DELETE n")
    yield neo4j_driver


def _store(driver) -> Neo4jContactStore:
    ticks = itertools.count()
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Neo4jContactStore(
        driver, clock=lambda: start + timedelta(seconds=next(ticks))
    )


def _ids(contacts) -> list[int]:
    return [c.id for c in contacts]


class _FailingMergeStore(Neo4jContactStore):
    """Relinks of one contact never match, as if it vanished mid-merge."""

    def __init__(self, driver, fail_on: int) -> None:
        ticks = itertools.count()
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        super().__init__(driver, clock=lambda: start + timedelta(seconds=next(ticks)))
        self._fail_on = fail_on

    @contextmanager
    def transaction(self):
        with super().transaction() as tx:
            update = tx.update

            def failing_update(contact_id, **fields):
                if contact_id == self._fail_on:
                    return False
                return update(contact_id, **fields)

            tx.update = failing_update
            yield tx


def test_create_get_by_id_find(clean_neo4j):
    store = _store(clean_neo4j)
    a = store.create(email="a@x.io", phone_number="111", link_precedence=PRIMARY)
    b = store.create(email=None, phone_number="222", link_precedence=SECONDARY, linked_id=a.id)

    assert (a.id, b.id) == (1, 2)
    found = store.get_by_id(b.id)
    assert found == b
    assert found.email is None
    assert found.linked_id == a.id
    assert found.created_at > a.created_at

    assert _ids(store.find(ContactFilter())) == [1, 2]
    assert _ids(store.find(ContactFilter(email="a@x.io", phone_number="222"))) == [1, 2]
    assert _ids(store.find(ContactFilter(linked_ids=frozenset({1}), link_precedence=SECONDARY))) == [2]
    assert _ids(store.find(ContactFilter(ids=frozenset({1, 2}), link_precedence=PRIMARY))) == [1]
    assert store.get_by_id(99) is None


def test_update_and_soft_delete(clean_neo4j):
    store = _store(clean_neo4j)
    store.create(email="a@x.io", phone_number=None, link_precedence=PRIMARY)
    store.create(email="b@x.io", phone_number=None, link_precedence=PRIMARY)

    assert store.update(2, link_precedence=SECONDARY, linked_id=1) is True
    relinked = store.get_by_id(2)
    assert relinked.link_precedence is SECONDARY
    assert relinked.linked_id == 1

    assert store.update(1, link_precedence=PRIMARY, linked_id=None) is True
    assert store.get_by_id(1).linked_id is None

    assert store.soft_delete(2) is True
    assert store.get_by_id(2) is None
    assert _ids(store.find(ContactFilter(email="b@x.io"))) == []
    assert store.update(2, link_precedence=PRIMARY, linked_id=None) is False
    assert store.soft_delete(2) is False


def test_transaction_rolls_back_on_error(clean_neo4j):
    store = _store(clean_neo4j)
    store.create(email="a@x.io", phone_number=None, link_precedence=PRIMARY)

    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.create(email="b@x.io", phone_number=None, link_precedence=PRIMARY)
            tx.update(1, link_precedence=SECONDARY, linked_id=2)
            raise RuntimeError("boom")

    assert _ids(store.find(ContactFilter())) == [1]
    assert store.get_by_id(1).link_precedence is PRIMARY


def test_identify_merge_end_to_end(clean_neo4j):
    store = _store(clean_neo4j)
    service = IdentityService(store)
    service.identify(IdentifyRequest(email="a@x.io", phone_number="111"))
    service.identify(IdentifyRequest(email="a@x.io", phone_number="222"))
    service.identify(IdentifyRequest(email="b@x.io", phone_number="333"))

    view = service.identify(IdentifyRequest(email="b@x.io", phone_number="222"))
    assert view.primary_contact_id == 1
    assert view.emails == ("a@x.io", "b@x.io")
    assert view.phone_numbers == ("111", "222", "333")
    assert view.secondary_contact_ids == (2, 3)

    demoted = store.get_by_id(3)
    assert demoted.link_precedence is SECONDARY
    assert demoted.linked_id == 1


def test_failed_merge_leaves_nothing_applied(clean_neo4j):
    store = _FailingMergeStore(clean_neo4j, fail_on=3)
    service = IdentityService(store)
    service.identify(IdentifyRequest(email="a@x.io", phone_number="111"))
    service.identify(IdentifyRequest(email="b@x.io", phone_number="222"))
    service.identify(IdentifyRequest(email="b@x.io", phone_number="333"))

    with pytest.raises(MergeFailure):
        service.identify(IdentifyRequest(email="a@x.io", phone_number="222"))

    assert store.get_by_id(2).link_precedence is PRIMARY
    assert store.get_by_id(3).linked_id == 2


def test_ensure_contact_schema_is_idempotent(clean_neo4j):
    ensure_contact_schema(clean_neo4j)
    ensure_contact_schema(clean_neo4j)
    with clean_neo4j.session() as session:
        result = session.run("SHOW CONSTRAINTS YIELD name RETURN collect(name) AS names")
        names = result.single()["names"]
    assert "contact_id_unique" in names


class _UnreachableDriver:
    def session(self):
        raise ServiceUnavailable("Connection refused")


def test_unreachable_driver_raises_store_unavailable():
    store = Neo4jContactStore(_UnreachableDriver())
    with pytest.raises(StoreUnavailable):
        store.get_by_id(1)
    with pytest.raises(StoreUnavailable):
        with store.transaction():
            pass


def test_find_query_combines_identifier_clause_with_set_clauses():
    query, params = _build_find_query(
        ContactFilter(
            email="a@x.io",
            phone_number="111",
            linked_ids=frozenset({3, 1}),
            link_precedence=SECONDARY,
        )
    )
    assert "(c.email = $email OR c.phone_number = $phone_number)" in query
    assert "c.deleted_at IS NULL" in query
    assert params == {
        "email": "a@x.io",
        "phone_number": "111",
        "linked_ids": [1, 3],
        "link_precedence": "secondary",
    }


def test_query_base_requires_a_runner() -> None:
    with pytest.raises(TypeError):
        _CypherContactStore(clock=datetime.now)
