"""Unit tests for the pure cluster graph and election plan. No store involved."""

from datetime import datetime, timedelta, timezone

import pytest

from idlink.domain import ClusterGraph, Contact, LinkChange, LinkPrecedence, plan_election

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

PRIMARY = LinkPrecedence.PRIMARY
SECONDARY = LinkPrecedence.SECONDARY


def _contact(cid, age_minutes, *, email=None, phone=None, linked_id=None) -> Contact:
    return Contact(
        id=cid,
        email=email,
        phone_number=phone,
        linked_id=linked_id,
        link_precedence=SECONDARY if linked_id else PRIMARY,
        created_at=T0 + timedelta(minutes=age_minutes),
    )


def test_build_groups_secondaries_under_primaries() -> None:
    graph = ClusterGraph.build(
        [
            _contact(1, 0, email="a@x.io"),
            _contact(2, 1, phone="111", linked_id=1),
            _contact(3, 2, email="b@x.io"),
        ]
    )
    assert graph.members == {1: [2], 3: []}
    assert [c.id for c in graph.primaries] == [1, 3]


def test_single_primary_is_kept_without_changes() -> None:
    election = plan_election(
        [
            _contact(1, 0, email="a@x.io", phone="111"),
            _contact(2, 5, phone="222", linked_id=1),
        ]
    )
    assert election.primary_id == 1
    assert election.changes == ()
    assert not election.is_merge


def test_two_primaries_merge_under_the_oldest() -> None:
    election = plan_election(
        [
            _contact(2, 10, email="b@x.io", phone="222"),
            _contact(1, 0, email="a@x.io", phone="111"),
        ]
    )
    assert election.primary_id == 1
    assert election.changes == (LinkChange(2, SECONDARY, 1),)


def test_merge_flattens_secondaries_of_demoted_primary() -> None:
    election = plan_election(
        [
            _contact(1, 0, email="a@x.io"),
            _contact(2, 1, phone="111", linked_id=1),
            _contact(3, 2, email="b@x.io"),
            _contact(4, 3, phone="222", linked_id=3),
        ]
    )
    assert election.primary_id == 1
    assert election.changes == (
        LinkChange(3, SECONDARY, 1),
        LinkChange(4, SECONDARY, 1),
    )


def test_merge_elects_by_created_at_not_by_id() -> None:
    election = plan_election(
        [
            _contact(1, 30, email="a@x.io"),
            _contact(7, 0, email="b@x.io"),
        ]
    )
    assert election.primary_id == 7
    assert election.changes == (LinkChange(1, SECONDARY, 7),)


def test_merge_ties_broken_by_lowest_id() -> None:
    election = plan_election(
        [
            _contact(5, 0, email="b@x.io"),
            _contact(3, 0, email="a@x.io"),
        ]
    )
    assert election.primary_id == 3


def test_no_primary_promotes_oldest_and_links_the_rest() -> None:
    election = plan_election(
        [
            _contact(2, 1, phone="111", linked_id=9),
            _contact(3, 2, phone="222", linked_id=9),
        ]
    )
    assert election.primary_id == 2
    assert election.changes == (
        LinkChange(2, PRIMARY, None),
        LinkChange(3, SECONDARY, 2),
    )


def test_empty_contacts_rejected() -> None:
    with pytest.raises(ValueError):
        plan_election([])


def test_secondary_of_missing_primary_is_not_ignored() -> None:
    graph = ClusterGraph.build(
        [
            _contact(2, 1, phone="222", linked_id=1),
            _contact(3, 2, email="b@x.io", phone="333"),
        ]
    )
    assert [c.id for c in graph.orphans] == [2]

    election = plan_election(graph.contacts.values())
    assert election.primary_id == 2
    assert election.changes == (
        LinkChange(2, PRIMARY, None),
        LinkChange(3, SECONDARY, 2),
    )


def test_younger_orphan_is_attached_to_the_live_primary() -> None:
    election = plan_election(
        [
            _contact(3, 0, email="b@x.io"),
            _contact(5, 4, phone="555", linked_id=1),
        ]
    )
    assert election.primary_id == 3
    assert election.changes == (LinkChange(5, SECONDARY, 3),)
