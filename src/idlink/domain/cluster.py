"""In-memory cluster graph built once per request from a flat set of contacts.

Election is a pure function over the graph: it decides the surviving primary and
the precedence/link changes needed so every other contact points straight at it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from idlink.domain.entities import Contact, LinkPrecedence


@dataclass(frozen=True)
class LinkChange:
    contact_id: int
    link_precedence: LinkPrecedence
    linked_id: int | None


@dataclass(frozen=True)
class Election:
    primary_id: int
    changes: tuple[LinkChange, ...] = ()

    @property
    def is_merge(self) -> bool:
        return bool(self.changes)


@dataclass
class ClusterGraph:
    """Primaries and the secondaries hanging off each of them, keyed by id."""

    contacts: dict[int, Contact] = field(default_factory=dict)
    members: dict[int, list[int]] = field(default_factory=dict)

    @classmethod
    def build(cls, contacts: Iterable[Contact]) -> "ClusterGraph":
        graph = cls()
        for contact in contacts:
            graph.contacts[contact.id] = contact
        for contact in graph.contacts.values():
            if contact.is_primary:
                graph.members.setdefault(contact.id, [])
        for contact in graph.contacts.values():
            if not contact.is_primary and contact.linked_id in graph.members:
                graph.members[contact.linked_id].append(contact.id)
        return graph

    @property
    def primaries(self) -> list[Contact]:
        return sorted(
            (self.contacts[pid] for pid in self.members),
            key=lambda c: c.age_key,
        )

    @property
    def orphans(self) -> list[Contact]:
        """Secondaries whose primary is not among the contacts (e.g. it was soft-deleted)."""
        attached = {cid for ids in self.members.values() for cid in ids}
        return [
            c for c in self.contacts.values() if not c.is_primary and c.id not in attached
        ]

    def oldest(self) -> Contact:
        return min(self.contacts.values(), key=lambda c: c.age_key)


def plan_election(contacts: Iterable[Contact]) -> Election:
    """Elect the single primary for the given contacts.

    With exactly one primary present and every secondary attached to it, it is
    kept and nothing changes. With none, several (two clusters bridged by one
    submission), or secondaries left pointing at a missing primary, the oldest
    contact wins and everything else is flattened under it.
    """
    graph = ClusterGraph.build(contacts)
    if not graph.contacts:
        raise ValueError("Cannot elect a primary from an empty set of contacts.")

    primaries = graph.primaries
    if len(primaries) == 1 and not graph.orphans:
        return Election(primary_id=primaries[0].id)

    elected = graph.oldest()
    changes = []
    if not elected.is_primary or elected.linked_id is not None:
        changes.append(LinkChange(elected.id, LinkPrecedence.PRIMARY, None))
    for contact in sorted(graph.contacts.values(), key=lambda c: c.id):
        if contact.id == elected.id:
            continue
        if (
            contact.link_precedence is LinkPrecedence.SECONDARY
            and contact.linked_id == elected.id
        ):
            continue
        changes.append(LinkChange(contact.id, LinkPrecedence.SECONDARY, elected.id))
    return Election(primary_id=elected.id, changes=tuple(changes))
