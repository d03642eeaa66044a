"""Cluster Locator: every live contact transitively connected to an email or phone."""

from idlink.application.ports import ContactFilter, ContactStore
from idlink.domain import Contact, LinkPrecedence


def locate(
    store: ContactStore,
    email: str | None,
    phone_number: str | None,
) -> list[Contact]:
    """Return the complete clusters touched by email or phone_number, ordered by id.

    A direct match may land on any member of a cluster, and the email and phone
    may each land in a different cluster, so the seed set is closed upward to
    the primaries it references and then downward to all their secondaries.
    Empty means no existing identity.
    """
    if email is None and phone_number is None:
        return []

    seed = store.find(ContactFilter(email=email, phone_number=phone_number))
    if not seed:
        return seed

    found = {contact.id: contact for contact in seed}

    linked_ids = frozenset(c.linked_id for c in seed if c.linked_id is not None)
    if linked_ids:
        for contact in store.find(
            ContactFilter(ids=linked_ids, link_precedence=LinkPrecedence.PRIMARY)
        ):
            found.setdefault(contact.id, contact)

    for contact in store.find(
        ContactFilter(
            linked_ids=frozenset(found),
            link_precedence=LinkPrecedence.SECONDARY,
        )
    ):
        found.setdefault(contact.id, contact)

    return [found[cid] for cid in sorted(found)]
