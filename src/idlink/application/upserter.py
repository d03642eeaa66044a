"""Fragment Upserter: store the submitted identifiers if they add anything new."""

from idlink.application.errors import NotFound
from idlink.application.ports import ContactFilter, ContactStore
from idlink.domain import Contact, LinkPrecedence


def fetch_cluster(store: ContactStore, primary_id: int) -> tuple[Contact, list[Contact]]:
    """Return (primary, secondaries) for a primary id. Raises NotFound if it is gone."""
    primary = store.get_by_id(primary_id)
    if primary is None:
        raise NotFound(primary_id)
    secondaries = store.find(
        ContactFilter(
            linked_ids=frozenset({primary_id}),
            link_precedence=LinkPrecedence.SECONDARY,
        )
    )
    return primary, secondaries


def upsert(
    store: ContactStore,
    primary_id: int | None,
    email: str | None,
    phone_number: str | None,
) -> Contact | None:
    """Create a primary (no primary_id) or one secondary holding only the new values.

    Returns the created contact, or None when the submission was fully redundant.
    """
    if primary_id is None:
        return store.create(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.PRIMARY,
        )

    primary, secondaries = fetch_cluster(store, primary_id)
    cluster = [primary, *secondaries]
    known_emails = {c.email for c in cluster if c.email}
    known_phones = {c.phone_number for c in cluster if c.phone_number}

    new_email = email if email and email not in known_emails else None
    new_phone = phone_number if phone_number and phone_number not in known_phones else None
    if new_email is None and new_phone is None:
        return None

    return store.create(
        email=new_email,
        phone_number=new_phone,
        link_precedence=LinkPrecedence.SECONDARY,
        linked_id=primary.id,
    )
