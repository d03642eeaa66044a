"""Identify flow: locate -> elect -> upsert -> re-fetch -> format, in one transaction."""

import logging
from collections.abc import Callable

from idlink.application.dto import IdentifyRequest, Invalid
from idlink.application.elector import elect
from idlink.application.formatter import format_view
from idlink.application.locator import locate
from idlink.application.ports import ContactStore
from idlink.application.upserter import fetch_cluster, upsert
from idlink.domain import ConsolidatedContact

logger = logging.getLogger(__name__)

Normalizer = Callable[[str | int | None], str | None]


def _strip(value: str | int | None) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


class IdentityService:
    """Resolves a submitted (email, phone) pair to the cluster of the person it belongs to."""

    def __init__(
        self,
        store: ContactStore,
        *,
        normalize_email: Normalizer | None = None,
        normalize_phone: Normalizer | None = None,
    ) -> None:
        self._store = store
        self._normalize_email = normalize_email or _strip
        self._normalize_phone = normalize_phone or _strip

    def identify(self, request: IdentifyRequest) -> ConsolidatedContact | Invalid:
        """Return the consolidated view for the submission, or Invalid if it has no identifier.

        Raises IdentityError subclasses on internal failure; the transaction is
        rolled back, so no partial merge or fragment survives.
        """
        email = self._normalize_email(request.email)
        phone_number = self._normalize_phone(request.phone_number)
        if email is None and phone_number is None:
            return Invalid(reason="At least one of email or phoneNumber must be provided")

        with self._store.transaction() as tx:
            contacts = locate(tx, email, phone_number)
            primary_id = elect(tx, contacts) if contacts else None
            created = upsert(tx, primary_id, email, phone_number)
            if primary_id is None:
                primary_id = created.id
                logger.info("New identity: primary contact %s", primary_id)
            elif created is not None:
                logger.info(
                    "Extended cluster %s with secondary contact %s", primary_id, created.id
                )
            else:
                logger.debug("Redundant submission for cluster %s", primary_id)
            primary, secondaries = fetch_cluster(tx, primary_id)
        return format_view(primary, secondaries)

    def get_cluster(self, contact_id: int) -> ConsolidatedContact | None:
        """Return the view of the cluster containing contact_id, or None if unknown.

        A secondary whose primary was soft-deleted belongs to no cluster until the
        next identify touching it relinks it, so it resolves to None as well.
        """
        contact = self._store.get_by_id(contact_id)
        if contact is None:
            return None
        primary_id = contact.id if contact.is_primary else contact.linked_id
        if self._store.get_by_id(primary_id) is None:
            return None
        primary, secondaries = fetch_cluster(self._store, primary_id)
        return format_view(primary, secondaries)
