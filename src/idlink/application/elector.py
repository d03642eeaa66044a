"""Primary Elector: apply the election planned over the located contacts."""

import logging
from collections.abc import Sequence

from idlink.application.errors import MergeFailure
from idlink.application.ports import ContactStore
from idlink.domain import Contact, plan_election

logger = logging.getLogger(__name__)


def elect(store: ContactStore, contacts: Sequence[Contact]) -> int:
    """Return the id of the single primary for contacts, demoting/relinking as needed.

    Raises MergeFailure if any relink does not apply. Callers run this inside
    store.transaction() so a failed merge leaves nothing half-applied.
    """
    election = plan_election(contacts)
    if not election.is_merge:
        return election.primary_id

    logger.info(
        "Merging %d contact(s) under primary %s",
        len(election.changes),
        election.primary_id,
    )
    for change in election.changes:
        updated = store.update(
            change.contact_id,
            link_precedence=change.link_precedence,
            linked_id=change.linked_id,
        )
        if not updated:
            raise MergeFailure(change.contact_id)
    return election.primary_id
