"""Internal failures of the identify pipeline. Never user-correctable."""


class IdentityError(Exception):
    """Base class for identify pipeline failures."""


class NotFound(IdentityError):
    def __init__(self, contact_id: int) -> None:
        super().__init__(f"Contact {contact_id} not found.")
        self.contact_id = contact_id


class MergeFailure(IdentityError):
    def __init__(self, contact_id: int) -> None:
        super().__init__(f"Could not relink contact {contact_id} during merge.")
        self.contact_id = contact_id


class StoreUnavailable(IdentityError):
    """The contact store could not be reached or failed mid-request."""
