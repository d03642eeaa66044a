"""Application layer: identify pipeline, ports, and DTOs. Depends only on domain."""

from idlink.application.dto import IdentifyRequest, Invalid
from idlink.application.elector import elect
from idlink.application.errors import (
    IdentityError,
    MergeFailure,
    NotFound,
    StoreUnavailable,
)
from idlink.application.formatter import format_view
from idlink.application.identity_service import IdentityService
from idlink.application.locator import locate
from idlink.application.ports import ContactFilter, ContactStore
from idlink.application.upserter import fetch_cluster, upsert

__all__ = [
    "ContactFilter",
    "ContactStore",
    "IdentifyRequest",
    "IdentityError",
    "IdentityService",
    "Invalid",
    "MergeFailure",
    "NotFound",
    "StoreUnavailable",
    "elect",
    "fetch_cluster",
    "format_view",
    "locate",
    "upsert",
]
