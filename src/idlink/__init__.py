"""
idlink core: clean-architecture layout.

- domain: entities (Contact, ConsolidatedContact) and the cluster graph / election plan.
- application: the identify pipeline (locate, elect, upsert, format), IdentityService, ports, DTOs.
- infrastructure: adapters (InMemoryContactStore, Neo4jContactStore) and identifier normalization.
"""

from idlink.application import (
    ContactFilter,
    ContactStore,
    IdentifyRequest,
    IdentityError,
    IdentityService,
    Invalid,
    MergeFailure,
    NotFound,
    StoreUnavailable,
)
from idlink.domain import ConsolidatedContact, Contact, LinkPrecedence
from idlink.infrastructure import InMemoryContactStore, Neo4jContactStore

__all__ = [
    "ConsolidatedContact",
    "Contact",
    "ContactFilter",
    "ContactStore",
    "IdentifyRequest",
    "IdentityError",
    "IdentityService",
    "InMemoryContactStore",
    "Invalid",
    "LinkPrecedence",
    "MergeFailure",
    "Neo4jContactStore",
    "NotFound",
    "StoreUnavailable",
]
