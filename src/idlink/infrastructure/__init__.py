"""Infrastructure layer: concrete implementations of application ports."""

from idlink.infrastructure.memory_repository import InMemoryContactStore
from idlink.infrastructure.normalize import (
    email_key,
    phone_key,
    phone_normalizer,
)
from idlink.infrastructure.persistence.neo4j_repository import (
    Neo4jContactStore,
    ensure_contact_schema,
)

__all__ = [
    "InMemoryContactStore",
    "Neo4jContactStore",
    "email_key",
    "ensure_contact_schema",
    "phone_key",
    "phone_normalizer",
]
