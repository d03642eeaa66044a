"""Domain layer: entities and the cluster graph. No dependencies on outer layers."""

from idlink.domain.cluster import ClusterGraph, Election, LinkChange, plan_election
from idlink.domain.entities import ConsolidatedContact, Contact, LinkPrecedence

__all__ = [
    "ClusterGraph",
    "ConsolidatedContact",
    "Contact",
    "Election",
    "LinkChange",
    "LinkPrecedence",
    "plan_election",
]
