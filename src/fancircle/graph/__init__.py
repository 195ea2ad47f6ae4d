"""Graph storage for the community graph.

- `GraphStore`: the protocol the core consumes
- `InMemoryGraphStore`: lock-guarded process-local implementation
- `Neo4jGraphStore` (in `neo4j_store`): production implementation
"""

from .memory_store import InMemoryGraphStore
from .store import EdgeRow, EdgeSpec, GraphStore, MissingNode, NodeRef, StoreError, UniqueViolation

__all__ = [
    "EdgeRow",
    "EdgeSpec",
    "GraphStore",
    "InMemoryGraphStore",
    "MissingNode",
    "NodeRef",
    "StoreError",
    "UniqueViolation",
]
