from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .schema import key_of


class StoreError(Exception):
    """Raised by graph store implementations."""


class UniqueViolation(StoreError):
    def __init__(self, label: str, prop: str | None = None):
        self.label = label
        self.prop = prop
        what = f"{label}.{prop}" if prop else label
        super().__init__(f"unique constraint violated on {what}")


class MissingNode(StoreError):
    def __init__(self, ref: NodeRef):
        self.ref = ref
        super().__init__(f"{ref.label} {ref.key!r} does not exist")


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Points at one node by its label and key property value."""

    label: str
    key: str

    @property
    def key_prop(self) -> str:
        return key_of(self.label)


@dataclass(frozen=True, slots=True)
class EdgeSpec:
    rel_type: str
    src: NodeRef
    dst: NodeRef
    props: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EdgeRow:
    """One traversed edge with the properties of both endpoints."""

    rel_type: str
    src: dict[str, Any]
    dst: dict[str, Any]
    props: dict[str, Any] = field(default_factory=dict)


class GraphStore(Protocol):
    """Abstraction for the backing graph database.

    Every method is a single atomic step. `create_node` and
    `create_edge(unique=True)` check and create indivisibly; `swap_edges`
    deletes one edge and ensures the others in one transaction.
    """

    def ensure_schema(self) -> None: ...

    def close(self) -> None: ...

    def find_one(self, label: str, filters: Mapping[str, Any]) -> dict[str, Any] | None: ...

    def find_many(
        self,
        label: str,
        filters: Mapping[str, Any] | None = None,
        *,
        where_in: Mapping[str, Sequence[Any]] | None = None,
    ) -> list[dict[str, Any]]: ...

    def create_node(
        self,
        label: str,
        props: Mapping[str, Any],
        *,
        owned_by: tuple[str, NodeRef] | None = None,
    ) -> dict[str, Any]:
        """Create a node; with `owned_by=(rel_type, owner)` also link owner -> node."""
        ...

    def update_node(self, ref: NodeRef, props: Mapping[str, Any]) -> dict[str, Any] | None: ...

    def delete_node(self, ref: NodeRef) -> bool: ...

    def create_edge(
        self,
        rel_type: str,
        src: NodeRef,
        dst: NodeRef,
        props: Mapping[str, Any] | None = None,
        *,
        unique: bool = False,
    ) -> bool: ...

    def delete_edge(self, rel_type: str, src: NodeRef, dst: NodeRef) -> int: ...

    def swap_edges(self, *, delete: EdgeSpec, create: Sequence[EdgeSpec]) -> bool: ...

    def edges(
        self, rel_type: str, *, src: NodeRef | None = None, dst: NodeRef | None = None
    ) -> list[EdgeRow]: ...

    def export(self) -> dict[str, list[dict[str, Any]]]: ...
