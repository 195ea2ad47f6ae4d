from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .schema import UNIQUE_PROPERTIES, check_rel_type, key_of
from .store import EdgeRow, EdgeSpec, MissingNode, NodeRef, UniqueViolation

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Edge:
    rel_type: str
    src: NodeRef
    dst: NodeRef
    props: dict[str, Any] = field(default_factory=dict)


class InMemoryGraphStore:
    """Process-local graph store.

    One re-entrant lock serializes every operation, which gives the same
    check-then-create and swap atomicity the Neo4j store gets from write
    transactions. Returned dicts are copies.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[str, dict[str, dict[str, Any]]] = {}
        self._edges: list[_Edge] = []

    def ensure_schema(self) -> None:
        with self._lock:
            for label in UNIQUE_PROPERTIES:
                self._nodes.setdefault(label, {})

    def close(self) -> None:
        pass

    # --- nodes ---

    def _table(self, label: str) -> dict[str, dict[str, Any]]:
        key_of(label)
        return self._nodes.setdefault(label, {})

    @staticmethod
    def _matches(
        props: Mapping[str, Any],
        filters: Mapping[str, Any] | None,
        where_in: Mapping[str, Sequence[Any]] | None = None,
    ) -> bool:
        for k, v in (filters or {}).items():
            if props.get(k) != v:
                return False
        for k, values in (where_in or {}).items():
            if props.get(k) not in values:
                return False
        return True

    def find_one(self, label: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        with self._lock:
            for props in self._table(label).values():
                if self._matches(props, filters):
                    return copy.deepcopy(props)
        return None

    def find_many(
        self,
        label: str,
        filters: Mapping[str, Any] | None = None,
        *,
        where_in: Mapping[str, Sequence[Any]] | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(props)
                for props in self._table(label).values()
                if self._matches(props, filters, where_in)
            ]

    def create_node(
        self,
        label: str,
        props: Mapping[str, Any],
        *,
        owned_by: tuple[str, NodeRef] | None = None,
    ) -> dict[str, Any]:
        key_prop = key_of(label)
        if props.get(key_prop) in (None, ""):
            raise ValueError(f"{label} requires a {key_prop!r} property")
        if owned_by:
            check_rel_type(owned_by[0])
        with self._lock:
            table = self._table(label)
            for prop in UNIQUE_PROPERTIES.get(label, ()):
                value = props.get(prop)
                if value is None:
                    continue
                if any(existing.get(prop) == value for existing in table.values()):
                    raise UniqueViolation(label, prop)
            if owned_by:
                self._require(owned_by[1])
            node = copy.deepcopy(dict(props))
            table[str(node[key_prop])] = node
            if owned_by:
                rel_type, owner = owned_by
                self._edges.append(_Edge(rel_type, owner, NodeRef(label, str(node[key_prop]))))
            logger.debug("created %s %s", label, node[key_prop])
            return copy.deepcopy(node)

    def update_node(self, ref: NodeRef, props: Mapping[str, Any]) -> dict[str, Any] | None:
        if ref.key_prop in props:
            raise ValueError("the key property of a node cannot be updated")
        with self._lock:
            node = self._table(ref.label).get(ref.key)
            if node is None:
                return None
            node.update(copy.deepcopy(dict(props)))
            return copy.deepcopy(node)

    def delete_node(self, ref: NodeRef) -> bool:
        with self._lock:
            if self._table(ref.label).pop(ref.key, None) is None:
                return False
            self._edges = [e for e in self._edges if e.src != ref and e.dst != ref]
            logger.debug("deleted %s %s with its edges", ref.label, ref.key)
            return True

    def _require(self, ref: NodeRef) -> dict[str, Any]:
        node = self._table(ref.label).get(ref.key)
        if node is None:
            raise MissingNode(ref)
        return node

    # --- edges ---

    def _find_edges(
        self, rel_type: str, src: NodeRef | None = None, dst: NodeRef | None = None
    ) -> list[_Edge]:
        return [
            e
            for e in self._edges
            if e.rel_type == rel_type
            and (src is None or e.src == src)
            and (dst is None or e.dst == dst)
        ]

    def create_edge(
        self,
        rel_type: str,
        src: NodeRef,
        dst: NodeRef,
        props: Mapping[str, Any] | None = None,
        *,
        unique: bool = False,
    ) -> bool:
        check_rel_type(rel_type)
        with self._lock:
            self._require(src)
            self._require(dst)
            if unique and self._find_edges(rel_type, src, dst):
                return False
            self._edges.append(_Edge(rel_type, src, dst, copy.deepcopy(dict(props or {}))))
            return True

    def delete_edge(self, rel_type: str, src: NodeRef, dst: NodeRef) -> int:
        check_rel_type(rel_type)
        with self._lock:
            doomed = self._find_edges(rel_type, src, dst)
            self._edges = [e for e in self._edges if e not in doomed]
            return len(doomed)

    def swap_edges(self, *, delete: EdgeSpec, create: Sequence[EdgeSpec]) -> bool:
        check_rel_type(delete.rel_type)
        for spec in create:
            check_rel_type(spec.rel_type)
        with self._lock:
            doomed = self._find_edges(delete.rel_type, delete.src, delete.dst)
            if not doomed:
                return False
            for spec in create:
                self._require(spec.src)
                self._require(spec.dst)
            self._edges.remove(doomed[0])
            for spec in create:
                if not self._find_edges(spec.rel_type, spec.src, spec.dst):
                    self._edges.append(
                        _Edge(spec.rel_type, spec.src, spec.dst, copy.deepcopy(spec.props))
                    )
            return True

    def edges(
        self, rel_type: str, *, src: NodeRef | None = None, dst: NodeRef | None = None
    ) -> list[EdgeRow]:
        check_rel_type(rel_type)
        with self._lock:
            rows = []
            for e in self._find_edges(rel_type, src, dst):
                a = self._table(e.src.label).get(e.src.key)
                b = self._table(e.dst.label).get(e.dst.key)
                if a is None or b is None:
                    continue
                rows.append(
                    EdgeRow(e.rel_type, copy.deepcopy(a), copy.deepcopy(b), copy.deepcopy(e.props))
                )
            return rows

    def export(self) -> dict[str, list[dict[str, Any]]]:
        with self._lock:
            nodes = [
                {"label": label, "properties": copy.deepcopy(props)}
                for label, table in self._nodes.items()
                for props in table.values()
            ]
            edges = [
                {
                    "type": e.rel_type,
                    "src": {"label": e.src.label, "key": e.src.key},
                    "dst": {"label": e.dst.label, "key": e.dst.key},
                    "properties": copy.deepcopy(e.props),
                }
                for e in self._edges
            ]
            return {"nodes": nodes, "edges": edges}
