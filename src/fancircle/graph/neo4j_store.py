from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from neo4j import GraphDatabase
from neo4j.exceptions import ConstraintError, ServiceUnavailable, SessionExpired
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from .schema import NODE_KEYS, UNIQUE_PROPERTIES, check_rel_type, key_of
from .store import EdgeRow, EdgeSpec, MissingNode, NodeRef, UniqueViolation

logger = logging.getLogger(__name__)

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    connect_attempts: int = 5


def _prop(name: str) -> str:
    if not _IDENT.fullmatch(name):
        raise ValueError(f"invalid property name: {name!r}")
    return name


def _pattern(alias: str, ref: NodeRef | None, param: str) -> str:
    # Labels and property names cannot be parameterized; both come from the
    # whitelist in schema.py, never from callers.
    if ref is None:
        return f"({alias})"
    return f"({alias}:{ref.label} {{{key_of(ref.label)}: ${param}}})"


def _where(
    alias: str,
    filters: Mapping[str, Any] | None,
    where_in: Mapping[str, Sequence[Any]] | None = None,
) -> tuple[str, dict[str, Any]]:
    """WHERE clause with one static `alias.prop` predicate per filter, so that
    lookups hit the constraints and indexes from `ensure_schema`."""
    clauses: list[str] = []
    params: dict[str, Any] = {}
    for i, (prop, value) in enumerate((filters or {}).items()):
        clauses.append(f"{alias}.{_prop(prop)} = $f{i}")
        params[f"f{i}"] = value
    for i, (prop, values) in enumerate((where_in or {}).items()):
        clauses.append(f"{alias}.{_prop(prop)} IN $w{i}")
        params[f"w{i}"] = list(values)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


class Neo4jGraphStore:
    """Neo4j-backed graph store.

    Each public method runs as one managed transaction, so the driver retries
    transient failures and callers see all-or-nothing writes. Uniqueness is
    carried by schema constraints; duplicate edges are prevented by locking
    the source node before looking for an existing edge.

    Dependency: neo4j>=5.
    """

    def __init__(self, cfg: Neo4jConfig):
        self.cfg = cfg
        # Driver is thread-safe; sessions are lightweight.
        self._driver = GraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))
        self._connect()

    def _connect(self) -> None:
        @retry(
            reraise=True,
            stop=stop_after_attempt(max(1, self.cfg.connect_attempts)),
            wait=wait_exponential_jitter(initial=0.5, max=10.0),
            retry=retry_if_exception_type((ServiceUnavailable, SessionExpired)),
        )
        def verify() -> None:
            self._driver.verify_connectivity()

        verify()
        logger.debug("connected to %s", self.cfg.uri)

    def close(self) -> None:
        self._driver.close()

    def ensure_schema(self) -> None:
        stmts = []
        for label, props in UNIQUE_PROPERTIES.items():
            for prop in props:
                name = f"{label.lower()}_{prop.lower()}_unique"
                stmts.append(
                    f"CREATE CONSTRAINT {name} IF NOT EXISTS FOR (n:{label}) REQUIRE n.{prop} IS UNIQUE"
                )
        stmts += [
            "CREATE INDEX user_role IF NOT EXISTS FOR (n:User) ON (n.role)",
            "CREATE INDEX user_favorite_team IF NOT EXISTS FOR (n:User) ON (n.favoriteTeam)",
            "CREATE INDEX post_created_at IF NOT EXISTS FOR (n:Post) ON (n.createdAt)",
        ]
        with self._driver.session(database=self.cfg.database) as s:
            for q in stmts:
                s.run(q)

    def _read(self, fn, *args):
        with self._driver.session(database=self.cfg.database) as s:
            return s.execute_read(fn, *args)

    def _write(self, fn, *args):
        with self._driver.session(database=self.cfg.database) as s:
            return s.execute_write(fn, *args)

    # --- nodes ---

    def find_one(self, label: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        rows = self._find(label, filters, None, 1)
        return rows[0] if rows else None

    def find_many(
        self,
        label: str,
        filters: Mapping[str, Any] | None = None,
        *,
        where_in: Mapping[str, Sequence[Any]] | None = None,
    ) -> list[dict[str, Any]]:
        return self._find(label, filters, where_in, None)

    def _find(self, label, filters, where_in, limit) -> list[dict[str, Any]]:
        key_of(label)
        where, params = _where("n", filters, where_in)
        q = f"MATCH (n:{label}){where} RETURN properties(n) AS n"
        if limit:
            q += f" LIMIT {int(limit)}"

        def tx_fn(tx):
            return [r["n"] for r in tx.run(q, **params)]

        return self._read(tx_fn)

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
        unique = [p for p in UNIQUE_PROPERTIES.get(label, ()) if props.get(p) is not None]
        if owned_by:
            check_rel_type(owned_by[0])

        def tx_fn(tx):
            # Names the clashing property; the constraint still decides races.
            for prop in unique:
                hit = tx.run(
                    f"MATCH (n:{label} {{{prop}: $value}}) RETURN count(n) AS c",
                    value=props[prop],
                ).single()
                if hit and hit["c"]:
                    raise UniqueViolation(label, prop)
            if owned_by is None:
                rec = tx.run(
                    f"CREATE (n:{label}) SET n = $props RETURN properties(n) AS n", props=dict(props)
                ).single()
                return rec["n"]
            rel_type, owner = owned_by
            rec = tx.run(
                f"""
                MATCH {_pattern('o', owner, 'owner')}
                CREATE (o)-[:{rel_type}]->(n:{label})
                SET n = $props
                RETURN properties(n) AS n
                """,
                owner=owner.key,
                props=dict(props),
            ).single()
            if rec is None:
                raise MissingNode(owner)
            return rec["n"]

        try:
            return self._write(tx_fn)
        except ConstraintError as e:
            raise UniqueViolation(label) from e

    def update_node(self, ref: NodeRef, props: Mapping[str, Any]) -> dict[str, Any] | None:
        if ref.key_prop in props:
            raise ValueError("the key property of a node cannot be updated")
        q = f"MATCH {_pattern('n', ref, 'key')} SET n += $props RETURN properties(n) AS n"

        def tx_fn(tx):
            rec = tx.run(q, key=ref.key, props=dict(props)).single()
            return rec["n"] if rec else None

        return self._write(tx_fn)

    def delete_node(self, ref: NodeRef) -> bool:
        q = f"MATCH {_pattern('n', ref, 'key')} DETACH DELETE n RETURN 1 AS deleted"

        def tx_fn(tx):
            return tx.run(q, key=ref.key).single() is not None

        return self._write(tx_fn)

    # --- edges ---

    @staticmethod
    def _lock_endpoints(tx, src: NodeRef, dst: NodeRef) -> None:
        q = f"""
        OPTIONAL MATCH {_pattern('a', src, 'src')}
        OPTIONAL MATCH {_pattern('b', dst, 'dst')}
        FOREACH (_ IN CASE WHEN a IS NULL THEN [] ELSE [1] END | SET a._lock = true REMOVE a._lock)
        RETURN a IS NOT NULL AS has_src, b IS NOT NULL AS has_dst
        """
        rec = tx.run(q, src=src.key, dst=dst.key).single()
        if not rec["has_src"]:
            raise MissingNode(src)
        if not rec["has_dst"]:
            raise MissingNode(dst)

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
        match = f"MATCH {_pattern('a', src, 'src')} MATCH {_pattern('b', dst, 'dst')}"

        def tx_fn(tx):
            self._lock_endpoints(tx, src, dst)
            if unique:
                exists = tx.run(
                    f"{match} RETURN EXISTS {{ (a)-[:{rel_type}]->(b) }} AS hit", src=src.key, dst=dst.key
                ).single()
                if exists["hit"]:
                    return False
            tx.run(
                f"{match} CREATE (a)-[r:{rel_type}]->(b) SET r = $props",
                src=src.key,
                dst=dst.key,
                props=dict(props or {}),
            )
            return True

        return self._write(tx_fn)

    def delete_edge(self, rel_type: str, src: NodeRef, dst: NodeRef) -> int:
        check_rel_type(rel_type)
        q = f"""
        MATCH {_pattern('a', src, 'src')}-[r:{rel_type}]->{_pattern('b', dst, 'dst')}
        DELETE r
        RETURN count(r) AS n
        """

        def tx_fn(tx):
            return int(tx.run(q, src=src.key, dst=dst.key).single()["n"])

        return self._write(tx_fn)

    def swap_edges(self, *, delete: EdgeSpec, create: Sequence[EdgeSpec]) -> bool:
        check_rel_type(delete.rel_type)
        for spec in create:
            check_rel_type(spec.rel_type)

        def tx_fn(tx):
            self._lock_endpoints(tx, delete.src, delete.dst)
            deleted = tx.run(
                f"""
                MATCH {_pattern('a', delete.src, 'src')}-[r:{delete.rel_type}]->{_pattern('b', delete.dst, 'dst')}
                WITH r LIMIT 1
                DELETE r
                RETURN count(r) AS n
                """,
                src=delete.src.key,
                dst=delete.dst.key,
            ).single()["n"]
            if not deleted:
                return False
            for spec in create:
                rec = tx.run(
                    f"""
                    MATCH {_pattern('a', spec.src, 'src')}
                    MATCH {_pattern('b', spec.dst, 'dst')}
                    MERGE (a)-[r:{spec.rel_type}]->(b)
                    ON CREATE SET r = $props
                    RETURN 1 AS ok
                    """,
                    src=spec.src.key,
                    dst=spec.dst.key,
                    props=dict(spec.props),
                ).single()
                if rec is None:
                    # Rolls back the delete above.
                    raise MissingNode(spec.src)
            return True

        return self._write(tx_fn)

    def edges(
        self, rel_type: str, *, src: NodeRef | None = None, dst: NodeRef | None = None
    ) -> list[EdgeRow]:
        check_rel_type(rel_type)
        q = f"""
        MATCH {_pattern('a', src, 'src')}-[r:{rel_type}]->{_pattern('b', dst, 'dst')}
        RETURN properties(a) AS a, properties(b) AS b, properties(r) AS r
        """
        params = {"src": src.key if src else None, "dst": dst.key if dst else None}

        def tx_fn(tx):
            return [EdgeRow(rel_type, rec["a"], rec["b"], rec["r"]) for rec in tx.run(q, **params)]

        return self._read(tx_fn)

    def export(self) -> dict[str, list[dict[str, Any]]]:
        labels = list(NODE_KEYS)

        def tx_fn(tx):
            nodes = [
                {"label": rec["label"], "properties": rec["props"]}
                for rec in tx.run(
                    """
                    MATCH (n) WHERE any(l IN labels(n) WHERE l IN $labels)
                    RETURN [l IN labels(n) WHERE l IN $labels][0] AS label, properties(n) AS props
                    """,
                    labels=labels,
                )
            ]
            edges = []
            for rec in tx.run(
                """
                MATCH (a)-[r]->(b)
                RETURN type(r) AS type,
                       [l IN labels(a) WHERE l IN $labels][0] AS a_label, properties(a) AS a,
                       [l IN labels(b) WHERE l IN $labels][0] AS b_label, properties(b) AS b,
                       properties(r) AS props
                """,
                labels=labels,
            ):
                if rec["a_label"] is None or rec["b_label"] is None:
                    continue
                edges.append(
                    {
                        "type": rec["type"],
                        "src": {"label": rec["a_label"], "key": rec["a"].get(NODE_KEYS[rec["a_label"]])},
                        "dst": {"label": rec["b_label"], "key": rec["b"].get(NODE_KEYS[rec["b_label"]])},
                        "properties": rec["props"],
                    }
                )
            return {"nodes": nodes, "edges": edges}

        return self._read(tx_fn)
