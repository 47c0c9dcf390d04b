"""
Topology: the arena that owns every node, link and the distance table.

The topology stores ONLY graph primitives:
- Nodes (stable key, dense index, position, load, liveness)
- Links (stable key, endpoint keys, cached endpoint indices, load, liveness)
- The DistanceTable, resized in lock-step with the node list

Back-references are keys, never object ownership: a node lists the keys of
its incident links, a link names the keys of its endpoints. All lookups go
through the topology.

Every mutation ends by notifying subscribers (the APSP engine), which
discard partial path knowledge and restart from the new graph.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from itertools import count
from typing import Callable, Iterator
import logging

import numpy as np
from scipy.spatial.distance import cdist

from meshroute.core.distance_table import DistanceTable
from meshroute.core.errors import InvariantViolation, LastNodeError

logger = logging.getLogger(__name__)


@dataclass
class TopologyConfig:
    """Configuration for graph growth."""

    # Chance that a spawned node links to its two nearest nodes instead of one
    second_link_probability: float = 0.3


@dataclass(eq=False)
class Node:
    """
    A node in the graph.

    Position is owned by the layout collaborator; the core only reads it.
    """

    key: int
    x: float
    y: float
    index: int = -1  # Dense position in the canonical node list
    load: float = 0.0  # Decaying activity in [0, 1]
    alive: bool = True
    link_keys: list[int] = field(default_factory=list)

    @property
    def degree(self) -> int:
        return len(self.link_keys)

    def get_distance(self, other: "Node") -> float:
        """Euclidean distance to another node."""
        return float(np.hypot(self.x - other.x, self.y - other.y))


@dataclass(eq=False)
class Link:
    """An undirected link between two distinct nodes."""

    key: int
    a: int  # Endpoint node keys
    b: int
    source: int = -1  # Cached endpoint indices, refreshed on renumbering
    target: int = -1
    load: float = 0.0
    alive: bool = True

    def get_other(self, node_key: int) -> int:
        """Given one endpoint key, return the opposite endpoint key."""
        if node_key == self.a:
            return self.b
        if node_key == self.b:
            return self.a
        raise InvariantViolation(f"Node {node_key} is not an endpoint of link {self.key}")

    def connects(self, key_a: int, key_b: int) -> bool:
        return {self.a, self.b} == {key_a, key_b}


class Topology:
    """
    Owning store for the mutable graph.

    ``nodes`` is the canonical node list: a node's index IS its position
    in that list and its row in the distance table.
    """

    def __init__(
        self,
        config: TopologyConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config if config is not None else TopologyConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.nodes: list[Node] = []
        self.links: list[Link] = []
        self.table = DistanceTable()

        self._nodes_by_key: dict[int, Node] = {}
        self._links_by_key: dict[int, Link] = {}
        self._node_keys = count()
        self._link_keys = count()
        self._listeners: list[Callable[[], None]] = []
        self.revision = 0  # Bumped on every mutation

    # ───────────────────────────────────────────────────────────────
    # Lookup
    # ───────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def link_count(self) -> int:
        return len(self.links)

    def get_node(self, key: int) -> Node | None:
        """Live node with this key, or None if it was deleted."""
        return self._nodes_by_key.get(key)

    def get_link(self, key: int) -> Link | None:
        """Live link with this key, or None if it was removed."""
        return self._links_by_key.get(key)

    def node_at(self, index: int) -> Node:
        """Node at a dense index."""
        return self.nodes[index]

    def incident_links(self, node: Node) -> Iterator[Link]:
        for key in node.link_keys:
            yield self._links_by_key[key]

    def link_between(self, a: Node, b: Node) -> Link | None:
        """Live link joining a and b, if any."""
        for link in self.incident_links(a):
            if link.get_other(a.key) == b.key:
                return link
        return None

    def random_node(self, exclude: Node | None = None) -> Node | None:
        """Uniformly chosen live node, optionally excluding one."""
        candidates = [n for n in self.nodes if n is not exclude]
        if not candidates:
            return None
        return candidates[int(self.rng.integers(len(candidates)))]

    # ───────────────────────────────────────────────────────────────
    # Mutation
    # ───────────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[], None]):
        """Register a callback invoked after every topology mutation."""
        self._listeners.append(callback)

    def spawn_node(self, x: float, y: float) -> Node:
        """
        Create a node and link it to its nearest neighbor(s).

        One nearest node is always chosen; with probability
        ``second_link_probability`` the two nearest are chosen. An empty
        graph gets a lone node with no links.
        """
        self.table.check_dimension(len(self.nodes))
        node = Node(key=next(self._node_keys), x=float(x), y=float(y))
        neighbors = self._select_neighbors(node)

        node.index = len(self.nodes)
        self.nodes.append(node)
        self._nodes_by_key[node.key] = node
        self.table.add_dimension()

        for neighbor in neighbors:
            self._create_link(node, neighbor)

        logger.info(
            "Spawned node %d at (%.1f, %.1f) linked to %s",
            node.key, node.x, node.y, [n.key for n in neighbors],
        )
        self._mutated()
        return node

    def _select_neighbors(self, node: Node) -> list[Node]:
        if not self.nodes:
            return []

        coords = np.array([[n.x, n.y] for n in self.nodes], dtype=np.float64)
        distances = cdist([[node.x, node.y]], coords)[0]
        order = np.argsort(distances, kind="stable")

        n_neighbors = 1
        if len(self.nodes) > 1 and self.rng.random() < self.config.second_link_probability:
            n_neighbors = 2
        return [self.nodes[i] for i in order[:n_neighbors]]

    def add_link(self, a: Node, b: Node) -> Link:
        """Link two live nodes (no-op if already linked) and restart path search."""
        link = self._create_link(a, b)
        self._mutated()
        return link

    def _create_link(self, a: Node, b: Node) -> Link:
        if a.key == b.key:
            raise InvariantViolation(f"Refusing to link node {a.key} to itself")
        if self.get_node(a.key) is not a or self.get_node(b.key) is not b:
            raise InvariantViolation(f"Cannot link dead node ({a.key}, {b.key})")

        existing = self.link_between(a, b)
        if existing is not None:
            return existing

        link = Link(key=next(self._link_keys), a=a.key, b=b.key, source=a.index, target=b.index)
        self.links.append(link)
        self._links_by_key[link.key] = link
        a.link_keys.append(link.key)
        b.link_keys.append(link.key)
        self.table.set_link(a.index, b.index)
        return link

    def delete_node(self, node: Node):
        """
        Remove a node and all its links.

        Any neighbor left without links is re-attached to a random other
        node. Larger disconnected islands are left to the APSP engine's
        connectivity repair.

        Raises:
            LastNodeError: if this is the only node left
        """
        if self.get_node(node.key) is not node:
            raise ValueError(f"Node {node.key} is not part of this topology")
        if len(self.nodes) <= 1:
            raise LastNodeError("Cannot delete the last remaining node")

        self.table.check_dimension(len(self.nodes))

        # Links go first so renumbering never sees a dangling endpoint
        incident = [self._links_by_key[key] for key in node.link_keys]
        for link in incident:
            self._detach_link(link)

        index = node.index
        self.nodes.pop(index)
        del self._nodes_by_key[node.key]
        node.alive = False
        self._refresh_indices()
        self.table.delete_dimension(index)

        repaired = 0
        for link in incident:
            other = self.get_node(link.get_other(node.key))
            if other is not None and self._repair_isolated(other):
                repaired += 1

        logger.info("Deleted node %d (index %d), %d repair link(s)", node.key, index, repaired)
        self._mutated()

    def remove_link(self, link: Link, repair: bool = True):
        """
        Sever a single link.

        With ``repair`` set, an endpoint left without links is re-attached
        to a random other node, as in ``delete_node``.
        """
        if self.get_link(link.key) is not link:
            raise ValueError(f"Link {link.key} is not part of this topology")

        self._detach_link(link)
        self.table.adjacency[link.source, link.target] = 0
        self.table.adjacency[link.target, link.source] = 0

        if repair:
            for key in (link.a, link.b):
                self._repair_isolated(self._nodes_by_key[key])

        logger.info("Removed link %d (%d-%d)", link.key, link.a, link.b)
        self._mutated()

    def _detach_link(self, link: Link):
        link.alive = False
        self.links.remove(link)
        del self._links_by_key[link.key]
        for key in (link.a, link.b):
            endpoint = self._nodes_by_key.get(key)
            if endpoint is not None:
                endpoint.link_keys.remove(link.key)

    def _repair_isolated(self, node: Node) -> bool:
        """Attach a degree-zero node to a random other node. Returns True if linked."""
        if node.degree > 0 or len(self.nodes) <= 1:
            return False
        partner = self.random_node(exclude=node)
        link = self._create_link(node, partner)
        logger.info("Repair link %d: isolated node %d -> node %d", link.key, node.key, partner.key)
        return True

    def _refresh_indices(self):
        """Renumber every node densely and refresh every link's cached indices."""
        for idx, node in enumerate(self.nodes):
            node.index = idx
        for link in self.links:
            link.source = self._nodes_by_key[link.a].index
            link.target = self._nodes_by_key[link.b].index

    def _mutated(self):
        self.revision += 1
        self.table.check_dimension(len(self.nodes))
        for callback in self._listeners:
            callback()

    # ───────────────────────────────────────────────────────────────
    # Diagnostics
    # ───────────────────────────────────────────────────────────────

    def check_consistency(self):
        """
        Verify the arena's structural invariants.

        Raises:
            InvariantViolation: on the first inconsistency found
        """
        self.table.check_dimension(len(self.nodes))
        for idx, node in enumerate(self.nodes):
            if node.index != idx:
                raise InvariantViolation(f"Node {node.key} has index {node.index}, expected {idx}")
            expected = {link.key for link in self.links if node.key in (link.a, link.b)}
            if set(node.link_keys) != expected:
                raise InvariantViolation(f"Node {node.key} back-references disagree with link list")
        for link in self.links:
            if link.a == link.b:
                raise InvariantViolation(f"Link {link.key} is a self-link")
            if (link.source, link.target) != (
                self._nodes_by_key[link.a].index,
                self._nodes_by_key[link.b].index,
            ):
                raise InvariantViolation(f"Link {link.key} has stale endpoint indices")
