"""
Check the engine's distance table against an independent solver.

IMPORTANT: The engine never calls this. The reference distances come from
scipy's sparse graph routines over the topology's live links. They are
compared with what the incremental Floyd-Warshall has produced so far.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from scipy import sparse
from scipy.sparse import csgraph

from meshroute.core.distance_table import NO_HOP

if TYPE_CHECKING:
    from meshroute.core.distance_table import DistanceTable
    from meshroute.core.topology import Topology


@dataclass
class PathCheckResult:
    """Results of comparing engine distances with reference distances."""

    reference: np.ndarray
    mismatches: int  # Pairs whose distance differs
    max_error: float  # Largest finite absolute difference
    unreachable_pairs: int  # Ordered pairs with no path in the real graph
    broken_hop_chains: list[tuple[int, int]] = field(default_factory=list)

    @property
    def exact(self) -> bool:
        return self.mismatches == 0 and not self.broken_hop_chains


def link_matrix(topology: "Topology") -> sparse.csr_matrix:
    """Sparse symmetric unit-weight adjacency built from the live links."""
    n = len(topology.nodes)
    rows, cols = [], []
    for link in topology.links:
        if link.alive:
            rows += [link.source, link.target]
            cols += [link.target, link.source]
    data = np.ones(len(rows), dtype=np.float64)
    return sparse.csr_matrix((data, (rows, cols)), shape=(n, n))


def reference_distances(topology: "Topology") -> np.ndarray:
    """True unweighted all-pairs shortest path lengths (inf if unreachable)."""
    if len(topology.nodes) == 0:
        return np.zeros((0, 0), dtype=np.float64)
    return csgraph.shortest_path(link_matrix(topology), directed=False, unweighted=True)


def connected_components(topology: "Topology") -> tuple[int, np.ndarray]:
    """
    Connected components of the live graph.

    Returns:
        (n_components, labels) where labels[i] is the component of index i
    """
    if len(topology.nodes) == 0:
        return 0, np.zeros(0, dtype=np.int32)
    return csgraph.connected_components(link_matrix(topology), directed=False)


def follow_next_hops(table: "DistanceTable", i: int, j: int) -> list[int] | None:
    """
    Follow next-hop entries from i to j.

    Returns:
        Index sequence starting at i and ending at j, or None if the chain
        is broken or loops.
    """
    path = [i]
    current = i
    for _ in range(len(table)):
        if current == j:
            return path
        hop = table.next_hop(current, j)
        if hop == NO_HOP:
            return None
        path.append(hop)
        current = hop
    return path if current == j else None


def is_symmetric(matrix: np.ndarray) -> bool:
    """True if a square matrix equals its transpose (inf-aware)."""
    return matrix.shape[0] == matrix.shape[1] and np.array_equal(matrix, matrix.T)


def compare_with_reference(topology: "Topology") -> PathCheckResult:
    """
    Compare the topology's distance table with scipy's shortest paths.

    Every reachable pair must have the reference distance and a next-hop
    chain of exactly that many hops.
    """
    table = topology.table
    reference = reference_distances(topology)
    engine = table.dist

    both_inf = np.isinf(reference) & np.isinf(engine)
    differ = ~both_inf & (reference != engine)
    finite = np.isfinite(reference) & np.isfinite(engine)
    max_error = float(np.max(np.abs(reference - engine)[finite])) if finite.any() else 0.0

    broken = []
    n = len(table)
    for i in range(n):
        for j in range(n):
            if i == j or not np.isfinite(reference[i, j]):
                continue
            path = follow_next_hops(table, i, j)
            if path is None or len(path) - 1 != reference[i, j]:
                broken.append((i, j))

    return PathCheckResult(
        reference=reference,
        mismatches=int(differ.sum()),
        max_error=max_error,
        unreachable_pairs=int(np.isinf(reference).sum()),
        broken_hop_chains=broken,
    )
