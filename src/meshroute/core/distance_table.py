"""
DistanceTable: the three square matrices shared by every component.

All matrices are indexed by the dense node index space of the Topology:
- adjacency[i, j]: 1 if a live link joins i and j
- dist[i, j]: shortest known path cost (inf if unknown)
- next[i, j]: first hop from i toward j (NO_HOP if unknown)

The table never decides anything on its own. The Topology resizes it in
lock-step with the node list, and the APSP engine relaxes it.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Iterable

import numpy as np

from meshroute.core.errors import InvariantViolation

if TYPE_CHECKING:
    from meshroute.core.topology import Link


NO_HOP = -1  # next-hop sentinel: no path known


def add_dimension(values: np.ndarray, default) -> np.ndarray:
    """
    Append one row and one column to a square matrix.

    The new column is appended to every existing row, then a new row
    filled with ``default`` is appended. Existing entries keep their index.
    """
    n = values.shape[0]
    grown = np.full((n + 1, n + 1), default, dtype=values.dtype)
    grown[:n, :n] = values
    return grown


def delete_dimension(values: np.ndarray, index: int) -> np.ndarray:
    """
    Remove row ``index`` and column ``index`` from a square matrix.

    Ordered removal: entries after ``index`` shift down by one, so the
    result stays aligned with a renumbered node list.
    """
    n = values.shape[0]
    if not 0 <= index < n:
        raise ValueError(f"Dimension {index} out of range for size {n}")
    return np.delete(np.delete(values, index, axis=0), index, axis=1)


class DistanceTable:
    """
    Adjacency, distance and next-hop matrices over the node index space.

    The three matrices always share one side length.
    """

    def __init__(self, size: int = 0):
        self.adjacency = np.zeros((size, size), dtype=np.int8)
        self.dist = np.full((size, size), np.inf, dtype=np.float64)
        self.next = np.full((size, size), NO_HOP, dtype=np.int64)
        self._seed_diagonal()

    def __len__(self) -> int:
        return self.dist.shape[0]

    @property
    def size(self) -> int:
        """Current side length of every matrix."""
        return len(self)

    def _seed_diagonal(self):
        n = len(self)
        idx = np.arange(n)
        self.dist[idx, idx] = 0.0
        self.next[idx, idx] = idx

    def add_dimension(self) -> int:
        """
        Grow every matrix by one dimension for a freshly appended node.

        The new row/column is unreachable everywhere except itself.

        Returns:
            Index of the new dimension
        """
        self.adjacency = add_dimension(self.adjacency, 0)
        self.dist = add_dimension(self.dist, np.inf)
        self.next = add_dimension(self.next, NO_HOP)

        last = len(self) - 1
        self.dist[last, last] = 0.0
        self.next[last, last] = last
        return last

    def delete_dimension(self, index: int):
        """Drop row and column ``index`` from every matrix."""
        self.adjacency = delete_dimension(self.adjacency, index)
        self.dist = delete_dimension(self.dist, index)
        self.next = delete_dimension(self.next, index)

    def set_link(self, a: int, b: int):
        """Record a direct unit-cost connection between indices a and b."""
        if a == b:
            raise InvariantViolation(f"Cannot link index {a} to itself")
        self.adjacency[a, b] = self.adjacency[b, a] = 1
        self.dist[a, b] = self.dist[b, a] = 1.0
        self.next[a, b] = b
        self.next[b, a] = a

    def reset_and_reseed(self, links: Iterable["Link"]):
        """
        Discard all path knowledge and reseed from the live links.

        This is the full-reset path taken after any topology mutation.
        """
        self.adjacency.fill(0)
        self.dist.fill(np.inf)
        self.next.fill(NO_HOP)
        self._seed_diagonal()

        for link in links:
            if link.alive:
                self.set_link(link.source, link.target)

    def next_hop(self, i: int, j: int) -> int:
        """First hop from i toward j, or NO_HOP."""
        return int(self.next[i, j])

    def distance(self, i: int, j: int) -> float:
        return float(self.dist[i, j])

    def check_dimension(self, n: int):
        """Raise InvariantViolation unless every matrix is n x n."""
        for name in ("adjacency", "dist", "next"):
            shape = getattr(self, name).shape
            if shape != (n, n):
                raise InvariantViolation(
                    f"{name} matrix has shape {shape}, expected ({n}, {n})"
                )
