"""
Incremental all-pairs shortest paths over the DistanceTable.

Classic Floyd-Warshall, but sliced: each ``step()`` evaluates exactly one
(i, j) relaxation for the current k, so a driver can spread the O(N³) work
over many ticks with a fixed per-tick budget.

Phases:
- CONVERGING: relaxations pending
- CONVERGED: one full pass over k finished, table is exact
- REPAIR_CHECKED: connectivity scan found no unreachable pair

Any topology mutation discards all progress: the table is reseeded from the
live links and the cursor rewinds to the start.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING
import logging

import numpy as np

if TYPE_CHECKING:
    from meshroute.core.topology import Topology

logger = logging.getLogger(__name__)


class APSPPhase(Enum):
    CONVERGING = "converging"
    CONVERGED = "converged"
    REPAIR_CHECKED = "repair_checked"


@dataclass
class APSPConfig:
    """Configuration for the incremental APSP engine."""

    steps_per_tick: int = 32  # Relaxations evaluated per driver tick
    randomize_repair_scan: bool = True  # Scan pairs in random order during repair


@dataclass
class FloydCursor:
    """
    Resumable (k, i, j) position of the Floyd-Warshall triple loop.

    ``advance`` moves to the next (i, j) pair before it is evaluated, so a
    rewound cursor sits just before (0, 0, 0).
    """

    phase: APSPPhase = APSPPhase.CONVERGING
    k: int = 0
    i: int = 0
    j: int = -1

    def rewind(self):
        self.phase = APSPPhase.CONVERGING
        self.k, self.i, self.j = 0, 0, -1

    def advance(self, n: int) -> bool:
        """
        Move to the next (k, i, j) triple for an n-node graph.

        Returns:
            True if the cursor points at a triple to evaluate, False once
            k has completed a full pass (phase becomes CONVERGED).
        """
        if self.phase is not APSPPhase.CONVERGING:
            return False

        self.j += 1
        if self.j >= n:
            self.j = 0
            self.i += 1
        if self.i >= n:
            self.i = 0
            self.k += 1
        if self.k >= n:
            self.k = 0
            self.phase = APSPPhase.CONVERGED
            return False
        return True


@dataclass
class APSPEngine:
    """
    Step-bounded Floyd-Warshall with a one-shot connectivity repair.

    Subscribes to the topology on construction, so every mutation triggers
    ``restart()`` immediately.
    """

    topology: "Topology"
    config: APSPConfig = field(default_factory=APSPConfig)

    cursor: FloydCursor = field(default_factory=FloydCursor, init=False)
    total_relaxations: int = field(default=0, init=False)
    restarts: int = field(default=0, init=False)

    def __post_init__(self):
        self.topology.subscribe(self.restart)
        self.restart()

    @property
    def phase(self) -> APSPPhase:
        return self.cursor.phase

    @property
    def converged(self) -> bool:
        return self.cursor.phase is not APSPPhase.CONVERGING

    def restart(self):
        """Reseed the table from the live links and rewind the cursor."""
        self.topology.table.reset_and_reseed(self.topology.links)
        self.cursor.rewind()
        self.restarts += 1

    def step(self) -> bool:
        """
        Evaluate one relaxation.

        Returns:
            True if a relaxation was evaluated, False if already converged.
        """
        table = self.topology.table
        if not self.cursor.advance(len(table)):
            return False

        k, i, j = self.cursor.k, self.cursor.i, self.cursor.j
        through_k = table.dist[i, k] + table.dist[k, j]
        if table.dist[i, j] > through_k:
            table.dist[i, j] = through_k
            table.next[i, j] = table.next[i, k]
            logger.debug("Relaxed dist[%d, %d] to %s via %d", i, j, through_k, k)

        self.total_relaxations += 1
        return True

    def advance(self, max_steps: int | None = None) -> int:
        """
        Run up to ``max_steps`` relaxations (default: the per-tick budget).

        If this call reaches convergence, the connectivity repair runs once.

        Returns:
            Number of relaxations evaluated
        """
        if max_steps is None:
            max_steps = self.config.steps_per_tick

        evaluated = 0
        while evaluated < max_steps and self.step():
            evaluated += 1

        if self.cursor.phase is APSPPhase.CONVERGED:
            logger.info(
                "APSP converged over %d nodes after %d relaxations",
                len(self.topology.table), self.total_relaxations,
            )
            self.repair_connectivity()
        return evaluated

    def _pair_order(self, n: int) -> np.ndarray:
        pairs = np.argwhere(~np.eye(n, dtype=bool))
        if self.config.randomize_repair_scan and len(pairs) > 0:
            pairs = self.topology.rng.permutation(pairs)
        return pairs

    def repair_connectivity(self) -> tuple[int, int] | None:
        """
        Link the first unreachable pair found, or mark the graph checked.

        Only meaningful once CONVERGED. Adding a link mutates the topology,
        which restarts the engine.

        Returns:
            The (i, j) index pair that was linked, or None
        """
        if self.cursor.phase is not APSPPhase.CONVERGED:
            return None

        dist = self.topology.table.dist
        for i, j in self._pair_order(len(self.topology.table)):
            if np.isinf(dist[i, j]):
                a, b = self.topology.node_at(int(i)), self.topology.node_at(int(j))
                logger.info("Nodes %d and %d are disconnected, adding bridge", a.key, b.key)
                self.topology.add_link(a, b)
                return int(i), int(j)

        self.cursor.phase = APSPPhase.REPAIR_CHECKED
        return None

    def run_until_converged(self, max_steps: int = 10_000_000) -> int:
        """Relax until REPAIR_CHECKED or the step limit is hit. Returns steps taken."""
        taken = 0
        while self.cursor.phase is not APSPPhase.REPAIR_CHECKED and taken < max_steps:
            taken += self.advance(max_steps - taken)
        return taken
