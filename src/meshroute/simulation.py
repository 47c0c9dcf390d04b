"""
Simulation: the tick driver tying topology, APSP and routing together.

Each tick:
1. Decay node and link loads
2. Occasionally spawn or delete a node (per-tick probabilities)
3. Keep at least ``target_packets`` packets in flight
4. Advance the APSP engine by its step budget (repair runs on convergence)
5. Step and update every packet

Everything runs synchronously inside ``tick()``. The only scheduling
policy is the APSP step budget.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

import numpy as np

from meshroute.core.apsp import APSPConfig, APSPEngine, APSPPhase
from meshroute.core.topology import Node, Topology, TopologyConfig
from meshroute.routing.packet import RouterConfig
from meshroute.routing.router import PacketRouter

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""

    initial_nodes: int = 10  # Nodes spawned during warm-up
    target_packets: int = 2  # Packets kept in flight
    spawn_probability: float = 0.0  # Chance per tick of spawning a node
    delete_probability: float = 0.0  # Chance per tick of deleting an idle node
    width: float = 800.0  # Spawn area, centered on the origin
    height: float = 600.0
    seed: int | None = None

    topology: TopologyConfig = field(default_factory=TopologyConfig)
    apsp: APSPConfig = field(default_factory=APSPConfig)
    router: RouterConfig = field(default_factory=RouterConfig)


@dataclass(frozen=True)
class NodeView:
    key: int
    index: int
    x: float
    y: float
    load: float
    alive: bool


@dataclass(frozen=True)
class LinkView:
    key: int
    a: int
    b: int
    load: float
    alive: bool


@dataclass(frozen=True)
class PacketView:
    key: int
    x: float
    y: float
    idle: bool


@dataclass(frozen=True)
class NetworkSnapshot:
    """Order-stable view of the engine state for a rendering collaborator."""

    tick: int
    nodes: tuple[NodeView, ...]
    links: tuple[LinkView, ...]
    packets: tuple[PacketView, ...]


@dataclass
class TickReport:
    """What happened during one tick."""

    tick: int
    relaxations: int
    phase: APSPPhase
    spawned_node: int | None = None
    deleted_node: int | None = None
    arrived: list[int] = field(default_factory=list)
    aborted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


class Simulation:
    """
    Owns one topology, its APSP engine and a packet router.

    The layout collaborator may move nodes between ticks by writing
    ``Node.x`` / ``Node.y``.
    """

    def __init__(self, config: SimulationConfig | None = None, warm_up: bool = True):
        self.config = config if config is not None else SimulationConfig()
        self.rng = np.random.default_rng(self.config.seed)

        self.topology = Topology(self.config.topology, rng=self.rng)
        self.apsp = APSPEngine(self.topology, self.config.apsp)
        self.router = PacketRouter(self.topology, self.config.router)
        self.current_tick = 0

        if warm_up:
            self.warm_up()

    def random_position(self) -> tuple[float, float]:
        """Uniform position inside the spawn area."""
        w, h = self.config.width, self.config.height
        return (
            float(self.rng.random() * w - w / 2),
            float(self.rng.random() * h - h / 2),
        )

    def warm_up(self):
        """Spawn nodes until ``initial_nodes`` exist."""
        while len(self.topology) < self.config.initial_nodes:
            self.spawn_node()

    def spawn_node(self, x: float | None = None, y: float | None = None) -> Node:
        if x is None or y is None:
            x, y = self.random_position()
        return self.topology.spawn_node(x, y)

    def try_delete_node(self, node: Node) -> bool:
        """
        Delete a node only if it and its links are carrying no load.

        Returns:
            True if the node was deleted
        """
        if len(self.topology) <= 1 or node.load > 0:
            return False
        if any(link.load > 0 for link in self.topology.incident_links(node)):
            return False
        self.topology.delete_node(node)
        return True

    def _mutate(self, report: TickReport):
        cfg = self.config
        if cfg.spawn_probability > 0 and self.rng.random() < cfg.spawn_probability:
            report.spawned_node = self.spawn_node().key

        if cfg.delete_probability > 0 and self.rng.random() < cfg.delete_probability:
            candidate = self.topology.random_node()
            if candidate is not None:
                key = candidate.key
                if self.try_delete_node(candidate):
                    report.deleted_node = key

    def tick(self, elapsed: float) -> TickReport:
        """Run one discrete time step of ``elapsed`` time units."""
        self.current_tick += 1
        report = TickReport(tick=self.current_tick, relaxations=0, phase=self.apsp.phase)

        self.router.decay_loads()
        self._mutate(report)

        while len(self.router) < self.config.target_packets and len(self.topology) > 0:
            self.router.spawn_random_packet()

        report.relaxations = self.apsp.advance()
        report.phase = self.apsp.phase

        outcome = self.router.route(elapsed)
        report.arrived = outcome.arrived
        report.aborted = outcome.aborted
        report.failed = outcome.failed
        return report

    def run(self, n_ticks: int, elapsed: float = 16.0) -> dict:
        """Run for n_ticks and return summary statistics."""
        relaxations = 0
        for _ in range(n_ticks):
            relaxations += self.tick(elapsed).relaxations

        return {
            "n_ticks": n_ticks,
            "current_tick": self.current_tick,
            "nodes": len(self.topology),
            "links": self.topology.link_count,
            "packets": len(self.router),
            "relaxations": relaxations,
            "delivered": self.router.delivered,
            "aborted": self.router.aborted,
            "failed": self.router.failed,
            "phase": self.apsp.phase.value,
        }

    def run_until_converged(self, max_ticks: int = 100_000, elapsed: float = 16.0) -> int:
        """
        Tick until the APSP engine reports REPAIR_CHECKED.

        Returns:
            Number of ticks taken
        """
        taken = 0
        while self.apsp.phase is not APSPPhase.REPAIR_CHECKED and taken < max_ticks:
            self.tick(elapsed)
            taken += 1
        return taken

    def snapshot(self) -> NetworkSnapshot:
        """Current nodes, links and packets in canonical order."""
        return NetworkSnapshot(
            tick=self.current_tick,
            nodes=tuple(
                NodeView(n.key, n.index, n.x, n.y, n.load, n.alive)
                for n in self.topology.nodes
            ),
            links=tuple(
                LinkView(l.key, l.a, l.b, l.load, l.alive)
                for l in self.topology.links
            ),
            packets=tuple(
                PacketView(p.key, p.x, p.y, p.idle)
                for p in self.router.packets
            ),
        )
