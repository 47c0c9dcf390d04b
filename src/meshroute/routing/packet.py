"""
Packet: a discrete unit that hops across the graph along shortest paths.

A packet is a two-state machine driven once per tick:
- step(): while idle, pick the next hop from the distance table
- update(elapsed): while transiting, move along the link

The graph may change at any moment. A packet copes locally:
- target deleted → pick a new random target
- current node deleted → abort
- link severed mid-transit → fall back to idle at the current node
- no known path → stay idle and retry next tick
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING
import logging

import numpy as np

from meshroute.core.distance_table import NO_HOP
from meshroute.core.errors import InvariantViolation

if TYPE_CHECKING:
    from meshroute.core.topology import Node, Topology

logger = logging.getLogger(__name__)


@dataclass
class RouterConfig:
    """Configuration for packet movement and load bookkeeping."""

    time_per_unit: float = 10.0  # Transit time per unit of Euclidean link length
    load_decay: float = 0.9  # Multiplicative load decay per tick


def ease_cubic(t: float) -> float:
    """Symmetric cubic ease-in-out on [0, 1]."""
    t *= 2.0
    if t <= 1.0:
        return t * t * t / 2.0
    t -= 2.0
    return (t * t * t + 2.0) / 2.0


class Packet:
    """
    A packet travelling from an origin node to a target node.

    Nodes and links are held by key and resolved through the topology on
    every use, so deletions are observed immediately.
    """

    def __init__(
        self,
        key: int,
        origin: "Node",
        target: "Node",
        topology: "Topology",
        config: RouterConfig | None = None,
    ):
        self.key = key
        self.topology = topology
        self.config = config if config is not None else RouterConfig()

        self.origin = origin.key
        self.target = target.key
        self.node = origin.key
        self.next_node = origin.key
        self.link: int | None = None

        self.t = 0.0  # Transit progress (time units)
        self.x = origin.x
        self.y = origin.y

        self.idle = True
        self.arrived = False
        self.aborted = False
        self.failed = False

        # Node keys in the order the packet occupied them
        self.visited: list[int] = [origin.key]
        self.retargets = 0

    @property
    def done(self) -> bool:
        """True once the packet should be removed from the router."""
        return self.arrived or self.aborted or self.failed

    @property
    def transiting(self) -> bool:
        return not self.idle

    def step(self) -> None:
        """Choose the next hop. Only acts while idle."""
        if not self.idle or self.done:
            return
        topology = self.topology

        if topology.get_node(self.target) is None:
            self._retarget()

        if self.node == self.target:
            self.arrived = True
            logger.debug("Packet %d arrived at node %d", self.key, self.node)
            return

        node = topology.get_node(self.node)
        if node is None:
            self.aborted = True
            logger.debug("Packet %d aborted: node %d was deleted", self.key, self.node)
            return

        if node.degree == 0:
            self.failed = True
            logger.warning(
                "Packet %d deadlocked at node %d with no links (target %d)",
                self.key, self.node, self.target,
            )
            return

        target = topology.get_node(self.target)
        hop = topology.table.next_hop(node.index, target.index)
        if hop == NO_HOP:
            return

        next_node = topology.node_at(hop)
        link = topology.link_between(node, next_node)
        if link is None:
            raise InvariantViolation(
                f"Next hop {node.key}->{next_node.key} has no live link"
            )

        self.next_node = next_node.key
        self.link = link.key
        self.t = 0.0
        self.idle = False
        logger.debug("Packet %d leaving node %d for %d", self.key, node.key, next_node.key)

    def _retarget(self):
        target = self.topology.random_node()
        logger.debug("Packet %d lost target %d, retargeting to %d", self.key, self.target, target.key)
        self.target = target.key
        self.retargets += 1

    def update(self, elapsed: float) -> None:
        """
        Advance transit by ``elapsed`` time units.

        Movement speed is normalized by link length, so every link takes
        ``length * time_per_unit`` to cross. Node and link loads are raised
        (never summed) according to how close the packet is.
        """
        if self.done:
            return
        topology = self.topology

        node = topology.get_node(self.node)
        if node is None:
            self.aborted = True
            self._stop_transit()
            return

        if self.idle:
            self.x, self.y = node.x, node.y
            return

        link = topology.get_link(self.link)
        next_node = topology.get_node(self.next_node)
        if link is None or next_node is None:
            logger.debug("Packet %d lost link %s mid-transit, back at node %d", self.key, self.link, node.key)
            self._stop_transit()
            self.x, self.y = node.x, node.y
            return

        self.t += elapsed

        dx = next_node.x - node.x
        dy = next_node.y - node.y
        duration = float(np.hypot(dx, dy)) * self.config.time_per_unit
        ratio = 1.0 if duration <= 0 else ease_cubic(min(self.t / duration, 1.0))

        self.x = node.x + ratio * dx
        self.y = node.y + ratio * dy

        node.load = max(node.load, 1.0 - ratio)
        next_node.load = max(next_node.load, ratio)
        if ratio <= 0.5:
            link.load = max(link.load, ratio / 0.5)
        else:
            link.load = max(link.load, (1.0 - ratio) / 0.5)

        if ratio >= 1.0:
            self.node = next_node.key
            self.visited.append(next_node.key)
            self._stop_transit()

    def _stop_transit(self):
        self.idle = True
        self.next_node = self.node
        self.link = None
        self.t = 0.0
