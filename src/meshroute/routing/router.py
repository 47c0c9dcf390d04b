"""
PacketRouter: owns the live packets and drives them once per tick.

Each tick every packet gets ``step()`` followed by ``update(elapsed)``.
Packets that arrived, aborted or failed are removed afterwards and
reported to the caller.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from itertools import count
from typing import TYPE_CHECKING
import logging

from meshroute.routing.packet import Packet, RouterConfig

if TYPE_CHECKING:
    from meshroute.core.topology import Node, Topology

logger = logging.getLogger(__name__)


@dataclass
class RoutingOutcome:
    """Keys of packets removed during one routing pass."""

    arrived: list[int] = field(default_factory=list)
    aborted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.arrived) + len(self.aborted) + len(self.failed)


class PacketRouter:
    """Routes packets over a topology using its distance table."""

    def __init__(self, topology: "Topology", config: RouterConfig | None = None):
        self.topology = topology
        self.config = config if config is not None else RouterConfig()
        self.packets: list[Packet] = []
        self._packet_keys = count()

        # Running totals
        self.delivered = 0
        self.aborted = 0
        self.failed = 0

    def __len__(self) -> int:
        return len(self.packets)

    def spawn_packet(self, origin: "Node", target: "Node | None" = None) -> Packet:
        """Create an idle packet at ``origin`` heading for ``target`` (default: origin)."""
        if target is None:
            target = origin
        packet = Packet(next(self._packet_keys), origin, target, self.topology, self.config)
        self.packets.append(packet)
        logger.debug("Packet %d spawned at node %d for node %d", packet.key, origin.key, target.key)
        return packet

    def spawn_random_packet(self) -> Packet:
        """Create a packet with uniformly chosen origin and target."""
        origin = self.topology.random_node()
        target = self.topology.random_node()
        return self.spawn_packet(origin, target)

    def route(self, elapsed: float) -> RoutingOutcome:
        """Step and update every packet, then drop finished ones."""
        for packet in self.packets:
            packet.step()
            packet.update(elapsed)
        return self._collect()

    def _collect(self) -> RoutingOutcome:
        outcome = RoutingOutcome()
        remaining = []
        for packet in self.packets:
            if packet.arrived:
                outcome.arrived.append(packet.key)
            elif packet.failed:
                outcome.failed.append(packet.key)
            elif packet.aborted:
                outcome.aborted.append(packet.key)
            else:
                remaining.append(packet)
        self.packets = remaining

        self.delivered += len(outcome.arrived)
        self.aborted += len(outcome.aborted)
        self.failed += len(outcome.failed)
        return outcome

    def decay_loads(self):
        """Let node and link loads fade by ``load_decay`` once per tick."""
        decay = self.config.load_decay
        for node in self.topology.nodes:
            node.load *= decay
        for link in self.topology.links:
            link.load *= decay

    def get_packet(self, key: int) -> Packet | None:
        for packet in self.packets:
            if packet.key == key:
                return packet
        return None
