"""
Routing: packets that consume the distance table.

- Packet: idle/transiting state machine for one packet
- PacketRouter: owns live packets, drives them each tick, reports removals
"""

from meshroute.routing.packet import Packet, RouterConfig, ease_cubic
from meshroute.routing.router import PacketRouter, RoutingOutcome

__all__ = [
    "Packet",
    "RouterConfig",
    "ease_cubic",
    "PacketRouter",
    "RoutingOutcome",
]
