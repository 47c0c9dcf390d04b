"""
Analysis layer: independent checks of the engine's path tables.

IMPORTANT: This is NOT seen by the engine. One-way derivation only.

- reference_distances: scipy shortest paths over the live links
- compare_with_reference: validate distances and next-hop chains
- connected_components: islands in the current topology
"""

from meshroute.analysis.paths import (
    PathCheckResult,
    link_matrix,
    reference_distances,
    connected_components,
    follow_next_hops,
    is_symmetric,
    compare_with_reference,
)

__all__ = [
    "PathCheckResult",
    "link_matrix",
    "reference_distances",
    "connected_components",
    "follow_next_hops",
    "is_symmetric",
    "compare_with_reference",
]
