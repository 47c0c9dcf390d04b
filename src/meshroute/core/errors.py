"""
Error taxonomy for the routing engine.

Only structural problems are exceptions. A missing path is an expected,
self-healing condition and is reported through return values instead.
"""


class InvariantViolation(RuntimeError):
    """The topology and the distance table disagree, or a mutation would break them."""


class LastNodeError(InvariantViolation):
    """Raised when deleting the node would leave the graph empty."""
