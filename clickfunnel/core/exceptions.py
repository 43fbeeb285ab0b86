# ==============================================================================
# Domain Exceptions
# ==============================================================================
"""
Exceptions raised by the core pipeline.

Anomalies are never raised; they are routed to quarantine. Exceptions are
reserved for inputs that would make a computation meaningless.
"""


class ClickfunnelError(Exception):
    """Base class for clickfunnel errors."""


class ComputationError(ClickfunnelError):
    """A derived value cannot be computed without producing misleading output."""

    def __init__(self, message: str, product_id: int | None = None):
        super().__init__(message)
        self.product_id = product_id
