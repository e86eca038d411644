"""Root of the Balancer error hierarchy.

Kept free of imports so the arithmetic modules at the bottom of the package
can derive from it.
"""


class BalancerError(Exception):
    """Base error for Balancer operations."""

    code = "BALANCER_ERROR"
