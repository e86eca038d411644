"""Fixed-point primitives for Balancer pool math.

- Bfp: 18-decimal fixed-point arithmetic (FixedPoint.sol)
- log_exp: exponentials, logarithms and the raw power function (LogExpMath.sol)
"""

from balancer_math.math.fixed_point import Bfp

__all__ = ["Bfp"]
