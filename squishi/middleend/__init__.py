"""IR rewriting passes."""

from .optimizer import UNROLL_LIMIT, optimize

__all__ = ["UNROLL_LIMIT", "optimize"]
