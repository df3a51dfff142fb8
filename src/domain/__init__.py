"""Domain types for block-interval price sampling.

The sampler only depends on the capability protocols declared here; provider
clients and persistence live in separate packages.
"""

__all__ = [
    "sampling",
]
