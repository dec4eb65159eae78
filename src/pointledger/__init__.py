"""
Point Ledger - Asset ownership registry over an opaque key-value store.

Keeps a flat collection of point records coherent with a stored index of
all known point ids, and records an append-only log of proposed ownership
exchanges that can be queried by participant.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
