"""recyclectl - Reversible, audited cleanup for cache directories.

Moves cleanup targets into a batch-organised recycle bin, reconstructs
restorable state from an append-only audit log, restores batches with
conflict handling, and evicts old batches under a retention policy.
"""

__version__ = "0.1.0"
