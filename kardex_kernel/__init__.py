"""
Kardex Kernel

An append-only inventory ledger with:
- Immutable movement entries with a single PENDING -> terminal decision
- A derived stock projection that is always rebuildable from the ledger
- Lot / expiry tracking with FIFO allocation
- Per-company atomic units of work
"""

__version__ = "0.1.0"
