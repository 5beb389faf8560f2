"""
Kernel layer.

This package groups the deterministic pricing kernels used by the pool ledger.
- `minamm/kernels/python/` contains production Python kernels (human-readable,
  integer-only) that the ledger calls for every quote and swap.
"""
