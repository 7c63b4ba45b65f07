"""
Ledger Kernel

A double-entry accounting core with:
- Balanced, append-only journal posting
- Compensating reversals (no mutation of posted rows)
- Idempotent weighted-average inventory costing
- Explicit chart-of-accounts taxonomy for statement classification
"""

__version__ = "0.1.0"
