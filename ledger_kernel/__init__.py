"""
Ledger Kernel

A balance consistency engine for personal money movements with:
- Expense, income and transfer movements
- Deferred ("on-credit") expenses settled later
- Atomic, lock-ordered balance adjustments
- Read-only reporting projections over the same store
"""

__version__ = "0.1.0"
