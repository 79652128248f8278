"""
Finance Manager - Source Package

Ledger core for a personal / small-business finance tracker:
salary carry-forward, the owner's personal cash account, the
reconciliation between the two, and read-only analytics.

DESIGN PRINCIPLES:
1. Validate first, mutate second
2. No silent corrections
3. Every ledger mutation is auditable
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Manager Team"
