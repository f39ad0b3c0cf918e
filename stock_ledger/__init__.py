"""
Stock Ledger - warehouse inventory tracking backend.

Tracks warehouses, inventory items and the quantity of every item held in
every warehouse, with:
- Composite-keyed stock links (one per warehouse/item pair)
- Atomic quantity mutations (no lost updates)
- Clamped decreases and checked transfers
- Explicit cascade deletes
- Typed, machine-readable errors
"""

__version__ = "0.1.0"
