"""
Inventory Kernel - schema-driven inventory mutation engine.

Per-tenant inventories whose record shape is defined at runtime:
- Dynamic column validation against a tenant-owned schema
- Item-level and schema-level change diffing
- Append-only audit log with exactly-once undo
- Weighted-average cost reconciliation for receiving and its reversal
"""

__version__ = "0.1.0"
