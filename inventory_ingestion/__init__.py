"""
inventory_ingestion -- spreadsheet and file imports into a tenant's inventory.

Source adapters read CSV/JSON/XLSX files into header-keyed rows, the mapping
layer turns headers into column ids, and ImportService sanitizes, validates
and inserts the rows.
"""
