# audit/__init__.py
"""
Audit app - append-only record of every ledger mutation.
"""
